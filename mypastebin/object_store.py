from urllib.parse import quote

import aioboto3
import botocore.exceptions

from .errors import StorageError
from .log import get_logger

LOGGER = get_logger(__name__)
S3_ERRORS = (
    botocore.exceptions.BotoCoreError,
    botocore.exceptions.ClientError,
)


def content_disposition(filename):
    return (
        f'attachment; filename="{filename}"; '
        f"filename*=UTF-8''{quote(filename, safe='')}"
    )


class ObjectStore:
    """
    Paste bodies stored in an S3-compatible bucket.

    Both ``upload`` and ``delete`` accept a ``fake`` flag used for pastes
    living in the alternate backend: the call is skipped and reported as
    such, and the caller proceeds as if it had succeeded.
    """

    def __init__(self, bucket, endpoint_url=None, session=None):
        self.bucket = bucket
        self.endpoint_url = endpoint_url or None
        self.session = session or aioboto3.Session()

    def client(self):
        return self.session.client("s3", endpoint_url=self.endpoint_url)

    async def upload(
        self,
        key,
        body,
        content_type,
        content_encoding,
        title,
        tags,
        filename,
        fake=False,
    ) -> bool:
        """
        Store a paste body.

        :returns: ``True`` if the object was sent, ``False`` if the call was
            skipped because of ``fake``
        """
        if fake:
            LOGGER.debug(f"Skipping upload of '{key}', stored elsewhere")
            return False
        try:
            async with self.client() as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentLength=len(body),
                    ContentType=content_type,
                    ContentEncoding=content_encoding,
                    ContentDisposition=content_disposition(filename),
                    # S3 user metadata travels as HTTP headers, ASCII only.
                    Metadata={
                        "title": quote(title or "", safe=" "),
                        "tags": quote(",".join(tags or []), safe=","),
                    },
                )
        except S3_ERRORS as err:
            LOGGER.error(
                f"{type(err).__name__} when uploading '{key}' to bucket "
                f"'{self.bucket}': {err}"
            )
            raise StorageError(f"Failed to upload '{key}'", error=err)
        LOGGER.info(f"Uploaded '{key}' ({len(body)} bytes)")
        return True

    async def delete(self, key, fake=False) -> bool:
        if fake:
            LOGGER.debug(f"Skipping deletion of '{key}', stored elsewhere")
            return False
        try:
            async with self.client() as s3:
                await s3.delete_object(Bucket=self.bucket, Key=key)
        except S3_ERRORS as err:
            LOGGER.error(
                f"{type(err).__name__} when deleting '{key}' from bucket "
                f"'{self.bucket}': {err}"
            )
            raise StorageError(f"Failed to delete '{key}'", error=err)
        LOGGER.info(f"Deleted '{key}'")
        return True

    async def get(self, key):
        """Fetch a stored body and its content encoding."""
        try:
            async with self.client() as s3:
                response = await s3.get_object(Bucket=self.bucket, Key=key)
                body = await response["Body"].read()
                return body, response.get("ContentEncoding", "identity")
        except botocore.exceptions.ClientError as err:
            if err.response["Error"]["Code"] == "NoSuchKey":
                LOGGER.error(f"Key '{key}' not found")
                return None, None
            raise StorageError(f"Failed to fetch '{key}'", error=err)
        except botocore.exceptions.BotoCoreError as err:
            raise StorageError(f"Failed to fetch '{key}'", error=err)
