import aiohttp

from .config import config
from .log import get_logger

LOGGER = get_logger(__name__)


class PurgeQueue:
    """
    Storage keys waiting for their CDN cache entry to be invalidated.

    Keys are sent in batches. A failed purge is logged and the keys are
    dropped anyway, the cache entry then simply expires on its own.
    """

    def __init__(
        self,
        enabled=config["cdn"]["enabled"],
        purge_url=config["cdn"]["purge_url"],
        api_key=config["cdn"]["api_key"],
        bucket_url=config["object_store"]["s3_bucket_url"],
        batch_size=config["cdn"]["batch_size"],
        session_factory=aiohttp.ClientSession,
    ):
        self.enabled = enabled
        self.purge_url = purge_url
        self.api_key = api_key
        self.bucket_url = bucket_url
        self.batch_size = batch_size
        self.session_factory = session_factory
        self.keys = set()

    def __len__(self):
        return len(self.keys)

    def enqueue(self, key):
        self.keys.add(key)

    async def purge(self, force=False):
        """
        Purge queued keys once a full batch is waiting, or right away when
        ``force`` is set.

        :returns: list of purged keys
        """
        if not self.keys or (len(self.keys) < self.batch_size and not force):
            return []

        keys, self.keys = sorted(self.keys), set()
        LOGGER.info(f"About to purge the following objects: {', '.join(keys)}")

        if not self.enabled:
            return keys

        headers = {"Authorization": f"Bearer {self.api_key}"}
        body = {"files": [f"{self.bucket_url}{key}" for key in keys]}
        try:
            async with self.session_factory(headers=headers) as session:
                async with session.post(self.purge_url, json=body) as response:
                    if response.status >= 400:
                        LOGGER.error(
                            f"Failed to purge CDN cache: {response.status} "
                            f"{await response.text()}"
                        )
        except aiohttp.ClientError as err:
            LOGGER.error(f"Failed to purge CDN cache: {err}")
        return keys
