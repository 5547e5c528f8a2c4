"""
Google Drive as an alternate paste backend.

Pastes sent to Drive are uploaded with the user's OAuth access token into a
folder the application creates on first use, then shared read-only with
anyone holding the link. The OAuth dance that produces the token lives in
the web layer.
"""
import json

import aiohttp

from .config import config
from .errors import NotFound, StorageError
from .log import get_logger

LOGGER = get_logger(__name__)
BOUNDARY = "mypastebin-boundary"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class DriveUploader:
    def __init__(
        self,
        api_url=config["gdrive"]["api_url"],
        upload_url=config["gdrive"]["upload_url"],
        folder_name=config["gdrive"]["folder_name"],
        session_factory=aiohttp.ClientSession,
    ):
        self.api_url = api_url
        self.upload_url = upload_url
        self.folder_name = folder_name
        self.session_factory = session_factory

    async def upload(
        self, token, content, content_type, title, tags, filename
    ):
        """
        Upload a paste body to Drive.

        :returns: tuple (Drive file ID, download URL)
        """
        if not token:
            raise StorageError("No Google Drive token available")
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with self.session_factory(headers=headers) as session:
                folder_id = await self.get_folder(session)
                file_id, download_url = await self.upload_file(
                    session,
                    folder_id,
                    content,
                    content_type,
                    title,
                    tags,
                    filename,
                )
                await self.share(session, file_id)
        except aiohttp.ClientError as err:
            LOGGER.error(
                f"{type(err).__name__} when uploading '{filename}' to Google "
                f"Drive: {err}"
            )
            raise StorageError("Failed to upload to Google Drive", error=err)
        LOGGER.info(f"Uploaded '{filename}' to Google Drive as '{file_id}'")
        return file_id, download_url

    async def get_folder(self, session):
        params = {
            "q": (
                f"properties has {{ key='name' and "
                f"value='{self.folder_name}' }}"
            ),
            "fields": "files(id,name)",
            "pageSize": "1",
        }
        async with session.get(self.api_url, params=params) as response:
            if response.status == 200:
                files = (await response.json()).get("files") or []
                if files:
                    return files[0]["id"]
        return await self.make_folder(session)

    async def make_folder(self, session):
        body = {
            "name": self.folder_name,
            "description": "This folder was made by mypastebin",
            "properties": {"name": self.folder_name},
            "mimeType": FOLDER_MIME_TYPE,
        }
        async with session.post(self.api_url, json=body) as response:
            data = await read_json(response, "create the Drive folder")
        if "id" not in data:
            raise StorageError("No folder ID in Google Drive response")
        LOGGER.info(f"Created Google Drive folder '{data['id']}'")
        return data["id"]

    async def upload_file(
        self, session, folder_id, content, content_type, title, tags, filename
    ):
        metadata = {
            "name": filename,
            "mimeType": content_type,
            "parents": [folder_id],
            "description": title or "",
            "properties": {"tags": ", ".join(tags or [])},
        }
        with aiohttp.MultipartWriter("related", boundary=BOUNDARY) as writer:
            writer.append(
                json.dumps(metadata),
                {"Content-Type": "application/json; charset=UTF-8"},
            )
            writer.append(content, {"Content-Type": content_type})

        params = {"uploadType": "multipart", "fields": "id,webContentLink"}
        async with session.post(
            self.upload_url, params=params, data=writer
        ) as response:
            data = await read_json(response, "upload to Google Drive")
        try:
            return data["id"], data["webContentLink"]
        except KeyError as err:
            raise StorageError(f"No {err} in Google Drive response")

    async def share(self, session, file_id):
        url = f"{self.api_url}/{file_id}/permissions"
        body = {"role": "reader", "type": "anyone"}
        async with session.post(url, json=body) as response:
            await read_json(response, "update Google Drive permissions")

    async def download(self, url):
        try:
            async with self.session_factory() as session:
                async with session.get(url) as response:
                    if response.status == 404:
                        raise NotFound("Paste not found on Google Drive")
                    if response.status >= 400:
                        raise StorageError(
                            f"Google Drive returned {response.status}"
                        )
                    return await response.read()
        except aiohttp.ClientError as err:
            LOGGER.error(f"{type(err).__name__} when fetching {url}: {err}")
            raise StorageError("Failed to fetch from Google Drive", error=err)


async def read_json(response, action):
    if response.status >= 400:
        text = await response.text()
        LOGGER.error(f"Failed to {action}: {response.status} {text}")
        raise StorageError(f"Failed to {action}: {response.status}")
    return await response.json()
