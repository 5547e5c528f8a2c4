import asyncio
from decimal import Decimal

from . import compression
from .cdn import PurgeQueue
from .config import config
from .database import Database
from .errors import (
    BotRejected,
    DuplicatePasteId,
    NotFound,
    PayloadTooLarge,
    StorageError,
    TransactionError,
    ValidationError,
)
from .gdrive import DriveUploader
from .identifiers import canonical_paste_id, generate_paste_id
from .log import get_logger
from .models import Destination, Paste, PasteSummary, SearchResult
from .normalize import (
    build_paste,
    check_text,
    normalize_tags,
    normalize_title,
)
from .object_store import ObjectStore
from .views import ViewCounter

LOGGER = get_logger(__name__)
PAGE_SIZE = 10
MAX_INSERT_ATTEMPTS = 3


class PasteEngine:
    """
    Create, read, edit, search and delete pastes.

    A paste lives in two places: a row in the metadata store and a body in
    the object store (or in Google Drive). Creation inserts the row, uploads
    the body and commits only if the upload succeeded. Deletion removes the
    row, deletes the body and commits only if the deletion succeeded. A row
    therefore never points to a missing body, the worst case being a body
    left behind without a row if the process dies before committing.
    """

    def __init__(
        self,
        database,
        object_store,
        view_counter=None,
        purge_queue=None,
        alt_uploader=None,
        s3_prefix=config["object_store"]["s3_prefix"],
        s3_bucket_url=config["object_store"]["s3_bucket_url"],
        max_size=config["object_store"]["max_size"],
        encoding=config["object_store"]["encoding"],
        production=config["app"]["production"],
        bot_score_threshold=config["app"]["bot_score_threshold"],
    ):
        self.database = database
        self.object_store = object_store
        if view_counter is None:
            view_counter = ViewCounter()
        if purge_queue is None:
            purge_queue = PurgeQueue()
        self.view_counter = view_counter
        self.purge_queue = purge_queue
        self.alt_uploader = alt_uploader
        self.s3_prefix = s3_prefix
        self.s3_bucket_url = s3_bucket_url
        self.max_size = max_size
        self.encoding = encoding
        self.production = production
        self.bot_score_threshold = Decimal(str(bot_score_threshold))
        self.background = set()

    def storage_key(self, paste_id, extension, content_encoding):
        key = f"{self.s3_prefix}{paste_id}.{extension}"
        if content_encoding == compression.BROTLI:
            key += ".br"
        return key

    async def create(
        self, form, score, user_id=None, session_id=None, alt_token=None
    ):
        """
        Store a new paste.

        :param form: submitted ``PasteForm``
        :param score: bot check score between 0 and 1
        :param alt_token: access token for the alternate backend, if the
            form targets it
        :returns: ID of the new paste
        """
        paste, destination = build_paste(form, score, user_id, session_id)

        if self.production and paste.bot_score < self.bot_score_threshold:
            raise BotRejected(
                "Oop, bot check failed! This site is for humans!"
            )

        content_size = len(form.content.encode(self.encoding))
        too_large = content_size > self.max_size
        if too_large and destination is Destination.DATASTORE:
            raise PayloadTooLarge(
                f"Paste is too large: {content_size} bytes, the maximum is "
                f"{self.max_size} bytes"
            )

        fmt = paste.format
        payload, content_encoding = await compression.compress_in_executor(
            form.content, destination, self.encoding
        )
        paste.storage_byte_len = len(payload)

        fake_upload = destination is Destination.GDRIVE
        if fake_upload:
            await self.upload_alt(paste, payload, alt_token)

        transaction = await self.insert(paste, content_encoding)
        async with transaction:
            uploaded = await self.object_store.upload(
                key=paste.storage_key,
                body=payload,
                content_type=fmt.content_type,
                content_encoding=content_encoding,
                title=paste.title,
                tags=paste.tags,
                filename=paste.filename,
                fake=fake_upload,
            )
            try:
                await transaction.commit()
            except TransactionError:
                if uploaded:
                    LOGGER.error(
                        f"Commit failed, object '{paste.storage_key}' "
                        f"is left without a paste row"
                    )
                raise
        LOGGER.info(
            f"Created paste '{paste.paste_id}' at '{paste.storage_key}'"
        )
        return paste.paste_id

    async def upload_alt(self, paste, payload, token):
        if self.alt_uploader is None:
            raise ValidationError("Google Drive uploads are not available")
        if not token:
            raise ValidationError("Link your Google Drive account first")
        file_id, url = await self.alt_uploader.upload(
            token,
            payload,
            paste.format.content_type,
            paste.title,
            paste.tags,
            paste.filename,
        )
        paste.alt_storage_id, paste.alt_storage_url = file_id, url

    async def insert(self, paste, content_encoding):
        """
        Insert the paste row in a new transaction, drawing a new ID if the
        random one is already taken.

        :returns: the open transaction
        """
        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            paste.storage_key = self.storage_key(
                paste.paste_id, paste.format.extension, content_encoding
            )
            transaction = await self.database.begin()
            try:
                await transaction.insert_paste(paste)
                return transaction
            except DuplicatePasteId:
                await transaction.rollback()
                if attempt == MAX_INSERT_ATTEMPTS:
                    raise
                LOGGER.warning(
                    f"Paste ID '{paste.paste_id}' is taken, retrying"
                )
                paste.paste_id = generate_paste_id()
            except BaseException:
                await transaction.rollback()
                raise

    async def get(self, paste_id):
        paste_id = canonical_paste_id(paste_id)
        row = await self.database.get_paste(paste_id)
        if row is None:
            raise NotFound("Paste not found")
        return Paste.from_row(row)

    def record_view(self, paste):
        paste.views = self.view_counter.record_view(
            paste.paste_id, paste.views
        )
        return paste.views

    async def get_content(self, paste):
        if paste.is_alt_backend:
            if self.alt_uploader is None:
                raise StorageError("Google Drive downloads are not available")
            try:
                body = await self.alt_uploader.download(paste.alt_storage_url)
            except NotFound:
                LOGGER.info(
                    f"Paste '{paste.paste_id}' is gone from Google Drive"
                )
                await self.delete(paste)
                raise
            return body.decode(self.encoding)

        body, _ = await self.object_store.get(paste.storage_key)
        if body is None:
            raise NotFound("Paste content not found")
        content_encoding = compression.IDENTITY
        if paste.storage_key.endswith(".br"):
            content_encoding = compression.BROTLI
        return compression.decompress(body, content_encoding, self.encoding)

    async def edit(self, paste, title, tags):
        check_text("title", title)
        check_text("tags", tags)
        paste.title = normalize_title(title)
        paste.tags = normalize_tags(tags)
        updated = await self.database.update_paste(
            paste.paste_id, paste.title, paste.tags
        )
        if not updated:
            raise NotFound("Paste not found")
        return paste

    async def delete(self, paste):
        async with await self.database.begin() as transaction:
            row = await transaction.delete_paste(paste.paste_id)
            if row is None:
                raise NotFound("Paste not found")
            await self.object_store.delete(
                row["storage_key"], fake=row["alt_storage_url"] is not None
            )
            await transaction.commit()
        LOGGER.info(f"Deleted paste '{paste.paste_id}'")

        self.view_counter.discard(paste.paste_id)
        self.purge_queue.enqueue(row["storage_key"])
        self.spawn(self.purge_queue.purge())

    async def search(self, tags, page=1):
        tags = normalize_tags(tags)
        if not tags:
            raise ValidationError("Tags parameter is empty")
        try:
            page = max(int(page), 1)
        except (TypeError, ValueError):
            page = 1
        rows = await self.database.search_pastes(
            tags, PAGE_SIZE, (page - 1) * PAGE_SIZE
        )
        return SearchResult(
            tags=tags,
            page=page,
            pastes=[PasteSummary.from_row(row) for row in rows],
        )

    async def pastes_by_owner(self, user_id):
        rows = await self.database.get_pastes_by_owner(user_id)
        return [PasteSummary.from_row(row) for row in rows]

    async def flush_views(self):
        return await self.view_counter.flush(self)

    async def purge_cache(self, force=False):
        return await self.purge_queue.purge(force=force)

    def spawn(self, coro):
        task = asyncio.create_task(coro)
        self.background.add(task)
        task.add_done_callback(self.background.discard)
        return task

    async def wait_background(self):
        if self.background:
            await asyncio.gather(*self.background, return_exceptions=True)


def build_engine(cnf=config):
    store = cnf["object_store"]
    return PasteEngine(
        database=Database(pool_size=cnf["database"]["pool_size"]),
        object_store=ObjectStore(
            bucket=store["s3_bucket"], endpoint_url=store["endpoint_url"]
        ),
        view_counter=ViewCounter(),
        purge_queue=PurgeQueue(
            enabled=cnf["cdn"]["enabled"],
            purge_url=cnf["cdn"]["purge_url"],
            api_key=cnf["cdn"]["api_key"],
            bucket_url=store["s3_bucket_url"],
            batch_size=cnf["cdn"]["batch_size"],
        ),
        alt_uploader=DriveUploader(),
        s3_prefix=store["s3_prefix"],
        s3_bucket_url=store["s3_bucket_url"],
        max_size=store["max_size"],
        encoding=store["encoding"],
        production=cnf["app"]["production"],
        bot_score_threshold=cnf["app"]["bot_score_threshold"],
    )
