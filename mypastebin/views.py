from datetime import datetime, timezone

from .errors import NotFound, PastebinError
from .log import get_logger

LOGGER = get_logger(__name__)


class ViewCounter:
    """
    Pending page views per paste, kept in memory and written to the metadata
    store in batches. Views recorded since the last flush are lost if the
    process dies, so stored counts can lag behind but never run ahead.
    """

    def __init__(self):
        self.counts = {}

    def __len__(self):
        return len(self.counts)

    def record_view(self, paste_id, durable_views):
        count = self.counts.get(paste_id, durable_views) + 1
        self.counts[paste_id] = count
        return count

    def discard(self, paste_id):
        self.counts.pop(paste_id, None)

    async def flush(self, engine):
        """
        Write every pending count to the metadata store and start over.

        :param engine: used to re-read each paste and save its views
        :returns: number of pastes updated
        """
        # Swap the map before awaiting so views recorded during the flush
        # land in the next batch.
        items, self.counts = self.counts, {}
        if not items:
            return 0
        LOGGER.info(f"Saving views of {len(items)} pastes")
        saved = 0
        now = datetime.now(timezone.utc)
        for paste_id, views in items.items():
            try:
                paste = await engine.get(paste_id)
                await engine.database.save_views(paste.paste_id, views, now)
                saved += 1
            except NotFound:
                # Deleted since it was viewed.
                pass
            except PastebinError as err:
                LOGGER.error(f"Failed to save views of '{paste_id}': {err}")
        LOGGER.info(f"Saved views of {saved} pastes")
        return saved
