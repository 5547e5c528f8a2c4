from mypastebin.errors import DuplicatePasteId, NotFound

COLUMNS = (
    "paste_id",
    "user_id",
    "session_id",
    "title",
    "tags",
    "format",
    "date",
    "alt_storage_id",
    "alt_storage_url",
    "storage_key",
    "storage_byte_len",
    "bot_score",
    "views",
    "last_seen",
)


def paste_row(paste):
    return dict(zip(COLUMNS, paste.to_row()))


class FakeTransaction:
    def __init__(self, database):
        self.database = database
        self.pending = []
        self.state = "open"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.rollback()

    async def insert_paste(self, paste):
        if self.database.insert_error is not None:
            raise self.database.insert_error
        if paste.paste_id in self.database.rows:
            raise DuplicatePasteId("Paste ID already exists")
        self.pending.append(("insert", paste_row(paste)))

    async def delete_paste(self, paste_id):
        row = self.database.rows.get(paste_id)
        if row is None:
            return None
        self.pending.append(("delete", row))
        return {
            "storage_key": row["storage_key"],
            "alt_storage_url": row["alt_storage_url"],
        }

    async def commit(self):
        if self.database.commit_error is not None:
            self.state = "failed"
            raise self.database.commit_error
        for action, row in self.pending:
            if action == "insert":
                self.database.rows[row["paste_id"]] = row
            else:
                del self.database.rows[row["paste_id"]]
        self.state = "committed"

    async def rollback(self):
        if self.state != "open":
            return
        self.pending = []
        self.state = "rolled back"


class FakeDatabase:
    def __init__(self):
        self.rows = {}
        self.transactions = []
        self.searches = []
        self.saved_views = []
        self.insert_error = None
        self.commit_error = None
        self.read_error = None
        self.opened = False

    def open(self):
        self.opened = True

    def close(self):
        self.opened = False

    async def begin(self):
        transaction = FakeTransaction(self)
        self.transactions.append(transaction)
        return transaction

    async def get_paste(self, paste_id):
        if self.read_error is not None:
            raise self.read_error
        row = self.rows.get(paste_id)
        if row is not None:
            return dict(row)

    async def search_pastes(self, tags, limit, offset):
        self.searches.append((list(tags), limit, offset))
        rows = [
            row
            for row in self.rows.values()
            if set(tags) <= set(row["tags"] or [])
        ]
        rows.sort(key=lambda row: row["date"], reverse=True)
        return rows[offset:offset + limit]

    async def get_pastes_by_owner(self, user_id):
        rows = [row for row in self.rows.values() if row["user_id"] == user_id]
        rows.sort(key=lambda row: row["date"], reverse=True)
        return rows

    async def update_paste(self, paste_id, title, tags):
        row = self.rows.get(paste_id)
        if row is None:
            return 0
        row["title"] = title
        row["tags"] = list(tags)
        return 1

    async def save_views(self, paste_id, views, last_seen):
        self.saved_views.append((paste_id, views))
        row = self.rows.get(paste_id)
        if row is None:
            return 0
        row["views"] = max(row["views"], views)
        row["last_seen"] = last_seen
        return 1


class FakeObjectStore:
    def __init__(self):
        self.objects = {}
        self.calls = []
        self.skipped = []
        self.upload_error = None
        self.delete_error = None

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
    ):
        if fake:
            self.skipped.append(("upload", key))
            return False
        self.calls.append(("upload", key))
        if self.upload_error is not None:
            raise self.upload_error
        self.objects[key] = {
            "body": body,
            "content_type": content_type,
            "content_encoding": content_encoding,
            "title": title,
            "tags": tags,
            "filename": filename,
        }
        return True

    async def delete(self, key, fake=False):
        if fake:
            self.skipped.append(("delete", key))
            return False
        self.calls.append(("delete", key))
        if self.delete_error is not None:
            raise self.delete_error
        self.objects.pop(key, None)
        return True

    async def get(self, key):
        obj = self.objects.get(key)
        if obj is None:
            return None, None
        return obj["body"], obj["content_encoding"]


class FakeUploader:
    def __init__(self, error=None):
        self.error = error
        self.uploads = []
        self.files = {}

    async def upload(
        self, token, content, content_type, title, tags, filename
    ):
        if self.error is not None:
            raise self.error
        file_id = f"drive-{len(self.uploads) + 1}"
        url = f"https://drive.example.com/{file_id}"
        self.uploads.append((token, filename, content_type))
        self.files[url] = content
        return file_id, url

    async def download(self, url):
        if url not in self.files:
            raise NotFound("Paste not found on Google Drive")
        return self.files[url]


class FakeResponse:
    def __init__(self, status=200, data=None, text=""):
        self.status = status
        self.data = data or {}
        self.body = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self):
        return self.data

    async def text(self):
        return self.body

    async def read(self):
        return self.body.encode()


class FakeHTTPSession:
    """Stands in for ``aiohttp.ClientSession``, routing by method and URL."""

    def __init__(self, routes, requests, error=None, headers=None):
        self.routes = routes
        self.requests = requests
        self.error = error
        self.headers = headers or {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs, self.headers))
        if self.error is not None:
            raise self.error
        return self.routes.get((method, url), FakeResponse(404))

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


def session_factory(routes=None, error=None):
    requests = []

    def factory(headers=None):
        return FakeHTTPSession(routes or {}, requests, error, headers)

    factory.requests = requests
    return factory
