import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .errors import ValidationError


class PasteFormat(enum.Enum):
    ANSI_LOG = "log"
    HTML = "html"
    TEXT = "text"

    @classmethod
    def parse(cls, value):
        """
        Parse a format submitted by a client.

        Unknown formats are rejected rather than silently stored as text.
        """
        if isinstance(value, cls):
            return value
        if value is not None and not isinstance(value, str):
            raise ValidationError("The format must be a string")
        fmt = FORMAT_ALIASES.get((value or "").strip().lower())
        if fmt is None:
            raise ValidationError(f"Unknown paste format '{value}'")
        return fmt

    @classmethod
    def from_stored(cls, value):
        # Rows written before the format was validated may hold anything.
        return FORMAT_ALIASES.get(value, cls.TEXT)

    @property
    def extension(self):
        if self is PasteFormat.ANSI_LOG:
            return "log"
        if self is PasteFormat.HTML:
            return "html"
        return "txt"

    @property
    def content_type(self):
        if self is PasteFormat.HTML:
            return "text/html"
        return "text/plain"

    @property
    def display_name(self):
        if self is PasteFormat.TEXT:
            return "plain"
        return self.value


FORMAT_ALIASES = {
    "log": PasteFormat.ANSI_LOG,
    "ansi": PasteFormat.ANSI_LOG,
    "html": PasteFormat.HTML,
    "text": PasteFormat.TEXT,
    "plain": PasteFormat.TEXT,
    "txt": PasteFormat.TEXT,
}


class Destination(enum.Enum):
    DATASTORE = "datastore"
    GDRIVE = "gdrive"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if value is not None and not isinstance(value, str):
            raise ValidationError("The destination must be a string")
        try:
            return cls((value or cls.DATASTORE.value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown paste destination '{value}'")


@dataclass
class PasteForm:
    content: str
    title: Optional[str] = None
    tags: Optional[str] = None
    format: str = PasteFormat.TEXT.value
    destination: str = Destination.DATASTORE.value


@dataclass
class Paste:
    paste_id: str
    user_id: Optional[str]
    session_id: Optional[str]
    title: Optional[str]
    tags: List[str]
    format: PasteFormat
    date: datetime
    bot_score: Decimal
    last_seen: datetime
    storage_key: str = ""
    storage_byte_len: int = 0
    alt_storage_id: Optional[str] = None
    alt_storage_url: Optional[str] = None
    views: int = 0

    @classmethod
    def from_row(cls, row):
        return cls(
            paste_id=row["paste_id"],
            user_id=row["user_id"],
            session_id=row["session_id"],
            title=row["title"],
            tags=list(row["tags"] or []),
            format=PasteFormat.from_stored(row["format"]),
            date=row["date"],
            bot_score=row["bot_score"],
            last_seen=row["last_seen"],
            storage_key=row["storage_key"],
            storage_byte_len=row["storage_byte_len"],
            alt_storage_id=row["alt_storage_id"],
            alt_storage_url=row["alt_storage_url"],
            views=row["views"],
        )

    def to_row(self):
        return (
            self.paste_id,
            self.user_id,
            self.session_id,
            self.title,
            self.tags,
            self.format.value,
            self.date,
            self.alt_storage_id,
            self.alt_storage_url,
            self.storage_key,
            self.storage_byte_len,
            self.bot_score,
            self.views,
            self.last_seen,
        )

    @property
    def is_alt_backend(self):
        return self.alt_storage_url is not None

    @property
    def display_title(self):
        return self.title or self.paste_id

    @property
    def filename(self):
        return f"{self.paste_id}.{self.format.extension}"

    def content_url(self, bucket_url):
        if self.is_alt_backend:
            return f"/pastebinc/{self.paste_id}/content"
        return f"{bucket_url}{self.storage_key}"

    def is_owned_by(self, user_id, recent_paste_ids=()):
        if user_id is not None and user_id == self.user_id:
            return True
        return self.paste_id in recent_paste_ids

    def to_dict(self, bucket_url=""):
        return {
            "paste_id": self.paste_id,
            "title": self.display_title,
            "tags": self.tags,
            "format": self.format.display_name,
            "date": self.date.isoformat(),
            "views": self.views,
            "content_type": self.format.content_type,
            "content_url": self.content_url(bucket_url),
            "storage_key": self.storage_key,
        }


@dataclass
class PasteSummary:
    paste_id: str
    title: Optional[str]
    tags: List[str]
    format: PasteFormat
    date: datetime
    views: int

    @classmethod
    def from_row(cls, row):
        return cls(
            paste_id=row["paste_id"],
            title=row["title"],
            tags=list(row["tags"] or []),
            format=PasteFormat.from_stored(row["format"]),
            date=row["date"],
            views=row["views"],
        )

    def to_dict(self):
        return {
            "paste_id": self.paste_id,
            "title": self.title or self.paste_id,
            "tags": self.tags,
            "format": self.format.display_name,
            "date": self.date.isoformat(),
            "views": self.views,
        }


@dataclass
class SearchResult:
    tags: List[str]
    page: int
    pastes: List[PasteSummary] = field(default_factory=list)

    @property
    def next_page(self):
        return self.page + 1

    def to_dict(self):
        return {
            "page": self.next_page,
            "pastes": [p.to_dict() for p in self.pastes],
            "tags": self.tags,
        }
