import math
import unicodedata
from datetime import datetime, timezone
from decimal import Decimal

from .errors import ValidationError
from .identifiers import generate_paste_id
from .models import Destination, Paste, PasteFormat

MAX_TITLE_LENGTH = 50
MAX_TAG_LENGTH = 15
MAX_TAGS = 15
BOT_SCORE_PRECISION = Decimal("0.0001")


def is_control(char):
    return unicodedata.category(char) == "Cc"


def check_text(name, value, required=False):
    if value is None and not required:
        return
    if not isinstance(value, str):
        raise ValidationError(f"The {name} must be a string")


def normalize_title(title):
    title = "".join(c for c in (title or "") if not is_control(c)).strip()
    return title[:MAX_TITLE_LENGTH].rstrip()


def fix_tags(tags):
    """
    Split a space-separated tag string into lowercase alphanumeric tags of
    at most 15 characters each. Empty tags are dropped.
    """
    result = []
    for tag in (tags or "").split():
        tag = "".join(c for c in tag.lower() if c.isalnum())
        if tag:
            result.append(tag[:MAX_TAG_LENGTH])
    return result


def normalize_tags(tags):
    if isinstance(tags, (list, tuple)):
        tags = " ".join(tags)
    # Keep the first-seen order, so no set.
    unique_tags = []
    for tag in fix_tags(tags):
        if tag not in unique_tags:
            unique_tags.append(tag)
        if len(unique_tags) >= MAX_TAGS:
            break
    return unique_tags


def wrap_bot_score(score):
    try:
        score = float(score)
    except (TypeError, ValueError):
        raise ValidationError("Invalid score")
    if not math.isfinite(score) or not 0 <= score <= 1:
        raise ValidationError("Invalid score")
    return Decimal(repr(score)).quantize(BOT_SCORE_PRECISION)


def build_paste(form, score, user_id=None, session_id=None):
    """
    Validate a submitted form and build the paste it describes.

    The returned paste has a fresh identifier but no storage location yet,
    the engine fills those in while saving it.

    :returns: tuple (paste, destination)
    """
    check_text("content", form.content, required=True)
    if not form.content:
        raise ValidationError("Content is empty!")
    for name in ("title", "tags"):
        check_text(name, getattr(form, name))

    fmt = PasteFormat.parse(form.format)
    destination = Destination.parse(form.destination)
    now = datetime.now(timezone.utc)

    paste = Paste(
        paste_id=generate_paste_id(),
        user_id=user_id,
        session_id=session_id,
        title=normalize_title(form.title),
        tags=normalize_tags(form.tags),
        format=fmt,
        date=now,
        bot_score=wrap_bot_score(score),
        last_seen=now,
    )
    return paste, destination
