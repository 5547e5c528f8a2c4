import secrets
import string

PASTE_ID_LENGTH = 8
ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits
URL_SAFE = ALPHANUMERIC + "-_.~"


def generate_paste_id(length=PASTE_ID_LENGTH):
    """
    Generate a random paste identifier, about 3 * 10^17 of them for the
    default length.

    The first and last characters are alphanumeric so an identifier never
    starts or ends with a character that could be mistaken for punctuation
    in a URL or a filename.
    """
    inner = "".join(secrets.choice(URL_SAFE) for _ in range(length - 2))
    return secrets.choice(ALPHANUMERIC) + inner + secrets.choice(ALPHANUMERIC)


def canonical_paste_id(paste_id):
    return (paste_id or "")[:PASTE_ID_LENGTH]
