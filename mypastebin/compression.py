import asyncio
from functools import partial

import brotli

from .models import Destination

MIN_COMPRESS_SIZE = 1024
BROTLI_QUALITY = 6
BROTLI_WINDOW = 22
IDENTITY = "identity"
BROTLI = "br"


def compress(content, destination=Destination.DATASTORE, encoding="utf-8"):
    """
    Encode paste content for storage.

    Tiny pastes are not worth compressing, and the alternate backend serves
    files as they are, so both are stored with the ``identity`` encoding.

    :returns: tuple (payload bytes, content encoding)
    """
    data = content.encode(encoding)
    if destination is Destination.GDRIVE or len(data) < MIN_COMPRESS_SIZE:
        return data, IDENTITY
    return (
        brotli.compress(data, quality=BROTLI_QUALITY, lgwin=BROTLI_WINDOW),
        BROTLI,
    )


async def compress_in_executor(
    content, destination=Destination.DATASTORE, encoding="utf-8"
):
    return await asyncio.get_running_loop().run_in_executor(
        None, partial(compress, content, destination, encoding)
    )


def decompress(data, content_encoding, encoding="utf-8"):
    if content_encoding == BROTLI:
        data = brotli.decompress(data)
    return data.decode(encoding)
