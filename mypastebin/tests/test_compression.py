import unittest

import brotli

from mypastebin import compression
from mypastebin.models import Destination


class TestCompress(unittest.TestCase):
    def test_small_content_is_identity(self):
        data, encoding = compression.compress("hello")
        self.assertEqual(encoding, "identity")
        self.assertEqual(data, b"hello")

    def test_threshold_counts_bytes(self):
        # 512 characters, 1024 bytes once encoded.
        content = "é" * 512
        _, encoding = compression.compress(content)
        self.assertEqual(encoding, "br")

    def test_large_content_is_brotli(self):
        content = "lorem ipsum dolor sit amet " * 100
        data, encoding = compression.compress(content)
        self.assertEqual(encoding, "br")
        self.assertEqual(brotli.decompress(data).decode(), content)
        self.assertEqual(compression.decompress(data, encoding), content)

    def test_alternate_backend_is_never_compressed(self):
        content = "x" * 5000
        data, encoding = compression.compress(content, Destination.GDRIVE)
        self.assertEqual(encoding, "identity")
        self.assertEqual(data, content.encode())


class TestCompressInExecutor(unittest.IsolatedAsyncioTestCase):
    async def test_matches_compress(self):
        content = "abc" * 1000
        self.assertEqual(
            await compression.compress_in_executor(content),
            compression.compress(content),
        )
