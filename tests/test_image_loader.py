import io
import os
import tempfile
import unittest
from unittest import mock

import requests
from PIL import Image

from gst_canvas.core.image_loader import (
    ImageLoader,
    ImageLoadError,
    decode_data_url,
    encode_data_url,
)


def png_bytes(size=(4, 2)):
    buffer = io.BytesIO()
    Image.new("RGB", size, "blue").save(buffer, format="PNG")
    return buffer.getvalue()


class ImageLoaderTest(unittest.TestCase):
    def test_file_is_reencoded_as_png_data_url(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "logo.jpg")
            Image.new("RGB", (12, 7), "red").save(path, format="JPEG")
            loaded = ImageLoader().load(path)
        self.assertEqual((loaded.width, loaded.height), (12, 7))
        self.assertTrue(loaded.data_url.startswith("data:image/png;base64,"))

    def test_data_url_source(self):
        url = encode_data_url(Image.new("RGBA", (3, 5)))
        loaded = ImageLoader().load(url)
        self.assertEqual((loaded.width, loaded.height), (3, 5))

    def test_missing_file(self):
        with self.assertRaises(ImageLoadError):
            ImageLoader().load("/no/such/file.png")

    def test_empty_reference(self):
        with self.assertRaises(ImageLoadError):
            ImageLoader().load("")

    def test_garbage_bytes(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "notes.png")
            with open(path, "wb") as f:
                f.write(b"definitely not an image")
            with self.assertRaises(ImageLoadError):
                ImageLoader().load(path)

    def test_broken_data_urls(self):
        with self.assertRaises(ImageLoadError):
            decode_data_url("data:image/png;base64,@@@")
        with self.assertRaises(ImageLoadError):
            decode_data_url("data:text/plain,hello")
        with self.assertRaises(ImageLoadError):
            decode_data_url("https://example.com/a.png")

    def test_http_download(self):
        session = mock.Mock()
        session.get.return_value.content = png_bytes((8, 8))
        loaded = ImageLoader(session=session, timeout=3).load("https://example.com/logo.png")
        session.get.assert_called_once_with("https://example.com/logo.png", timeout=3)
        self.assertEqual((loaded.width, loaded.height), (8, 8))

    def test_http_failure(self):
        session = mock.Mock()
        session.get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(ImageLoadError):
            ImageLoader(session=session).load("http://example.com/logo.png")

    def test_http_error_status(self):
        session = mock.Mock()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404")
        with self.assertRaises(ImageLoadError):
            ImageLoader(session=session).load("http://example.com/missing.png")


if __name__ == "__main__":
    unittest.main()
