"""
Tests for upload encoding and downloads.
"""
import base64
import io

import httpx
import pytest
from PIL import Image

from dance_video.errors import TransportError, ValidationError
from dance_video.media import bytes_to_data_uri, download_file, image_to_data_uri


def png_bytes(size=(8, 8)):
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestDataUri:
    def test_png_bytes(self):
        data = png_bytes()
        uri = bytes_to_data_uri(data)
        assert uri.startswith("data:image/png;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]) == data

    def test_jpeg_file(self, tmp_path):
        path = tmp_path / "photo.jpg"
        Image.new("RGB", (8, 8)).save(path, format="JPEG")
        assert image_to_data_uri(str(path)).startswith("data:image/jpeg;base64,")

    def test_rejects_oversized_upload(self):
        with pytest.raises(ValidationError, match="smaller than"):
            bytes_to_data_uri(png_bytes(), max_bytes=10)

    def test_rejects_non_image(self):
        with pytest.raises(ValidationError):
            bytes_to_data_uri(b"definitely not an image")

    def test_rejects_empty_and_missing(self, tmp_path):
        with pytest.raises(ValidationError):
            bytes_to_data_uri(b"")
        with pytest.raises(ValidationError):
            image_to_data_uri(str(tmp_path / "missing.png"))


class TestDownload:
    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"mp4-bytes"))
        target = tmp_path / "out" / "video.mp4"
        await download_file("https://cdn.test/v.mp4", str(target), transport=transport)
        assert target.read_bytes() == b"mp4-bytes"

    @pytest.mark.asyncio
    async def test_http_error(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        with pytest.raises(TransportError):
            await download_file("https://cdn.test/missing.mp4", str(tmp_path / "v.mp4"), transport=transport)
