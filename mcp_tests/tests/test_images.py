import pytest

from core.errors import DecodeError
from core.images import CachedImage, decode_image, sniff_mime_type


@pytest.mark.parametrize(
    "data, mime",
    [
        (b"\x89PNG\r\n\x1a\n....", "image/png"),
        (b"\xff\xd8\xff\xdb....", "image/jpeg"),
        (b"GIF89a....", "image/gif"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"\x00\x00\x00\x18ftypheic....", "image/heic"),
    ],
)
def test_sniff_known_formats(data, mime):
    assert sniff_mime_type(data) == mime


@pytest.mark.parametrize("data", [b"", b"<html>not an image</html>", b"RIFF\x00\x00\x00\x00WAVE"])
def test_sniff_rejects_unknown_payloads(data):
    with pytest.raises(DecodeError):
        sniff_mime_type(data)


def test_decode_image(png_bytes):
    image = decode_image(bytearray(png_bytes))

    assert image == CachedImage(data=png_bytes, mime_type="image/png")
    assert image.cost == len(png_bytes)
