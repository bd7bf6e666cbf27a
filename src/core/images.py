"""Image payload record and format sniffing.

Payloads are recognised by their leading signature bytes; anything that is
not a known image container is rejected with DecodeError.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import DecodeError


@dataclass(frozen=True)
class CachedImage:
    data: bytes
    mime_type: str

    @property
    def cost(self) -> int:
        return len(self.data)


def sniff_mime_type(data: bytes) -> str:
    """Return the MIME type for a known image signature or raise DecodeError."""
    if not data:
        raise DecodeError("Empty image payload")

    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    # ISO-BMFF: size(4) + "ftyp" + brand(4)
    if len(data) >= 12 and data[4:8] == b"ftyp" and data[8:12] in (b"heic", b"heix", b"mif1", b"msf1"):
        return "image/heic"

    raise DecodeError("Unrecognised image payload")


def decode_image(data: bytes) -> CachedImage:
    return CachedImage(data=bytes(data), mime_type=sniff_mime_type(data))
