"""Read the pixel size of a JPEG image from its baseline frame header."""

from __future__ import annotations

from pathlib import Path

_SOI = 0xD8
_EOI = 0xD9
_SOF0 = 0xC0
_STANDALONE = frozenset({0x01, *range(0xD0, 0xD8)})


class JpegError(ValueError):
    """Raised when JPEG data holds no readable frame header."""


def jpeg_dimensions(data: bytes) -> tuple[int, int]:
    """Return ``(width, height)`` from the first SOF0 segment of *data*."""
    data = bytes(data)
    size = len(data)
    pos = 0
    while pos < size:
        while pos < size and data[pos] == 0xFF:
            pos += 1
        if pos >= size:
            break
        marker = data[pos]
        pos += 1
        if marker == _SOI or marker in _STANDALONE:
            continue
        if marker == _EOI:
            break
        if pos + 2 > size:
            raise JpegError("truncated JPEG segment length")
        length = int.from_bytes(data[pos : pos + 2], "big")
        pos += 2
        if marker == _SOF0:
            if pos + 5 > size:
                raise JpegError("truncated JPEG frame header")
            height = int.from_bytes(data[pos + 1 : pos + 3], "big")
            width = int.from_bytes(data[pos + 3 : pos + 5], "big")
            return width, height
        if length < 2:
            raise JpegError(f"invalid JPEG segment length {length}")
        pos += length - 2
    raise JpegError("no baseline frame header found in JPEG data")


def read_jpeg_dimensions(path: str | Path) -> tuple[int, int]:
    """Return ``(width, height)`` of the JPEG file at *path*."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise JpegError(f"Failed to read file {path}: {exc}") from exc
    return jpeg_dimensions(data)