"""Recognise image formats and read their headers.

Supported formats are JPEG, PNG, binary PPM/PGM (P6/P5) and uncompressed
24 or 32 bit BMP.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

PNG_COLOR_GREYSCALE = 0
PNG_COLOR_RGB = 2
PNG_COLOR_INDEXED = 3
PNG_COLOR_GREYSCALE_A = 4
PNG_COLOR_RGBA = 6

_PNG_CHANNELS = {
    PNG_COLOR_GREYSCALE: 1,
    PNG_COLOR_RGB: 3,
    PNG_COLOR_INDEXED: 1,
    PNG_COLOR_GREYSCALE_A: 2,
    PNG_COLOR_RGBA: 4,
}

# Start-of-frame markers; 0xc4 (DHT), 0xc8 (JPG) and 0xcc (DAC) share the range.
_JPEG_SOF_MARKERS = frozenset(range(0xC0, 0xD0)) - {0xC4, 0xC8, 0xCC}
_JPEG_STANDALONE = frozenset({0x01, *range(0xD0, 0xD8)})

_BMP_HEADER = struct.Struct("<IHHIIiiHHI")


class ImageError(ValueError):
    """Raised when image data cannot be recognised or parsed."""


class ImageFormat(enum.Enum):
    """Image formats that can be embedded in a document."""

    PNG = "png"
    JPG = "jpg"
    PPM = "ppm"
    BMP = "bmp"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ImageInfo:
    """Metadata read from an image header."""

    format: ImageFormat
    width: int
    height: int
    bit_depth: int = 8
    channels: int = 3
    color_type: int | None = None
    interlaced: bool = False
    data_offset: int = 0
    data_size: int | None = None
    compression: int = 0
    top_down: bool = False

    @property
    def is_greyscale(self) -> bool:
        """True when the image carries one colour channel (plus alpha)."""
        return self.channels in (1, 2) and self.color_type != PNG_COLOR_INDEXED


def detect_format(data: bytes) -> ImageFormat:
    """Return the format of *data* judged by its leading bytes."""
    data = bytes(data[:8])
    if data.startswith(PNG_SIGNATURE):
        return ImageFormat.PNG
    if data.startswith(b"\xff\xd8"):
        return ImageFormat.JPG
    if data[:2] in (b"P5", b"P6"):
        return ImageFormat.PPM
    if data.startswith(b"BM"):
        return ImageFormat.BMP
    return ImageFormat.UNKNOWN


def parse_image_header(data: bytes) -> ImageInfo:
    """Parse the header of *data* and return its metadata.

    Raises ImageError if the format is unknown, unsupported or truncated.
    """
    data = bytes(data)
    fmt = detect_format(data)
    parsers = {
        ImageFormat.PNG: _parse_png,
        ImageFormat.JPG: _parse_jpeg,
        ImageFormat.PPM: _parse_ppm,
        ImageFormat.BMP: _parse_bmp,
    }
    try:
        parser = parsers[fmt]
    except KeyError:
        raise ImageError("unknown image format") from None
    return parser(data)


def _parse_png(data: bytes) -> ImageInfo:
    start = len(PNG_SIGNATURE)
    chunk = data[start : start + 8 + 13]
    if len(chunk) < 21:
        raise ImageError("PNG data too short for IHDR chunk")
    length, chunk_type = struct.unpack(">I4s", chunk[:8])
    if chunk_type != b"IHDR" or length != 13:
        raise ImageError("PNG does not start with a valid IHDR chunk")
    width, height, bit_depth, color_type, deflate, filtering, interlace = struct.unpack(
        ">IIBBBBB", chunk[8:]
    )
    if width == 0 or height == 0:
        raise ImageError(f"invalid PNG dimensions {width}x{height}")
    if color_type not in _PNG_CHANNELS:
        raise ImageError(f"invalid PNG colour type {color_type}")
    if bit_depth not in (1, 2, 4, 8, 16):
        raise ImageError(f"invalid PNG bit depth {bit_depth}")
    if deflate != 0 or filtering != 0:
        raise ImageError("unsupported PNG compression or filter method")
    return ImageInfo(
        format=ImageFormat.PNG,
        width=width,
        height=height,
        bit_depth=bit_depth,
        channels=_PNG_CHANNELS[color_type],
        color_type=color_type,
        interlaced=bool(interlace),
    )


def _parse_jpeg(data: bytes) -> ImageInfo:
    pos = 2
    size = len(data)
    while pos < size:
        if data[pos] != 0xFF:
            raise ImageError(f"malformed JPEG marker at offset {pos}")
        while pos < size and data[pos] == 0xFF:
            pos += 1
        if pos >= size:
            break
        marker = data[pos]
        pos += 1
        if marker in _JPEG_STANDALONE:
            continue
        if marker in (0xD9, 0xDA):
            raise ImageError("JPEG has no frame header before image data")
        if pos + 2 > size:
            break
        (length,) = struct.unpack(">H", data[pos : pos + 2])
        if length < 2:
            raise ImageError(f"invalid JPEG segment length {length}")
        if marker in _JPEG_SOF_MARKERS:
            if pos + 8 > size:
                break
            precision, height, width, components = struct.unpack(
                ">BHHB", data[pos + 2 : pos + 8]
            )
            if width == 0 or height == 0:
                raise ImageError(f"invalid JPEG dimensions {width}x{height}")
            return ImageInfo(
                format=ImageFormat.JPG,
                width=width,
                height=height,
                bit_depth=precision,
                channels=components,
            )
        pos += length
    raise ImageError("truncated JPEG: no frame header found")


def _ppm_fields(data: bytes, count: int) -> tuple[list[bytes], int]:
    """Read *count* whitespace-separated fields, skipping comments."""
    fields: list[bytes] = []
    pos = 0
    size = len(data)
    while len(fields) < count:
        while pos < size and (data[pos : pos + 1].isspace() or data[pos] == ord("#")):
            if data[pos] == ord("#"):
                end = data.find(b"\n", pos)
                pos = size if end < 0 else end
            pos += 1
        start = pos
        while pos < size and not data[pos : pos + 1].isspace() and data[pos] != ord("#"):
            pos += 1
        if start == pos:
            raise ImageError("truncated PPM header")
        fields.append(data[start:pos])
    return fields, pos


def _parse_ppm(data: bytes) -> ImageInfo:
    (magic, raw_width, raw_height, raw_max), pos = _ppm_fields(data, 4)
    try:
        width, height, maxval = int(raw_width), int(raw_height), int(raw_max)
    except ValueError:
        raise ImageError("non-numeric field in PPM header") from None
    if width <= 0 or height <= 0:
        raise ImageError(f"invalid PPM dimensions {width}x{height}")
    if not 0 < maxval <= 255:
        raise ImageError(f"unsupported PPM maximum value {maxval}")
    if pos >= len(data) or not data[pos : pos + 1].isspace():
        raise ImageError("PPM header not followed by whitespace")
    begin = pos + 1
    channels = 3 if magic == b"P6" else 1
    data_size = width * height * channels
    if len(data) - begin < data_size:
        raise ImageError("PPM pixel data is truncated")
    return ImageInfo(
        format=ImageFormat.PPM,
        width=width,
        height=height,
        channels=channels,
        data_offset=begin,
        data_size=data_size,
    )


def _parse_bmp(data: bytes) -> ImageInfo:
    header = data[2 : 2 + _BMP_HEADER.size]
    if len(header) < _BMP_HEADER.size:
        raise ImageError("BMP data too short for header")
    (
        file_size,
        _reserved1,
        _reserved2,
        offset,
        info_size,
        width,
        height,
        planes,
        bit_count,
        compression,
    ) = _BMP_HEADER.unpack(header)
    if info_size < 40:
        raise ImageError(f"unsupported BMP info header size {info_size}")
    if width <= 0 or height == 0:
        raise ImageError(f"invalid BMP dimensions {width}x{height}")
    if planes != 1:
        raise ImageError(f"invalid BMP plane count {planes}")
    if bit_count not in (24, 32) or compression != 0:
        raise ImageError(
            f"unsupported BMP encoding: {bit_count} bits, compression {compression}"
        )
    if offset > len(data):
        raise ImageError("BMP pixel data offset beyond end of data")
    return ImageInfo(
        format=ImageFormat.BMP,
        width=width,
        height=abs(height),
        channels=bit_count // 8,
        data_offset=offset,
        data_size=file_size,
        compression=compression,
        top_down=height < 0,
    )