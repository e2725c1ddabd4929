"""A small PDF writer: pages, standard-font text and embedded images."""

from __future__ import annotations

import struct
import sys
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from vidpdf.images import (
    PNG_COLOR_GREYSCALE_A,
    PNG_COLOR_INDEXED,
    PNG_COLOR_RGBA,
    PNG_SIGNATURE,
    ImageError,
    ImageFormat,
    ImageInfo,
    parse_image_header,
)


def _mm_to_point(mm: float) -> float:
    return mm * 72.0 / 25.4


def _inch_to_point(inch: float) -> float:
    return inch * 72.0


LETTER_WIDTH = _inch_to_point(8.5)
LETTER_HEIGHT = _inch_to_point(11.0)
A4_WIDTH = _mm_to_point(210.0)
A4_HEIGHT = _mm_to_point(297.0)
A3_WIDTH = _mm_to_point(297.0)
A3_HEIGHT = _mm_to_point(420.0)

DEFAULT_FONT = "Times-Roman"
_INFO_FIELD_LIMIT = 63


def rgb(r: int, g: int, b: int) -> int:
    """Pack three 8-bit channels into a 24-bit colour value."""
    return ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


BLACK = rgb(0, 0, 0)
WHITE = rgb(0xFF, 0xFF, 0xFF)
RED = rgb(0xFF, 0, 0)
GREEN = rgb(0, 0xFF, 0)
BLUE = rgb(0, 0, 0xFF)


class PdfError(ValueError):
    """Raised when a document operation cannot be carried out."""


@dataclass
class PdfInfo:
    """Metadata written into the document information dictionary."""

    creator: str = ""
    producer: str = ""
    title: str = ""
    author: str = ""
    subject: str = ""
    date: str = ""


# --- font metrics -----------------------------------------------------------
# Advance widths (1/1000 em) for character codes 32..126, grouped as:
# punctuation 32-47, digit width, punctuation 58-64, A-Z, 91-96, a-z, 123-126.


def _metrics(
    punct1: str, digit: int, punct2: str, upper: str, punct3: str, lower: str, punct4: str
) -> tuple[int, ...]:
    widths = (
        [int(w) for w in punct1.split()]
        + [digit] * 10
        + [int(w) for w in punct2.split()]
        + [int(w) for w in upper.split()]
        + [int(w) for w in punct3.split()]
        + [int(w) for w in lower.split()]
        + [int(w) for w in punct4.split()]
    )
    assert len(widths) == 95
    return tuple(widths)


_TIMES_ROMAN = _metrics(
    "250 333 408 500 500 833 778 333 333 333 500 564 250 333 250 278",
    500,
    "278 278 564 564 564 444 921",
    "722 667 667 722 611 556 722 722 333 389 722 611 889 722 722 556 722 667 556 611 "
    "722 722 944 722 722 611",
    "333 278 333 469 500 333",
    "444 500 444 500 444 333 500 500 278 278 500 278 778 500 500 500 500 333 389 278 "
    "500 500 722 500 500 444",
    "480 200 480 541",
)
_TIMES_BOLD = _metrics(
    "250 333 555 500 500 1000 833 333 333 333 500 570 250 333 250 278",
    500,
    "333 333 570 570 570 500 930",
    "722 667 722 722 667 611 778 778 389 500 778 667 944 722 778 611 778 722 556 667 "
    "722 722 1000 722 722 667",
    "333 278 333 581 500 333",
    "500 556 444 556 444 333 500 556 278 333 556 278 833 556 500 556 556 444 389 333 "
    "556 500 722 500 500 444",
    "394 220 394 520",
)
_TIMES_ITALIC = _metrics(
    "250 333 420 500 500 833 778 333 333 333 500 675 250 333 250 278",
    500,
    "333 333 675 675 675 500 920",
    "611 611 667 722 611 611 722 722 333 444 667 556 833 667 722 611 722 611 500 556 "
    "722 611 833 611 556 556",
    "389 278 389 422 500 333",
    "500 500 444 500 444 278 500 500 278 278 444 278 722 500 500 500 500 389 389 278 "
    "500 444 667 444 444 389",
    "400 275 400 541",
)
_TIMES_BOLD_ITALIC = _metrics(
    "250 389 555 500 500 833 778 333 333 333 500 570 250 333 250 278",
    500,
    "333 333 570 570 570 500 832",
    "667 667 667 722 667 667 722 778 389 500 667 611 889 722 722 611 722 667 556 611 "
    "722 667 889 667 611 611",
    "333 278 333 570 500 333",
    "500 500 444 500 444 333 500 556 278 278 500 278 778 556 500 500 500 389 389 278 "
    "556 444 667 500 444 389",
    "348 220 348 570",
)
_HELVETICA = _metrics(
    "278 278 355 556 556 889 667 222 333 333 389 584 278 333 278 278",
    556,
    "278 278 584 584 584 556 1015",
    "667 667 722 722 667 611 778 722 278 500 667 556 833 722 778 667 778 722 667 611 "
    "722 667 944 667 667 611",
    "278 278 278 469 556 222",
    "556 556 500 556 556 278 556 556 222 222 500 222 833 556 556 556 556 333 500 278 "
    "556 500 722 500 500 500",
    "334 260 334 584",
)
_HELVETICA_BOLD = _metrics(
    "278 333 474 556 556 889 722 278 333 333 389 584 278 333 278 278",
    556,
    "333 333 584 584 584 611 975",
    "722 722 722 722 667 611 778 722 278 556 722 611 833 722 778 667 778 722 667 611 "
    "722 667 944 667 667 611",
    "333 278 333 584 556 278",
    "556 611 556 611 556 333 611 611 278 278 556 278 889 611 611 611 611 389 556 333 "
    "611 556 778 556 556 500",
    "389 280 389 584",
)
_COURIER = tuple([600] * 95)

_FONT_METRICS: dict[str, tuple[int, ...]] = {
    "Times-Roman": _TIMES_ROMAN,
    "Times-Bold": _TIMES_BOLD,
    "Times-Italic": _TIMES_ITALIC,
    "Times-BoldItalic": _TIMES_BOLD_ITALIC,
    "Helvetica": _HELVETICA,
    "Helvetica-Oblique": _HELVETICA,
    "Helvetica-Bold": _HELVETICA_BOLD,
    "Helvetica-BoldOblique": _HELVETICA_BOLD,
    "Courier": _COURIER,
    "Courier-Bold": _COURIER,
    "Courier-Oblique": _COURIER,
    "Courier-BoldOblique": _COURIER,
}


def _char_width(metrics: tuple[int, ...], code: int) -> int:
    if 32 <= code <= 126:
        return metrics[code - 32]
    # Codes without tabulated metrics are given the figure width.
    return metrics[ord("0") - 32]


# --- helpers ----------------------------------------------------------------


def _num(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _encode_text(text: str) -> bytes:
    try:
        return text.encode("cp1252")
    except UnicodeEncodeError as exc:
        raise PdfError(f"text contains unsupported characters: {text!r}") from exc


def _pdf_string(raw: bytes) -> str:
    parts = []
    for byte in raw:
        if byte in (0x28, 0x29, 0x5C):
            parts.append("\\" + chr(byte))
        elif 32 <= byte <= 126:
            parts.append(chr(byte))
        else:
            parts.append(f"\\{byte:03o}")
    return "(" + "".join(parts) + ")"


def _colour_ops(colour: int) -> str:
    r, g, b = ((colour >> shift) & 0xFF for shift in (16, 8, 0))
    return f"{_num(r / 255)} {_num(g / 255)} {_num(b / 255)}"


def _stream(dictionary: str, data: bytes) -> bytes:
    head = f"<< {dictionary} /Length {len(data)} >>\nstream\n".encode("ascii")
    return head + data + b"\nendstream"


# --- images -----------------------------------------------------------------


@dataclass
class _Image:
    dictionary: str
    data: bytes
    smask: _Image | None = None


def _png_chunks(data: bytes):
    pos = len(PNG_SIGNATURE)
    while pos + 8 <= len(data):
        length, kind = struct.unpack(">I4s", data[pos : pos + 8])
        body = data[pos + 8 : pos + 8 + length]
        if len(body) < length:
            raise PdfError("truncated PNG chunk")
        yield kind, body
        if kind == b"IEND":
            return
        pos += 12 + length


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    return b if pb <= pc else c


def _png_unfilter(raw: bytes, height: int, row_bytes: int, bpp: int) -> bytes:
    out = bytearray()
    prev = bytearray(row_bytes)
    stride = row_bytes + 1
    if len(raw) < stride * height:
        raise PdfError("PNG image data is truncated")
    for start in range(0, stride * height, stride):
        kind = raw[start]
        line = bytearray(raw[start + 1 : start + stride])
        if kind == 1:
            for i in range(bpp, row_bytes):
                line[i] = (line[i] + line[i - bpp]) & 0xFF
        elif kind == 2:
            line = bytearray((x + y) & 0xFF for x, y in zip(line, prev))
        elif kind == 3:
            for i in range(row_bytes):
                left = line[i - bpp] if i >= bpp else 0
                line[i] = (line[i] + ((left + prev[i]) >> 1)) & 0xFF
        elif kind == 4:
            for i in range(row_bytes):
                left = line[i - bpp] if i >= bpp else 0
                upleft = prev[i - bpp] if i >= bpp else 0
                line[i] = (line[i] + _paeth(left, prev[i], upleft)) & 0xFF
        elif kind != 0:
            raise PdfError(f"invalid PNG filter type {kind}")
        out += line
        prev = line
    return bytes(out)


def _png_image(data: bytes, info: ImageInfo) -> _Image:
    if info.interlaced:
        raise PdfError("interlaced PNG images are not supported")
    palette = b""
    idat = bytearray()
    for kind, body in _png_chunks(data):
        if kind == b"PLTE":
            palette = body
        elif kind == b"IDAT":
            idat += body
    if not idat:
        raise PdfError("PNG has no image data")
    base = f"/Type /XObject /Subtype /Image /Width {info.width} /Height {info.height}"
    bits = info.bit_depth

    if info.color_type in (PNG_COLOR_GREYSCALE_A, PNG_COLOR_RGBA):
        sample = bits // 8
        colour_channels = info.channels - 1
        bpp = info.channels * sample
        try:
            raw = zlib.decompress(bytes(idat))
        except zlib.error as exc:
            raise PdfError("corrupt PNG image data") from exc
        pixels = _png_unfilter(raw, info.height, info.width * bpp, bpp)
        colour = bytearray()
        alpha = bytearray()
        for start in range(0, len(pixels), bpp):
            colour += pixels[start : start + colour_channels * sample]
            alpha += pixels[start + colour_channels * sample : start + bpp]
        space = "/DeviceGray" if colour_channels == 1 else "/DeviceRGB"
        smask = _Image(
            f"{base} /ColorSpace /DeviceGray /BitsPerComponent {bits} /Filter /FlateDecode",
            zlib.compress(bytes(alpha)),
        )
        return _Image(
            f"{base} /ColorSpace {space} /BitsPerComponent {bits} /Filter /FlateDecode",
            zlib.compress(bytes(colour)),
            smask,
        )

    if info.color_type == PNG_COLOR_INDEXED:
        if not palette or len(palette) % 3:
            raise PdfError("indexed PNG has no valid palette")
        space = f"[/Indexed /DeviceRGB {len(palette) // 3 - 1} <{palette.hex()}>]"
    elif info.channels == 1:
        space = "/DeviceGray"
    else:
        space = "/DeviceRGB"
    parms = (
        f"/DecodeParms << /Predictor 15 /Colors {info.channels} "
        f"/BitsPerComponent {bits} /Columns {info.width} >>"
    )
    return _Image(
        f"{base} /ColorSpace {space} /BitsPerComponent {bits} /Filter /FlateDecode {parms}",
        bytes(idat),
    )


def _jpeg_image(data: bytes, info: ImageInfo) -> _Image:
    spaces = {1: "/DeviceGray", 3: "/DeviceRGB", 4: "/DeviceCMYK"}
    try:
        space = spaces[info.channels]
    except KeyError:
        raise PdfError(f"unsupported JPEG component count {info.channels}") from None
    return _Image(
        f"/Type /XObject /Subtype /Image /Width {info.width} /Height {info.height} "
        f"/ColorSpace {space} /BitsPerComponent 8 /Filter /DCTDecode",
        data,
    )


def _ppm_image(data: bytes, info: ImageInfo) -> _Image:
    pixels = data[info.data_offset : info.data_offset + (info.data_size or 0)]
    space = "/DeviceGray" if info.channels == 1 else "/DeviceRGB"
    return _Image(
        f"/Type /XObject /Subtype /Image /Width {info.width} /Height {info.height} "
        f"/ColorSpace {space} /BitsPerComponent 8 /Filter /FlateDecode",
        zlib.compress(pixels),
    )


def _bmp_image(data: bytes, info: ImageInfo) -> _Image:
    channels = info.channels
    stride = ((info.width * channels * 8 + 31) // 32) * 4
    start = info.data_offset
    if len(data) < start + stride * info.height:
        raise PdfError("BMP pixel data is truncated")
    rows = [data[start + n * stride : start + n * stride + info.width * channels]
            for n in range(info.height)]
    if not info.top_down:
        rows.reverse()
    out = bytearray()
    for row in rows:
        line = bytearray(info.width * 3)
        line[0::3] = row[2::channels]
        line[1::3] = row[1::channels]
        line[2::3] = row[0::channels]
        out += line
    return _Image(
        f"/Type /XObject /Subtype /Image /Width {info.width} /Height {info.height} "
        f"/ColorSpace /DeviceRGB /BitsPerComponent 8 /Filter /FlateDecode",
        zlib.compress(bytes(out)),
    )


_IMAGE_BUILDERS = {
    ImageFormat.PNG: _png_image,
    ImageFormat.JPG: _jpeg_image,
    ImageFormat.PPM: _ppm_image,
    ImageFormat.BMP: _bmp_image,
}


# --- document ---------------------------------------------------------------


@dataclass
class _Page:
    width: float
    height: float
    ops: list[str] = field(default_factory=list)
    images: list[int] = field(default_factory=list)


class PdfDocument:
    """A PDF document built page by page and written out in one piece."""

    def __init__(
        self,
        width: float = A4_WIDTH,
        height: float = A4_HEIGHT,
        info: PdfInfo | None = None,
    ) -> None:
        self.width = width
        self.height = height
        self.info = info or PdfInfo()
        self.font = DEFAULT_FONT
        self._fonts: dict[str, str] = {}
        self._pages: list[_Page] = []
        self._images: list[_Image] = []

    @property
    def page_count(self) -> int:
        """Number of pages appended so far."""
        return len(self._pages)

    def set_font(self, font: str) -> None:
        """Select one of the standard fonts for subsequent text."""
        if font not in _FONT_METRICS:
            raise PdfError(f"unknown font {font!r}")
        self.font = font

    def append_page(self) -> _Page:
        """Add a page with the document's size and make it current."""
        page = _Page(self.width, self.height)
        self._pages.append(page)
        return page

    def _current_page(self) -> _Page:
        if not self._pages:
            raise PdfError("document has no pages")
        return self._pages[-1]

    def text_width(self, text: str, size: float, font: str | None = None) -> float:
        """Width in points of *text* at *size* in *font* (default: current font)."""
        name = font or self.font
        try:
            metrics = _FONT_METRICS[name]
        except KeyError:
            raise PdfError(f"unknown font {name!r}") from None
        units = sum(_char_width(metrics, code) for code in _encode_text(text))
        return units * size / 1000.0

    def add_text(
        self, text: str, size: float, x: float, y: float, colour: int = BLACK
    ) -> None:
        """Write *text* on the current page with its baseline starting at (x, y)."""
        page = self._current_page()
        raw = _encode_text(text)
        resource = self._fonts.setdefault(self.font, f"F{len(self._fonts) + 1}")
        page.ops.append(
            f"BT {_colour_ops(colour)} rg /{resource} {_num(size)} Tf "
            f"{_num(x)} {_num(y)} Td {_pdf_string(raw)} Tj ET"
        )

    def add_image_data(
        self,
        data: bytes,
        x: float,
        y: float,
        display_width: float,
        display_height: float,
    ) -> None:
        """Embed JPEG, PNG, PPM/PGM or BMP *data* on the current page.

        A negative display size keeps the aspect ratio; both negative uses the
        pixel size. A zero size embeds the image without drawing it.
        """
        page = self._current_page()
        data = bytes(data)
        try:
            info = parse_image_header(data)
        except ImageError as exc:
            raise PdfError(f"cannot embed image: {exc}") from exc
        image = _IMAGE_BUILDERS[info.format](data, info)

        if display_width < 0 and display_height < 0:
            display_width, display_height = info.width, info.height
        elif display_width < 0:
            display_width = display_height * info.width / info.height
        elif display_height < 0:
            display_height = display_width * info.height / info.width

        self._images.append(image)
        index = len(self._images) - 1
        page.images.append(index)
        if display_width and display_height:
            page.ops.append(
                f"q {_num(display_width)} 0 0 {_num(display_height)} "
                f"{_num(x)} {_num(y)} cm /Im{index + 1} Do Q"
            )

    def add_image_file(
        self,
        path: str | Path,
        x: float,
        y: float,
        display_width: float,
        display_height: float,
    ) -> None:
        """Embed the image stored at *path*; see add_image_data."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise PdfError(f"cannot read image file {path}: {exc}") from exc
        self.add_image_data(data, x, y, display_width, display_height)

    def _info_dictionary(self) -> str:
        entries = []
        for key, value in (
            ("Creator", self.info.creator),
            ("Producer", self.info.producer),
            ("Title", self.info.title),
            ("Author", self.info.author),
            ("Subject", self.info.subject),
        ):
            if value:
                raw = _encode_text(value[:_INFO_FIELD_LIMIT])
                entries.append(f"/{key} {_pdf_string(raw)}")
        if self.info.date.startswith("D:"):
            date = self.info.date[:_INFO_FIELD_LIMIT]
        else:
            date = datetime.now(timezone.utc).strftime("D:%Y%m%d%H%M%SZ")
        entries.append(f"/CreationDate ({date})")
        entries.append(f"/ModDate ({date})")
        return "<< " + " ".join(entries) + " >>"

    def to_bytes(self) -> bytes:
        """Serialise the document to PDF bytes."""
        objects: list[bytes] = [b"", b"", b""]

        def add(body: bytes) -> int:
            objects.append(body)
            return len(objects)

        info_ref, catalog_ref, pages_ref = 1, 2, 3
        font_refs = {
            resource: add(
                f"<< /Type /Font /Subtype /Type1 /BaseFont /{name} "
                f"/Encoding /WinAnsiEncoding >>".encode("ascii")
            )
            for name, resource in self._fonts.items()
        }
        image_refs = []
        for image in self._images:
            extra = ""
            if image.smask is not None:
                mask_ref = add(_stream(image.smask.dictionary, image.smask.data))
                extra = f" /SMask {mask_ref} 0 R"
            image_refs.append(add(_stream(image.dictionary + extra, image.data)))

        fonts = " ".join(f"/{res} {ref} 0 R" for res, ref in font_refs.items())
        page_refs = []
        for page in self._pages:
            content = "\n".join(page.ops).encode("ascii")
            content_ref = add(_stream("", content))
            xobjects = " ".join(f"/Im{i + 1} {image_refs[i]} 0 R" for i in page.images)
            resources = f"/Font << {fonts} >>"
            if xobjects:
                resources += f" /XObject << {xobjects} >>"
            page_refs.append(
                add(
                    f"<< /Type /Page /Parent {pages_ref} 0 R "
                    f"/MediaBox [0 0 {_num(page.width)} {_num(page.height)}] "
                    f"/Resources << {resources} >> /Contents {content_ref} 0 R >>".encode(
                        "ascii"
                    )
                )
            )

        objects[info_ref - 1] = self._info_dictionary().encode("ascii")
        objects[catalog_ref - 1] = f"<< /Type /Catalog /Pages {pages_ref} 0 R >>".encode(
            "ascii"
        )
        kids = " ".join(f"{ref} 0 R" for ref in page_refs)
        objects[pages_ref - 1] = (
            f"<< /Type /Pages /Kids [{kids}] /Count {len(page_refs)} >>".encode("ascii")
        )

        out = bytearray(b"%PDF-1.3\n%\xc4\xe5\xf2\xe5\xeb\xa7\xf3\xa0\xd0\xc4\xc6\n")
        offsets = []
        for number, body in enumerate(objects, start=1):
            offsets.append(len(out))
            out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
        xref = len(out)
        out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("ascii")
        for offset in offsets:
            out += f"{offset:010d} 00000 n \n".encode("ascii")
        out += (
            f"trailer\n<< /Size {len(objects) + 1} /Root {catalog_ref} 0 R "
            f"/Info {info_ref} 0 R >>\nstartxref\n{xref}\n%%EOF\n"
        ).encode("ascii")
        return bytes(out)

    def save(self, path: str | Path | None) -> None:
        """Write the document to *path*, or to standard output when None."""
        data = self.to_bytes()
        if path is None:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
            return
        try:
            Path(path).write_bytes(data)
        except OSError as exc:
            raise PdfError(f"cannot write {path}: {exc}") from exc