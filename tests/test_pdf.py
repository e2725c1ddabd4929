import re
import struct
import zlib

import pytest

from vidpdf.pdf import (
    A4_HEIGHT,
    A4_WIDTH,
    PdfDocument,
    PdfError,
    PdfInfo,
    rgb,
)


def _jpeg(width, height, components=3):
    sof_body = struct.pack(">BHHB", 8, height, width, components) + b"\x01\x11\x00" * components
    sof = b"\xff\xc0" + struct.pack(">H", len(sof_body) + 2) + sof_body
    return b"\xff\xd8" + sof + b"\xff\xd9"


def _png_chunk(kind, body):
    crc = zlib.crc32(kind + body) & 0xFFFFFFFF
    return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)


def _png(width, height, color_type, pixel):
    channels = {0: 1, 2: 3, 6: 4}[color_type]
    assert len(pixel) == channels
    raw = b"".join(b"\x00" + bytes(pixel) * width for _ in range(height))
    ihdr = struct.pack(">IIBBBBB", width, height, 8, color_type, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", ihdr)
        + _png_chunk(b"IDAT", zlib.compress(raw))
        + _png_chunk(b"IEND", b"")
    )


def _bmp(width, height, bgr_rows):
    stride = ((width * 24 + 31) // 32) * 4
    pixels = b"".join(row.ljust(stride, b"\x00") for row in bgr_rows)
    header = struct.pack("<IHHIIiiHHI", 54 + len(pixels), 0, 0, 54, 40, width, height, 1, 24, 0)
    return b"BM" + header + b"\x00" * 20 + pixels


def _objects(pdf):
    return {
        int(num): body
        for num, body in re.findall(rb"(\d+) 0 obj\n(.*?)\nendobj\n", pdf, re.S)
    }


def test_rgb_packs_channels():
    assert rgb(0xFF, 0, 0) == 0xFF0000
    assert rgb(0, 0, 0xFF) == 0x0000FF
    assert rgb(0x1FF, 0x100, 0x101) == rgb(0xFF, 0, 1)


def test_a4_page_media_box_matches_millimetres():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    pdf = doc.to_bytes()
    match = re.search(rb"/MediaBox \[0 0 ([\d.]+) ([\d.]+)\]", pdf)
    assert match is not None
    assert float(match.group(1)) == pytest.approx(210 * 72 / 25.4, abs=0.5)
    assert float(match.group(2)) == pytest.approx(297 * 72 / 25.4, abs=0.5)


def test_document_structure_and_xref_offsets():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, PdfInfo(title="My document"))
    doc.append_page()
    doc.add_text("Hello", 12, 50, 20)
    pdf = doc.to_bytes()
    assert pdf.startswith(b"%PDF-1.3\n")
    assert pdf.endswith(b"%%EOF\n")

    startxref = int(re.search(rb"startxref\n(\d+)\n", pdf).group(1))
    assert pdf[startxref:].startswith(b"xref\n")
    entries = re.findall(rb"(\d{10}) 00000 n \n", pdf)
    assert entries
    for number, offset in enumerate(entries, start=1):
        assert pdf[int(offset):].startswith(f"{number} 0 obj\n".encode())
    size = int(re.search(rb"/Size (\d+)", pdf).group(1))
    assert size == len(entries) + 1


def test_info_fields_are_written():
    info = PdfInfo(creator="My software", title="My (doc)", date="D:20240101000000Z")
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, info)
    doc.append_page()
    pdf = doc.to_bytes()
    assert b"/Creator (My software)" in pdf
    assert b"/Title (My \\(doc\\))" in pdf
    assert b"/CreationDate (D:20240101000000Z)" in pdf


def test_info_field_truncated():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, PdfInfo(title="x" * 100))
    pdf = doc.to_bytes()
    match = re.search(rb"/Title \((x+)\)", pdf)
    assert len(match.group(1)) == 63


def test_pages_counted_in_page_tree():
    doc = PdfDocument(100, 200, None)
    for _ in range(3):
        doc.append_page()
    pdf = doc.to_bytes()
    assert doc.page_count == 3
    assert b"/Count 3" in pdf
    assert pdf.count(b"/Type /Page ") == 3
    assert pdf.count(b"/MediaBox [0 0 100 200]") == 3


def test_add_text_requires_page():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    with pytest.raises(PdfError):
        doc.add_text("1", 12, 0, 0)


def test_add_text_writes_content_and_font():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.set_font("Helvetica")
    doc.append_page()
    doc.add_text("a(b)", 12, 10, 15, rgb(0xFF, 0, 0))
    pdf = doc.to_bytes()
    assert b"/BaseFont /Helvetica " in pdf
    assert b"1 0 0 rg /F1 12 Tf 10 15 Td (a\\(b\\)) Tj ET" in pdf


def test_text_non_ascii_is_octal_escaped():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_text("\u00e9", 10, 0, 0)
    assert b"(\\351) Tj" in doc.to_bytes()


def test_unencodable_text_rejected():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    with pytest.raises(PdfError):
        doc.add_text("\u4e2d", 10, 0, 0)


def test_set_font_rejects_unknown():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    with pytest.raises(PdfError):
        doc.set_font("Comic Sans")
    assert doc.font == "Times-Roman"


def test_text_width_times_digit():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    assert doc.text_width("1", 12, "Times-Roman") == pytest.approx(6.0)


def test_text_width_is_additive_and_scales():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    one = doc.text_width("12", 12, "Helvetica")
    assert doc.text_width("1212", 12, "Helvetica") == pytest.approx(2 * one)
    assert doc.text_width("12", 24, "Helvetica") == pytest.approx(2 * one)
    assert doc.text_width("", 12, "Helvetica") == 0


def test_courier_is_monospaced():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    assert doc.text_width("iiii", 10, "Courier") == doc.text_width("MMMM", 10, "Courier")


def test_text_width_uses_current_font():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.set_font("Courier")
    assert doc.text_width("iW", 10) == doc.text_width("iW", 10, "Courier")
    assert doc.text_width("iW", 10) != doc.text_width("iW", 10, "Times-Roman")


def test_text_width_unknown_font():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    with pytest.raises(PdfError):
        doc.text_width("1", 12, "Nope")


def test_jpeg_embedded_with_aspect_ratio():
    data = _jpeg(40, 20)
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(data, 5, 6, 100, -1)
    pdf = doc.to_bytes()
    assert b"/Filter /DCTDecode" in pdf
    assert b"/Width 40 /Height 20" in pdf
    assert b"q 100 0 0 50 5 6 cm /Im1 Do Q" in pdf
    assert data in pdf


def test_image_both_negative_uses_pixel_size():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(_jpeg(40, 20), 0, 0, -1, -1)
    assert b"q 40 0 0 20 0 0 cm /Im1 Do Q" in doc.to_bytes()


def test_zero_size_image_embedded_not_drawn():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(_jpeg(40, 20), 0, 0, 0, 10)
    pdf = doc.to_bytes()
    assert b"/Im1 " in pdf
    assert b" Do Q" not in pdf


def test_png_rgb_uses_predictor():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(_png(3, 2, 2, (1, 2, 3)), 0, 0, 30, 20)
    pdf = doc.to_bytes()
    assert b"/Predictor 15 /Colors 3" in pdf
    assert b"/ColorSpace /DeviceRGB" in pdf


def test_png_alpha_split_into_smask():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(_png(2, 2, 6, (10, 20, 30, 40)), 0, 0, 20, 20)
    pdf = doc.to_bytes()
    assert b"/SMask" in pdf
    streams = {
        dictionary: body
        for dictionary, body in re.findall(
            rb"<< (/Type /XObject[^\n]*?) >>\nstream\n(.*?)\nendstream", pdf, re.S
        )
    }
    colour = [zlib.decompress(b) for d, b in streams.items() if b"/DeviceRGB" in d]
    alpha = [zlib.decompress(b) for d, b in streams.items() if b"/DeviceGray" in d]
    assert colour == [bytes((10, 20, 30)) * 4]
    assert alpha == [bytes((40,)) * 4]


def test_bmp_converted_to_top_down_rgb():
    # Bottom-up rows: first stored row is the bottom of the image.
    bottom = b"\x01\x02\x03"
    top = b"\x04\x05\x06"
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(_bmp(1, 2, [bottom, top]), 0, 0, 10, 20)
    pdf = doc.to_bytes()
    body = re.search(rb"/DeviceRGB [^\n]*?>>\nstream\n(.*?)\nendstream", pdf, re.S).group(1)
    assert zlib.decompress(body) == b"\x06\x05\x04\x03\x02\x01"


def test_ppm_pixels_embedded():
    pixels = bytes(range(12))
    data = b"P6\n2 2\n255\n" + pixels
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(data, 0, 0, 20, 20)
    pdf = doc.to_bytes()
    body = re.search(rb"/DeviceRGB [^\n]*?>>\nstream\n(.*?)\nendstream", pdf, re.S).group(1)
    assert zlib.decompress(body) == pixels


def test_unknown_image_rejected():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    with pytest.raises(PdfError):
        doc.add_image_data(b"not an image", 0, 0, 10, 10)


def test_image_requires_page():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    with pytest.raises(PdfError):
        doc.add_image_data(_jpeg(4, 4), 0, 0, 10, 10)


def test_add_image_file_and_missing(tmp_path):
    path = tmp_path / "shot.jpg"
    path.write_bytes(_jpeg(8, 4))
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_file(path, 0, 0, 16, -1)
    assert b"q 16 0 0 8 0 0 cm /Im1 Do Q" in doc.to_bytes()
    with pytest.raises(PdfError):
        doc.add_image_file(tmp_path / "missing.jpg", 0, 0, 10, 10)


def test_images_are_page_resources():
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    doc.append_page()
    doc.add_image_data(_jpeg(4, 4), 0, 0, 10, 10)
    doc.append_page()
    doc.add_image_data(_jpeg(4, 4), 0, 0, 10, 10)
    objects = _objects(doc.to_bytes())
    pages = [body for body in objects.values() if body.startswith(b"<< /Type /Page ")]
    assert len(pages) == 2
    assert b"/Im1 " in pages[0] and b"/Im2 " not in pages[0]
    assert b"/Im2 " in pages[1] and b"/Im1 " not in pages[1]


def test_save_writes_same_bytes(tmp_path):
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, PdfInfo(date="D:20240101000000Z"))
    doc.append_page()
    doc.add_text("3", 12, 100, 15)
    out = tmp_path / "out.pdf"
    doc.save(out)
    assert out.read_bytes() == doc.to_bytes()


def test_save_to_unwritable_path(tmp_path):
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, None)
    with pytest.raises(PdfError):
        doc.save(tmp_path / "no" / "such" / "dir.pdf")