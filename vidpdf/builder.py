"""Lay out video screenshots on A4 pages and write the PDF."""

from __future__ import annotations

import contextlib
import os
from collections.abc import Callable
from dataclasses import dataclass, field

from vidpdf.jpeg import read_jpeg_dimensions
from vidpdf.pdf import A4_HEIGHT, A4_WIDTH, BLACK, PdfDocument, PdfInfo
from vidpdf.settings import Settings, default_screenshot_path
from vidpdf.video import take_screenshot

PAGE_NUMBER_Y = 15


@dataclass
class PageLayout:
    """Tracks where the next screenshot goes, stacking images down a page."""

    margins: int = 0
    top_margin: int = 0
    start_y_pos: int = 455
    page_width: float = A4_WIDTH
    page_number: int = field(default=0, init=False)
    _y: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._y = self.top

    @property
    def top(self) -> int:
        """Vertical position of the first image on a page."""
        return self.start_y_pos - self.top_margin

    @property
    def display_width(self) -> int:
        """Width an image is drawn at: the page width less both side margins."""
        return int(self.page_width - 2 * self.margins)

    def place(self, img_width: int, img_height: int) -> tuple[bool, int]:
        """Place an image of the given pixel size.

        Returns whether a new page is needed and the y offset to draw at.
        """
        if img_width <= 0:
            raise ValueError(f"invalid image width {img_width}")
        scale = self.display_width / img_width
        scaled_height = int(img_height * scale)
        if self.page_number == 0 or self._y - scaled_height < 0:
            self._y = self.top
            self.page_number += 1
            new_page = True
        else:
            self._y -= scaled_height
            new_page = False
        return new_page, self._y + self.margins


def create_pdf(
    settings: Settings,
    output: str | None = None,
    imgfile: str | None = None,
    screenshot: Callable[[int], None] | None = None,
) -> PdfDocument:
    """Grab a frame at each time stamp and write them all to one PDF.

    *screenshot* is called with the time in seconds and must leave a JPEG
    at *imgfile*; by default the frame is taken from the video with ffmpeg.
    """
    target = output if output is not None else settings.outputfile
    if not target:
        raise ValueError("No output file set.")
    image_path = imgfile or default_screenshot_path()
    if screenshot is None:

        def screenshot(seconds: int) -> None:
            take_screenshot(
                settings.videofile,
                seconds,
                image_path,
                settings.top_crop,
                settings.bottom_crop,
            )

    info = PdfInfo(
        creator="My software",
        producer="My software",
        title="My document",
        author="My name",
        subject="My subject",
        date="Today",
    )
    doc = PdfDocument(A4_WIDTH, A4_HEIGHT, info)
    doc.set_font(settings.typeface)
    layout = PageLayout(settings.margins, settings.top_margin, settings.start_y_pos)

    for seconds in settings.timestamps:
        screenshot(seconds)
        width, height = read_jpeg_dimensions(image_path)
        new_page, y = layout.place(width, height)
        if new_page:
            doc.append_page()
        doc.add_image_file(image_path, settings.margins, y, layout.display_width, -1)
        with contextlib.suppress(OSError):
            os.remove(image_path)

        label = str(layout.page_number)
        text_width = doc.text_width(label, settings.font_size, settings.typeface)
        x = int((A4_WIDTH - text_width) / 2)
        doc.add_text(label, settings.font_size, x, PAGE_NUMBER_Y, BLACK)

    doc.save(target)
    return doc