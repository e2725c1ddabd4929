"""Run settings and the file locations derived from them."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

from vidpdf.timestamps import TimestampError, format_timestamp, parse_timestamps

MAX_PATH_LEN = 4096
SCREENSHOT_NAME = "vip-screenshot.jpg"
NOT_SET = "Not set."


def _is_windows() -> bool:
    return sys.platform.startswith("win")


@dataclass
class Settings:
    """Everything needed to turn a video into a PDF of screenshots."""

    url: str = ""
    videofile: str = ""
    outfilename: str = ""
    outputfile: str = ""
    margins: int = 0
    top_margin: int = 0
    top_crop: int = 0
    bottom_crop: int = 0
    timestamps: list[int] = field(default_factory=list)
    typeface: str = "Times-Roman"
    font_size: int = 12
    start_y_pos: int = 455

    def set_input(self, name: str) -> None:
        """Use *name*.mp4 as the video and *name*.pdf as the output file."""
        self.videofile = f"{name}.mp4"
        self.outfilename = f"{name}.pdf"

    def set_timestamps(self, text: str) -> None:
        """Replace the time stamps with the space-separated ones in *text*."""
        if not text:
            raise TimestampError("No time stamps given.")
        self.timestamps = parse_timestamps(t for t in text.split(" ") if t)

    def clear(self) -> None:
        """Reset files, margins and time stamps."""
        self.videofile = ""
        self.outfilename = ""
        self.outputfile = ""
        self.margins = 0
        self.top_margin = 0
        self.timestamps = []

    def is_complete(self) -> bool:
        """True when input, output and at least one time stamp are set."""
        return bool(self.videofile and self.outfilename and self.timestamps)

    def describe(self) -> str:
        """Human-readable summary of the settings."""
        if self.timestamps:
            stamps = "".join(f"{format_timestamp(t)} " for t in self.timestamps)
        else:
            stamps = "No time stamps set."
        lines = [
            "Settings:",
            f"  URL: {self.url or NOT_SET}",
            f"  Input file: {self.videofile or NOT_SET}",
            f"  Output file: {self.outfilename or NOT_SET}",
            f"  Margins: {self.margins}",
            f"  Top margin: {self.top_margin}",
            f"  Bottom crop: {self.bottom_crop}",
            f"  Top crop: {self.top_crop}",
            f"  Time stamps: {stamps}",
        ]
        return "\n".join(lines) + "\n"


def output_path(videopath: str, outfilename: str) -> str:
    """Place *outfilename* in the directory of *videopath*.

    Without a directory part the current working directory is used.
    """
    cut = videopath.rfind("/")
    if cut < 0 and _is_windows():
        cut = videopath.rfind("\\")
    if cut < 0:
        directory = os.getcwd()
        if len(directory) + 1 >= MAX_PATH_LEN:
            raise ValueError("Path is too long")
        return f"{directory}/{outfilename}"
    directory = videopath[: cut + 1]
    if len(directory) >= MAX_PATH_LEN:
        raise ValueError("Path is too long")
    return directory + outfilename


def default_screenshot_path() -> str:
    """Location of the temporary screenshot in the system's temp directory."""
    if _is_windows():
        tempdir = os.environ.get("TEMP") or "."
        return f"{tempdir}\\{SCREENSHOT_NAME}"
    tempdir = os.environ.get("TMPDIR") or "/tmp"
    return f"{tempdir}/{SCREENSHOT_NAME}"