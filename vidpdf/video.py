"""Run the external media tools: ffprobe, ffmpeg, yt-dlp and a file opener."""

from __future__ import annotations

import os
import re
import subprocess
import sys

_DIMENSIONS = re.compile(r"\s*([+-]?\d+)x\s*([+-]?\d+)")


class MediaError(RuntimeError):
    """Raised when an external tool cannot be run or fails."""


def _run(args: list[str], *, capture: bool = False) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, capture_output=capture, text=capture, check=False)
    except OSError as exc:
        raise MediaError(f"cannot run {args[0]}: {exc}") from exc


def parse_dimensions(text: str) -> tuple[int, int]:
    """Parse ``WIDTHxHEIGHT`` into a ``(width, height)`` pair."""
    match = _DIMENSIONS.match(text)
    if match is None:
        raise MediaError(f"Could not parse dimensions: {text}")
    return int(match.group(1)), int(match.group(2))


def get_video_dimensions(filename: str) -> tuple[int, int]:
    """Ask ffprobe for the size of the first video stream of *filename*."""
    result = _run(
        [
            "ffprobe", "-v", "error", "-select_streams", "v:0",
            "-show_entries", "stream=width,height", "-of", "csv=p=0:s=x",
            filename,
        ],
        capture=True,
    )
    lines = (result.stdout or "").splitlines()
    if not lines:
        raise MediaError("ffprobe returned no output")
    return parse_dimensions(lines[0])


def take_screenshot(
    videofile: str, seconds: int, imgfile: str, top_crop: int = 0, bottom_crop: int = 0
) -> None:
    """Save the frame at *seconds* into *imgfile*, cropped at top and bottom."""
    width, height = get_video_dimensions(videofile)
    crop = f"crop={width}:{height - top_crop - bottom_crop}:0:{top_crop}"
    result = _run(
        [
            "ffmpeg", "-y", "-loglevel", "error", "-ss", str(seconds),
            "-i", videofile, "-frames:v", "1", "-q:v", "1", "-vf", crop, imgfile,
        ]
    )
    if result.returncode != 0:
        raise MediaError(
            f"Command execution failed or returned non-zero: {result.returncode}"
        )


def download_video(url: str, videofile: str) -> None:
    """Download *url* as mp4 into *videofile* with yt-dlp."""
    print(f"Downloading video {url}, saving as {videofile}...")
    result = _run(["yt-dlp", "-f", "mp4", "-o", videofile, url])
    if result.returncode != 0:
        raise MediaError(f"Download failed with exit status {result.returncode}")


def open_file(path: str) -> None:
    """Open *path* in the desktop's default viewer."""
    if not path:
        raise MediaError("No output file set.")
    if sys.platform.startswith("win"):
        try:
            os.startfile(path)  # type: ignore[attr-defined]
        except OSError as exc:
            raise MediaError("Failed to open file.") from exc
        return
    opener = "open" if sys.platform == "darwin" else "xdg-open"
    if _run([opener, path]).returncode != 0:
        raise MediaError("Failed to open file.")