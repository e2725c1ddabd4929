# vidpdf

`vidpdf` grabs still frames from a video at the timestamps you choose and
lays them out, one under another, on A4 pages of a PDF. Each page carries a
centred page number at the bottom.

It has no Python dependencies of its own, but it runs external tools that
must be on your `PATH`:

- `ffprobe` and `ffmpeg` to read the video size and extract frames,
- `yt-dlp` if you ask it to download the video first,
- `xdg-open` (or `open` on macOS) to view the result from the prompt.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

Give an input name (without extension) and one or more `minutes:seconds`
timestamps:

```
vidpdf -i lecture -t 0:30 2:15 10:05
```

This reads `lecture.mp4` and writes `lecture.pdf` next to it (in the current
directory when the name has no directory part). After `-t`, every following
argument that does not start with `-` is taken as another timestamp; at most
100 are accepted.

Options:

- `-d <url>` download the video with `yt-dlp` first, unless the video file already exists
- `-i, --input <name>` video `<name>.mp4`; the output becomes `<name>.pdf`
- `-o, --output <file>` name of the PDF to write
- `-m <n>`, `--margins=<n>` left and right margins in points
- `-u <n>`, `--top_margin=<n>` extra space at the top of each page
- `-k <n>` pixels to crop from the top of each frame
- `-j <n>` pixels to crop from the bottom of each frame
- `-t, --timestamps <mm:ss> ...` one or more timestamps
- `-h, --help` show the options

The long forms `--margins` and `--top_margin` take their value only after
`=`. Numeric values are read like C's `atoi`: leading digits count, anything
else gives 0. A malformed timestamp or too many of them end the program with
status 1, as do failures of the external tools.

## Interactive mode

Run `vidpdf` without an input or output name, or without timestamps, and it
opens a prompt on standard input. Settings given on the command line are kept,
except a download URL. Each command is one letter followed by its argument:

```
> i lecture
> t 0:30 2:15 10:05
> m 20
> r
> v
> q
```

Commands:

- `d <url>` set a URL to download before running
- `i <name>` set input `<name>.mp4` and output `<name>.pdf`
- `o <file>` set the output file
- `t <mm:ss ...>` replace the timestamps
- `m`, `u`, `k`, `j <n>` margins, top margin, top crop, bottom crop
- `s` show settings, `c` clear them
- `r` run, `v` open the finished PDF, `h` help, `q` quit

## As a library

```python
from vidpdf.pdf import A4_HEIGHT, A4_WIDTH, PdfDocument, PdfInfo, rgb
from vidpdf.timestamps import format_timestamp, parse_timestamp

doc = PdfDocument(A4_WIDTH, A4_HEIGHT, PdfInfo(title="Hello"))
doc.append_page()
doc.add_text("Hello", 12, 50, 20, rgb(0, 0, 0))
doc.add_image_file("frame.jpg", 0, 100, 300, -1)  # -1 keeps the aspect ratio
doc.save("hello.pdf")

parse_timestamp("2:15")   # 135
format_timestamp(135)     # "2:15"
```

Other modules:

- `vidpdf.images` – `detect_format` and `parse_image_header` for JPEG, PNG,
  binary PPM/PGM and uncompressed 24/32-bit BMP.
- `vidpdf.jpeg` – `jpeg_dimensions` and `read_jpeg_dimensions` read the size
  from a baseline JPEG frame header.
- `vidpdf.settings` – the `Settings` dataclass and `output_path`.
- `vidpdf.video` – wrappers around `ffprobe`, `ffmpeg`, `yt-dlp` and the file opener.
- `vidpdf.builder` – `PageLayout` and `create_pdf`, which takes a
  `screenshot` callable so frames can come from somewhere other than `ffmpeg`.

## Limits

The PDF writer only places pages, text in the standard Times, Helvetica and
Courier fonts (Windows-1252 characters only) and images. It draws no lines or
shapes and adds no bookmarks, links or barcodes. Interlaced PNGs and
compressed or palette BMPs cannot be embedded.