"""Command line and interactive prompt for turning videos into PDFs."""

from __future__ import annotations

import os
import re
import sys
from collections import deque
from collections.abc import Callable, Iterable
from typing import TextIO

from vidpdf.builder import create_pdf
from vidpdf.settings import Settings, output_path
from vidpdf.timestamps import MAX_TIMESTAMPS, TimestampError, parse_timestamps
from vidpdf.video import MediaError, download_video, open_file

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")

_SHORT_OPTIONS = {
    "d": True, "i": True, "o": True, "m": True, "u": True,
    "k": True, "j": True, "t": True, "h": False,
}
# name -> (short option, argument kind)
_LONG_OPTIONS = {
    "input": ("i", "required"),
    "output": ("o", "required"),
    "timestamps": ("t", "required"),
    "margins": ("m", "optional"),
    "top_margin": ("u", "optional"),
    "help": ("h", "none"),
}


class _UsageError(ValueError):
    """Bad command line, or help was asked for."""


def _atoi(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def help_text() -> str:
    """Usage text for the command line options."""
    options = [
        "-d, --download=<url>",
        "-i, --input=<inputfile>",
        "-o, --output=<outputfile>",
        "-m, --margins=<left/right margins>",
        "-u, --top_margin=<top margin>",
        "-j, --bottom_crop=<bottom crop>",
        "-k, --top_crop=<top crop>",
        "-t, --timestamps=<timestamps>",
        "-h, --help",
    ]
    return "Options:\n" + "".join(f"  {o}\n" for o in options) + "\n"


def prompt_help_text() -> str:
    """List of the interactive prompt's commands."""
    commands = [
        "d <url>",
        "i <input file>",
        "o <output file>",
        "t <time stamps>",
        "m <left/right margins> (optional)",
        "j <crop bottom> (optional)",
        "k <crop top> (optional)",
        "u <top margin> (optional)",
        "s show settings",
        "c clear settings",
        "r run",
        "v view pdf-file",
        "h help",
        "q quit",
    ]
    return "Available commands:\n" + "".join(f"  {c}\n" for c in commands)


def _match_long(name: str) -> tuple[str, str]:
    if name in _LONG_OPTIONS:
        return _LONG_OPTIONS[name]
    matches = [key for key in _LONG_OPTIONS if key.startswith(name)]
    if len(matches) == 1 and name:
        return _LONG_OPTIONS[matches[0]]
    if len(matches) > 1:
        raise _UsageError(f"option '--{name}' is ambiguous")
    raise _UsageError(f"unrecognized option '--{name}'")


def parse_args(argv: Iterable[str]) -> tuple[Settings, bool]:
    """Read command line options.

    Returns the settings and whether an input or output file was named.
    Raises ValueError for bad options or when help is requested, and
    TimestampError for malformed or too many time stamps.
    """
    settings = Settings()
    output_given = False
    stamp_tokens: list[str] = []
    pending = deque(argv)

    def apply(option: str, value: str | None) -> None:
        nonlocal output_given
        if option == "h":
            raise _UsageError("")
        if value is None:
            raise _UsageError(f"option '-{option}' requires an argument")
        if option == "d":
            settings.url = value
        elif option == "i":
            settings.set_input(value)
            output_given = True
        elif option == "o":
            settings.outfilename = value
            output_given = True
        elif option == "m":
            settings.margins = _atoi(value)
        elif option == "u":
            settings.top_margin = _atoi(value)
        elif option == "k":
            settings.top_crop = _atoi(value)
        elif option == "j":
            settings.bottom_crop = _atoi(value)
        elif option == "t":
            stamp_tokens.append(value)
            while pending and not pending[0].startswith("-"):
                stamp_tokens.append(pending.popleft())
            if len(stamp_tokens) > MAX_TIMESTAMPS:
                raise TimestampError(f"Too many time stamps (max {MAX_TIMESTAMPS})")

    while pending:
        arg = pending.popleft()
        if arg == "--":
            break
        if arg.startswith("--"):
            name, has_value, value = arg[2:].partition("=")
            option, kind = _match_long(name)
            if kind == "none":
                if has_value:
                    raise _UsageError(f"option '--{name}' doesn't allow an argument")
                apply(option, None)
            elif has_value:
                apply(option, value)
            elif kind == "required":
                if not pending:
                    raise _UsageError(f"option '--{name}' requires an argument")
                apply(option, pending.popleft())
            else:
                apply(option, None)
        elif arg.startswith("-") and arg != "-":
            chars = arg[1:]
            while chars:
                option, chars = chars[0], chars[1:]
                if option not in _SHORT_OPTIONS:
                    raise _UsageError(f"invalid option -- '{option}'")
                if not _SHORT_OPTIONS[option]:
                    apply(option, None)
                    continue
                if chars:
                    value, chars = chars, ""
                elif pending:
                    value = pending.popleft()
                else:
                    raise _UsageError(f"option requires an argument -- '{option}'")
                apply(option, value)

    settings.timestamps = parse_timestamps(stamp_tokens)
    return settings, output_given


def _default_runner(settings: Settings) -> None:
    if settings.url:
        download_video(settings.url, settings.videofile)
    create_pdf(settings)


class Prompt:
    """Interactive command prompt that edits settings and runs the job."""

    def __init__(
        self,
        settings: Settings | None = None,
        out: TextIO | None = None,
        runner: Callable[[Settings], None] | None = None,
    ) -> None:
        self.settings = settings if settings is not None else Settings()
        self.out = out if out is not None else sys.stdout
        self.runner = runner if runner is not None else _default_runner

    def _say(self, text: str, end: str = "\n") -> None:
        print(text, end=end, file=self.out)

    def _set_timestamps(self, argument: str) -> None:
        if not argument:
            self._say("No time stamps given.")
            return
        self.settings.timestamps = []
        tokens = [token for token in argument.split(" ") if token]
        self.settings.timestamps = parse_timestamps(tokens[:MAX_TIMESTAMPS])
        if len(tokens) > MAX_TIMESTAMPS:
            print(f"Too many time stamps (max {MAX_TIMESTAMPS}).", file=sys.stderr)

    def _run_job(self) -> None:
        s = self.settings
        if not s.videofile:
            self._say("Missing filename for download.")
            return
        if not s.is_complete():
            self._say("Not all mandatory parameters are set.")
            return
        self._say("Creating PDF...")
        try:
            s.outputfile = output_path(s.videofile, s.outfilename)
            self.runner(s)
        except (MediaError, OSError, ValueError) as exc:
            self._say(str(exc))
            return
        self._say("PDF created. You can change parameters and run again.")

    def handle(self, line: str) -> bool:
        """Carry out one command line; returns False when the user quits."""
        line = line.split("\n", 1)[0]
        if not line:
            return True
        command, argument = line[0], line[1:].lstrip()
        s = self.settings

        if command == "d":
            s.url = argument
            self._say(f"Video url set to: {s.url}")
        elif command == "i":
            s.set_input(argument)
            self._say(f"Input file set to: {s.videofile}")
            self._say(f"Output file set to: {s.outfilename}")
        elif command == "o":
            s.outfilename = argument
            self._say(f"Output file set to: {s.outfilename}")
        elif command == "m":
            s.margins = _atoi(argument)
            self._say(f"Margins set to: {s.margins}")
        elif command == "u":
            s.top_margin = _atoi(argument)
            self._say(f"Top margin set to: {s.top_margin}")
        elif command == "k":
            s.top_crop = _atoi(argument)
            self._say(f"Top crop set to: {s.top_crop}")
        elif command == "j":
            s.bottom_crop = _atoi(argument)
            self._say(f"Bottom crop set to: {s.bottom_crop}")
        elif command == "t":
            self._set_timestamps(argument)
        elif command == "r":
            self._run_job()
        elif command == "v":
            try:
                open_file(s.outputfile)
            except MediaError as exc:
                self._say(str(exc))
        elif command == "s":
            self._say(s.describe(), end="")
        elif command == "c":
            self._say("Clearing all settings.")
            s.clear()
        elif command == "h":
            self._say(prompt_help_text(), end="")
        elif command == "q":
            self._say("Quitting.")
            return False
        else:
            self._say("Type i, o, m, u, t, r, s, c, h or q.")
        return True

    def run(self, lines: Iterable[str]) -> None:
        """Greet the user and process *lines* until quit or end of input."""
        self._say("Welcome to VIP!")
        self._say(prompt_help_text(), end="")
        source = iter(lines)
        while True:
            self._say("> ", end="")
            line = next(source, None)
            if line is None or not self.handle(line):
                break


def main(argv: list[str] | None = None) -> int:
    """Entry point: run directly from options, or fall back to the prompt."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        settings, output_given = parse_args(argv)
    except TimestampError as exc:
        print(exc, file=sys.stderr)
        return EXIT_FAILURE
    except ValueError as exc:
        if str(exc):
            print(exc, file=sys.stderr)
        print(help_text(), end="")
        return EXIT_FAILURE

    if not output_given or not settings.timestamps:
        settings.url = ""
        try:
            Prompt(settings).run(sys.stdin)
        except TimestampError as exc:
            print(exc, file=sys.stderr)
            return EXIT_FAILURE
        return EXIT_SUCCESS

    try:
        settings.outputfile = output_path(settings.videofile, settings.outfilename)
        if settings.url and not os.path.exists(settings.videofile):
            download_video(settings.url, settings.videofile)
        print("Creating pdf...")
        create_pdf(settings)
    except (MediaError, OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return EXIT_FAILURE
    print(f"Created {settings.outfilename}")
    return EXIT_SUCCESS