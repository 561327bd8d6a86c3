#!/usr/bin/env python3
"""Convert ANSI art from a file or stdin into HTML, JSON runs or plain text."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import html_render
from ansi_parser import parse_lines, parse_runs, strip_sgr
from log_config import configure_logging, get_logger

logger = get_logger(__name__)

FORMATS = ("html", "json", "lines", "text")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert ANSI art to HTML or styled runs")
    parser.add_argument("input", nargs="?", default="-", help="Input file ('-' for stdin)")
    parser.add_argument("--format", "-f", choices=FORMATS, default="html", help="Output format")
    parser.add_argument("--document", action="store_true", help="Wrap HTML output in a standalone page")
    parser.add_argument("--title", default="moji", help="Page title for --document")
    parser.add_argument("--output", "-o", default="", help="Write to this file instead of stdout")
    return parser.parse_args(argv)


def read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.buffer.read().decode("utf-8", errors="replace")
    return Path(source).read_text(encoding="utf-8", errors="replace")


def render_output(text: str, fmt: str, document: bool = False, title: str = "moji") -> str:
    if fmt == "html":
        if document:
            return html_render.html_document(text, title=title)
        return html_render.convert(text)
    if fmt == "json":
        return json.dumps([run.to_dict() for run in parse_runs(text)], ensure_ascii=False)
    if fmt == "lines":
        return json.dumps(parse_lines(text), ensure_ascii=False)
    return strip_sgr(text)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    try:
        text = read_input(args.input)
    except OSError as exc:
        logger.error("cannot read input", path=args.input, error=str(exc))
        return 2

    out = render_output(text, args.format, document=args.document, title=args.title)
    if args.output:
        Path(args.output).write_text(out, encoding="utf-8")
    else:
        sys.stdout.write(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
