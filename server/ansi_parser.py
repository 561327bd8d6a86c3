"""ANSI SGR escape sequence interpreter.

Converts art-engine text (with SGR escape codes) into styled runs:
  [Run("hello", Style(bold=True, foreground=BasicColor(2))), ...]

The scanner emits a flat event stream (literal text, context open, context
close). Runs and markup are both folds over that stream.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Iterator, Union

from log_config import get_logger

logger = get_logger(__name__)

ESC = "\x1b"

# Leading integer of a field, read like parseInt: "31x" is 31, "x31" is not a number.
_LEADING_INT_RE = re.compile(r"\s*([+-]?[0-9]+)")

_COLOR_NAMES = ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white")

_FLAG_CODES = {
    1: "bold",
    2: "faint",
    3: "italic",
    4: "underline",
    5: "blink",
    7: "inverse",
    9: "strikethrough",
}


class Anomaly(str, enum.Enum):
    """Recoverable input problems. Logged, never raised."""

    UNTERMINATED_SEQUENCE = "UnterminatedSequence"
    UNKNOWN_DIRECTIVE = "UnknownDirective"
    MALFORMED_PARAMETER = "MalformedParameter"


@dataclass(frozen=True)
class BasicColor:
    index: int
    bright: bool = False

    @property
    def name(self) -> str:
        base = _COLOR_NAMES[self.index]
        if self.bright:
            return "br" + base.capitalize()
        return base


@dataclass(frozen=True)
class RGBColor:
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


Color = Union[BasicColor, RGBColor]


def color_name(color: Color) -> str:
    if isinstance(color, RGBColor):
        return color.hex
    return color.name


@dataclass(frozen=True)
class Style:
    bold: bool = False
    faint: bool = False
    italic: bool = False
    underline: bool = False
    blink: bool = False
    inverse: bool = False
    strikethrough: bool = False
    foreground: Color | None = None
    background: Color | None = None

    @property
    def is_plain(self) -> bool:
        return self == PLAIN

    def layered(self, top: Style) -> Style:
        """Return this style with *top* opened inside it.

        Flags accumulate; colors set by *top* replace the outer ones.
        """
        return Style(
            bold=self.bold or top.bold,
            faint=self.faint or top.faint,
            italic=self.italic or top.italic,
            underline=self.underline or top.underline,
            blink=self.blink or top.blink,
            inverse=self.inverse or top.inverse,
            strikethrough=self.strikethrough or top.strikethrough,
            foreground=top.foreground if top.foreground is not None else self.foreground,
            background=top.background if top.background is not None else self.background,
        )


PLAIN = Style()


@dataclass(frozen=True)
class Run:
    text: str
    style: Style = PLAIN

    def to_dict(self) -> dict[str, Any]:
        """Build a compact run dict, omitting falsy fields."""
        run: dict[str, Any] = {"t": self.text}
        style = self.style
        if style.foreground is not None:
            run["fg"] = color_name(style.foreground)
        if style.background is not None:
            run["bg"] = color_name(style.background)
        if style.bold:
            run["b"] = True
        if style.faint:
            run["d"] = True
        if style.italic:
            run["i"] = True
        if style.underline:
            run["u"] = True
        if style.blink:
            run["k"] = True
        if style.inverse:
            run["r"] = True
        if style.strikethrough:
            run["s"] = True
        return run


@dataclass(frozen=True)
class SgrCode:
    reset: bool = False
    style: Style = PLAIN


# Scanner events

@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Open:
    style: Style


@dataclass(frozen=True)
class Close:
    count: int


Event = Union[Literal, Open, Close]


def _leading_int(field: str) -> int | None:
    match = _LEADING_INT_RE.match(field)
    if match is None:
        return None
    return int(match.group(1))


def _channel(parts: list[str], idx: int) -> int:
    if idx >= len(parts):
        return 0
    value = _leading_int(parts[idx])
    if value is None:
        return 0
    return max(0, min(255, value))


def parse_ansi_code(code: str) -> SgrCode:
    """Parse the parameter string of one ``ESC [ ... m`` sequence.

    All directives in the string collapse into a single Style. A reset
    anywhere in the string is reported separately so the caller can close
    open contexts before applying the style.
    """
    parts = code.split(";")
    attrs: dict[str, Any] = {}
    reset = False
    i = 0
    while i < len(parts):
        field = parts[i]
        n = _leading_int(field)
        if n is None:
            if field.strip():
                logger.debug("sgr anomaly", kind=Anomaly.MALFORMED_PARAMETER.value, field=field)
            reset = True
            i += 1
            continue

        nxt = parts[i + 1] if i + 1 < len(parts) else None
        if n == 0:
            reset = True
        elif n in _FLAG_CODES:
            attrs[_FLAG_CODES[n]] = True
        elif 30 <= n <= 37:
            attrs["foreground"] = BasicColor(n - 30)
        elif 90 <= n <= 97:
            attrs["foreground"] = BasicColor(n - 90, bright=True)
        elif 40 <= n <= 47:
            attrs["background"] = BasicColor(n - 40)
        elif 100 <= n <= 107:
            attrs["background"] = BasicColor(n - 100, bright=True)
        elif n in (38, 48) and nxt == "2":
            key = "foreground" if n == 38 else "background"
            attrs[key] = RGBColor(_channel(parts, i + 2), _channel(parts, i + 3), _channel(parts, i + 4))
            i += 5
            continue
        else:
            logger.debug("sgr anomaly", kind=Anomaly.UNKNOWN_DIRECTIVE.value, field=field)
        i += 1

    return SgrCode(reset=reset, style=Style(**attrs))


def scan(text: str) -> Iterator[Event]:
    """Scan *text* left to right and yield literal/open/close events.

    Open contexts are tracked as a depth counter. A reset closes all of
    them at once; nothing ever restores an outer style, so a counter is
    enough. Anything finer-grained (SGR 22, 39, ...) needs a real stack.
    """
    if ESC not in text:
        if text:
            yield Literal(text)
        return

    depth = 0
    buf: list[str] = []
    i = 0
    while i < len(text):
        start = text.find(ESC, i)
        if start == -1:
            buf.append(text[i:])
            break
        buf.append(text[i:start])
        if text[start + 1 : start + 2] != "[":
            buf.append(ESC)
            i = start + 1
            continue
        end = text.find("m", start + 2)
        if end == -1:
            logger.debug("sgr anomaly", kind=Anomaly.UNTERMINATED_SEQUENCE.value, offset=start)
            buf.append(text[start:])
            break

        code = parse_ansi_code(text[start + 2 : end])
        i = end + 1
        closes = code.reset and depth > 0
        if not closes and code.style.is_plain:
            continue

        pending = "".join(buf)
        buf = []
        if pending:
            yield Literal(pending)
        if closes:
            yield Close(depth)
            depth = 0
        if not code.style.is_plain:
            yield Open(code.style)
            depth += 1

    pending = "".join(buf)
    if pending:
        yield Literal(pending)
    if depth:
        yield Close(depth)


def parse_runs(text: str) -> list[Run]:
    """Convert *text* into styled runs with escape sequences removed."""
    stack: list[Style] = []
    runs: list[Run] = []
    for event in scan(text):
        if isinstance(event, Literal):
            runs.append(Run(event.text, stack[-1] if stack else PLAIN))
        elif isinstance(event, Open):
            outer = stack[-1] if stack else PLAIN
            stack.append(outer.layered(event.style))
        else:
            del stack[len(stack) - event.count :]
    return runs


def strip_sgr(text: str) -> str:
    return "".join(run.text for run in parse_runs(text))


def parse_lines(raw: str) -> list[list[dict[str, Any]]]:
    """Parse multi-line art output into structured runs.

    Returns a list of lines, each line a list of run dicts. Styles carry
    across line breaks.
    """
    result: list[list[dict[str, Any]]] = [[]]
    for run in parse_runs(raw):
        first, *rest = run.text.split("\n")
        if first:
            result[-1].append(Run(first, run.style).to_dict())
        for piece in rest:
            result.append([])
            if piece:
                result[-1].append(Run(piece, run.style).to_dict())
    return result
