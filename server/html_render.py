"""HTML projection of the SGR event stream.

Each opened context becomes one ``<span style="...">`` carrying all the
attributes of the escape code that opened it; a reset closes every open
span. Literal text is HTML-escaped.
"""

from __future__ import annotations

from ansi_parser import ESC, Close, Color, Literal, Open, RGBColor, Style, scan

FG_PALETTE = ("#000", "#c00", "#0a0", "#ca0", "#00c", "#c0c", "#0cc", "#ccc")
BG_PALETTE = ("#000", "#c00", "#0a0", "#ca0", "#00c", "#c0c", "#0cc", "#fff")
BRIGHT_PALETTE = ("#555", "#f55", "#5f5", "#ff5", "#55f", "#f5f", "#5ff", "#fff")

# SGR 7 is drawn with fixed colors, not by swapping the current ones.
INVERSE_DECLARATIONS = ("background-color:#e6edf3", "color:#000", "padding:0 2px")

BLINK_KEYFRAMES = "@keyframes ansiBlink{50%{opacity:0}}"

_DOCUMENT = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
{keyframes}
body{{background:#0d1117;color:#e6edf3;margin:0}}
pre.ansi{{font-family:monospace;line-height:1.2;padding:20px;margin:0}}
</style>
</head>
<body>
<pre class="ansi">{body}</pre>
</body>
</html>
"""


def escape_markup(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def css_color(color: Color, background: bool = False) -> str:
    if isinstance(color, RGBColor):
        return f"rgb({color.r},{color.g},{color.b})"
    if color.bright:
        return BRIGHT_PALETTE[color.index]
    palette = BG_PALETTE if background else FG_PALETTE
    return palette[color.index]


def style_declarations(style: Style) -> list[str]:
    """Inline CSS declarations for one opened context."""
    decls: list[str] = []
    if style.foreground is not None:
        decls.append("color:" + css_color(style.foreground))
    if style.background is not None:
        decls.append("background-color:" + css_color(style.background, background=True))
    if style.bold:
        decls.append("font-weight:bold")
    if style.faint:
        decls.append("opacity:0.6")
    if style.italic:
        decls.append("font-style:italic")
    decorations = []
    if style.underline:
        decorations.append("underline")
    if style.strikethrough:
        decorations.append("line-through")
    if decorations:
        decls.append("text-decoration:" + " ".join(decorations))
    if style.blink:
        decls.append("animation:ansiBlink 1s step-end infinite")
    if style.inverse:
        decls.extend(INVERSE_DECLARATIONS)
    return decls


def convert(text: str) -> str:
    """Convert ANSI-colored text to HTML markup."""
    if not text or ESC not in text:
        return escape_markup(text or "")

    parts: list[str] = []
    for event in scan(text):
        if isinstance(event, Literal):
            parts.append(escape_markup(event.text))
        elif isinstance(event, Open):
            parts.append('<span style="' + ";".join(style_declarations(event.style)) + '">')
        elif isinstance(event, Close):
            parts.append("</span>" * event.count)
    return "".join(parts)


def html_document(text: str, title: str = "moji") -> str:
    """Wrap converted text in a standalone HTML page."""
    return _DOCUMENT.format(
        title=escape_markup(title),
        keyframes=BLINK_KEYFRAMES,
        body=convert(text),
    )
