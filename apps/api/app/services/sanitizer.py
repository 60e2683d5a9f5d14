"""HTML clean-up for content produced by the rich-text editor.

Two passes:
- `sanitize_black_span_color` strips the inline "black text" styling the editor
  wraps pasted text in. Spans whose color is plain black are unwrapped; spans in
  the editor's near-black `#1b1c1d` lose only their `color` declaration. Any
  other byte of the fragment is left exactly as it was.
- `clean_html` is an optional bleach allowlist pass, switched on with
  `settings.sanitize_html`.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from html.parser import HTMLParser

import bleach
from bleach.css_sanitizer import CSSSanitizer

from app.core.config import settings

logger = logging.getLogger(__name__)

BLACK_COLOR_VALUES = frozenset(
    {
        "hsl(0,0%,0%)",
        "black",
        "rgb(0,0,0)",
        "rgba(0,0,0,1)",
        "#000",
        "#000000",
    }
)
NEAR_BLACK_COLOR = "#1b1c1d"
MAX_PASSES = 5

ALLOWED_TAGS = [
    "a", "b", "blockquote", "br", "code", "del", "div", "em", "figcaption", "figure",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "li", "mark", "ol", "p",
    "pre", "s", "span", "strong", "sub", "sup", "table", "tbody", "td", "th", "thead",
    "tr", "u", "ul",
]
ALLOWED_ATTRIBUTES = {
    "*": ["class", "style", "title"],
    "a": ["href", "name", "target", "rel"],
    "img": ["src", "alt", "width", "height", "loading"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
    "code": ["class", "spellcheck"],
}
ALLOWED_PROTOCOLS = ["http", "https", "mailto", "data"]
ALLOWED_CSS_PROPERTIES = [
    "color", "background-color", "font-weight", "font-style", "font-size", "font-family",
    "text-align", "text-decoration", "width", "height", "margin-left", "padding-left",
]

# Start tags are read attribute by attribute, left to right, so text inside a
# quoted value is never taken for an attribute of its own.
_TAG_NAME_RE = re.compile(r"<[a-zA-Z][^\t\n\r\f />\x00]*")
_ATTR_RE = re.compile(
    r"""[\s/]*(?P<attr>(?P<name>[^\s/>][^\s/=>]*)"""
    r"""(?:\s*=+\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^>\s]*)))?)"""
)


@dataclass
class SanitizeResult:
    html: str
    changed: bool = False
    passes: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _SpanTag:
    start: int
    end: int
    style: str | None


class _SpanPairParser(HTMLParser):
    """Collects source offsets of every `<span>` that has a matching `</span>`."""

    def __init__(self, source: str) -> None:
        super().__init__(convert_charrefs=True)
        self.source = source
        self.line_starts = [0]
        for idx, ch in enumerate(source):
            if ch == "\n":
                self.line_starts.append(idx + 1)
        self.pairs: list[tuple[_SpanTag, int, int]] = []
        self._open: list[_SpanTag] = []

    def _offset(self) -> int:
        lineno, col = self.getpos()
        return self.line_starts[lineno - 1] + col

    def handle_starttag(self, tag, attrs):
        if tag != "span":
            return
        raw = self.get_starttag_text() or ""
        start = self._offset()
        match = _find_style_attr(raw)
        style = html.unescape(_attr_value(match)) if match else None
        self._open.append(_SpanTag(start=start, end=start + len(raw), style=style))

    def handle_startendtag(self, tag, attrs):
        # `<span/>` is not void: browsers open the span and wait for `</span>`.
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag):
        if tag != "span" or not self._open:
            return
        start = self._offset()
        end = self.source.index(">", start) + 1
        self.pairs.append((self._open.pop(), start, end))


def _find_style_attr(start_tag: str) -> re.Match | None:
    """Match for the first `style` attribute of a raw start tag (later duplicates are ignored, as in browsers)."""
    name = _TAG_NAME_RE.match(start_tag)
    if not name:
        return None
    pos = name.end()
    while True:
        match = _ATTR_RE.match(start_tag, pos)
        if not match:
            return None
        if match.group("name").lower() == "style":
            return match
        pos = match.end()


def _value_group(match: re.Match) -> str:
    for group in ("dq", "sq", "bare"):
        if match.group(group) is not None:
            return group
    return ""


def _attr_value(match: re.Match) -> str:
    group = _value_group(match)
    return match.group(group) if group else ""


def _split_declarations(style: str) -> list[tuple[str, str, str]]:
    """Return (property, value, original text) for each `prop: value` in a style string."""
    out = []
    for chunk in style.split(";"):
        text = chunk.strip()
        if not text or ":" not in text:
            continue
        prop, value = text.split(":", 1)
        out.append((prop.strip().lower(), value, text))
    return out


def _normalize_color(value: str) -> str:
    value = re.sub(r"\s+", "", value.lower())
    return value.replace("!important", "")


def _color_of(style: str) -> str | None:
    color = None
    for prop, value, _ in _split_declarations(style):
        if prop == "color":
            color = _normalize_color(value)
    return color


def _strip_color_declaration(start_tag: str) -> str:
    match = _find_style_attr(start_tag)
    if not match:
        return start_tag
    group = _value_group(match)
    raw_value = match.group(group) if group else ""
    kept = [text for prop, _, text in _split_declarations(raw_value) if prop != "color"]
    if not kept:
        cut = match.start("attr")
        while cut > match.start() and start_tag[cut - 1].isspace():
            cut -= 1
        return start_tag[:cut] + start_tag[match.end("attr"):]
    value_start, value_end = match.span(group)
    return start_tag[:value_start] + "; ".join(kept) + start_tag[value_end:]


def _sanitize_pass(source: str) -> str:
    parser = _SpanPairParser(source)
    parser.feed(source)
    parser.close()

    # offset -> (end offset, replacement text)
    edits: dict[int, tuple[int, str]] = {}
    for open_tag, close_start, close_end in parser.pairs:
        if open_tag.style is None:
            continue
        color = _color_of(open_tag.style)
        if color is None:
            continue
        if color == NEAR_BLACK_COLOR:
            raw = source[open_tag.start:open_tag.end]
            edits[open_tag.start] = (open_tag.end, _strip_color_declaration(raw))
        elif color in BLACK_COLOR_VALUES:
            edits[open_tag.start] = (open_tag.end, "")
            edits[close_start] = (close_end, "")

    if not edits:
        return source

    parts = []
    pos = 0
    for start in sorted(edits):
        end, replacement = edits[start]
        parts.append(source[pos:start])
        parts.append(replacement)
        pos = end
    parts.append(source[pos:])
    return "".join(parts)


def sanitize_black_span_color_result(fragment: str) -> SanitizeResult:
    """Remove black foreground styling from spans, reporting what happened.

    Never raises: on failure the original fragment comes back with `error` set.
    """
    lowered = fragment.lower()
    if "<span" not in lowered or "color" not in lowered:
        return SanitizeResult(html=fragment)

    try:
        current = fragment
        passes = 0
        while passes < MAX_PASSES:
            passes += 1
            updated = _sanitize_pass(current)
            if updated == current:
                break
            current = updated
    except Exception as exc:
        return SanitizeResult(html=fragment, error=f"{type(exc).__name__}: {exc}")

    return SanitizeResult(html=current, changed=current != fragment, passes=passes)


def sanitize_black_span_color(fragment: str) -> str:
    result = sanitize_black_span_color_result(fragment)
    if not result.ok:
        logger.warning("Black span sanitizer left input unchanged: %s", result.error)
    return result.html


_css_sanitizer = CSSSanitizer(allowed_css_properties=ALLOWED_CSS_PROPERTIES)


def clean_html(fragment: str) -> str:
    if not fragment:
        return ""
    return bleach.clean(
        fragment,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        css_sanitizer=_css_sanitizer,
        strip=True,
    )


def normalize_rich_html(fragment: str) -> str:
    """Normalization applied to every rich-text field before it is stored."""
    out = sanitize_black_span_color(fragment or "")
    if settings.sanitize_html:
        out = clean_html(out)
    return out
