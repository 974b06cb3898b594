"""
Sanitizing of captured site markup before it is sampled into prompts.

Large payloads that carry no layout information (inline scripts and styles,
SVG paths, base64 blobs, source maps, oversized attributes) are redacted so
later prompts stay small.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment


BASE64_PATTERN = re.compile(r"(data:[\w/+.-]+(?:;[\w=.-]+)*;base64,)[^\"'\s)]+")
SOURCE_MAP_PATTERN = re.compile(r"(//[#@] sourceMappingURL=)[^\s\"'*]+")

LONG_DATA_ATTRIBUTE_CHARS = 100
LONG_CLASS_LIST_CHARS = 200
TRUNCATION_MARKER = "\n<!-- markup truncated -->"


def _redact_elements(soup: BeautifulSoup) -> None:
    """Replace bulky element bodies with short placeholders."""
    for script in soup.find_all("script"):
        if script.get("type") == "application/json":
            script.string = "---json data, redacted---"
        elif script.contents:
            script.string = "---script content, redacted---"

    for style in soup.find_all("style"):
        if style.contents:
            style.string = "---style content, redacted---"

    for svg in soup.find_all("svg"):
        if svg.find_parent("svg") is not None:
            continue
        svg.clear()
        svg.attrs = {}
        svg.string = "---svg content, redacted---"

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.replace_with(Comment("comment redacted"))


def _redact_attributes(soup: BeautifulSoup) -> None:
    """Shorten attributes that only carry opaque data."""
    for tag in soup.find_all(True):
        for name, value in list(tag.attrs.items()):
            text = " ".join(value) if isinstance(value, list) else str(value)
            if name == "data-uri":
                tag.attrs[name] = "---data-uri, redacted---"
            elif name.startswith("data-") and len(text) >= LONG_DATA_ATTRIBUTE_CHARS:
                tag.attrs[name] = "---long data attribute, redacted---"
            elif name == "class" and len(text) >= LONG_CLASS_LIST_CHARS:
                tag.attrs[name] = "---long-class-list-redacted---"


def sanitize_markup(raw_markup: Optional[str], max_chars: Optional[int] = None) -> str:
    """
    Strip large binary-like payloads from captured markup.

    Args:
        raw_markup: Captured HTML of the reference site.
        max_chars: Optional hard cap on the sanitized length.

    Returns:
        Sanitized markup; "" for empty input.
    """
    if not raw_markup:
        return ""

    soup = BeautifulSoup(raw_markup, "html.parser")
    _redact_elements(soup)
    _redact_attributes(soup)

    sanitized = soup.decode()
    sanitized = BASE64_PATTERN.sub(r"\1---base64 data, redacted---", sanitized)
    sanitized = SOURCE_MAP_PATTERN.sub(r"\1redacted", sanitized)

    if max_chars is not None and len(sanitized) > max_chars:
        keep = max(max_chars - len(TRUNCATION_MARKER), 0)
        sanitized = sanitized[:keep] + TRUNCATION_MARKER

    return sanitized


def markup_sample(markup: str, max_chars: int = 1000) -> str:
    """Cut markup down to a short sample for a prompt."""
    if len(markup) <= max_chars:
        return markup
    return markup[:max_chars] + "..."
