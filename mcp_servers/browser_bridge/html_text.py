"""HTML fragment to plain text, as returned by ``browser_extract_text``."""

from __future__ import annotations

import re

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_RE = re.compile(r"</?(p|div|h[1-6]|ul|ol|li|blockquote|pre|table|tr|td|th)[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")

# Applied in order; "&amp;" first, so "&amp;lt;" ends up as "<".
_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&nbsp;", " "),
)


def strip_html_tags(html: str) -> str:
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _BR_RE.sub("\n", text)
    text = _BLOCK_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def fragments_to_text(fragments: list[str]) -> str:
    return "\n\n".join(strip_html_tags(fragment) for fragment in fragments)
