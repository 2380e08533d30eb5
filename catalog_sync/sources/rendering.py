"""Conversion of database page blocks to HTML and of HTML to plain text."""

import html
import re
from typing import Any

from bs4 import BeautifulSoup

_WHITESPACE_PATTERN = re.compile(r"\s+")

_TEXT_BLOCK_TAGS = {
    "heading_1": "h1",
    "heading_2": "h2",
    "heading_3": "h3",
    "bulleted_list_item": "li",
    "numbered_list_item": "li",
    "quote": "blockquote",
}


def strip_markup(markup: str | None) -> str:
    """Reduce HTML to plain text: drop tags, decode entities, collapse whitespace."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    text = soup.get_text(separator=" ").replace("\xa0", " ")
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def _plain_text(rich_text: list[dict[str, Any]]) -> str:
    return "".join(html.escape(item.get("plain_text", "")) for item in rich_text)


def _annotated_text(rich_text: list[dict[str, Any]]) -> str:
    parts = []
    for item in rich_text:
        formatted = html.escape(item.get("plain_text", ""))
        annotations = item.get("annotations") or {}
        if annotations.get("bold"):
            formatted = f"<strong>{formatted}</strong>"
        if annotations.get("italic"):
            formatted = f"<em>{formatted}</em>"
        if annotations.get("strikethrough"):
            formatted = f"<s>{formatted}</s>"
        if item.get("href"):
            formatted = f'<a href="{html.escape(item["href"], quote=True)}">{formatted}</a>'
        parts.append(formatted)
    return "".join(parts)


def block_to_html(block: dict[str, Any]) -> str:
    """Convert a single block to HTML. Unsupported block types render as ''."""
    block_type = block.get("type", "")
    content = block.get(block_type) or {}

    if block_type == "paragraph":
        rich_text = content.get("rich_text") or []
        return f"<p>{_annotated_text(rich_text)}</p>" if rich_text else ""

    if block_type in _TEXT_BLOCK_TAGS:
        rich_text = content.get("rich_text") or []
        if not rich_text:
            return ""
        tag = _TEXT_BLOCK_TAGS[block_type]
        return f"<{tag}>{_plain_text(rich_text)}</{tag}>"

    if block_type == "code":
        rich_text = content.get("rich_text") or []
        return f"<pre><code>{_plain_text(rich_text)}</code></pre>" if rich_text else ""

    if block_type == "divider":
        return "<hr>"

    if block_type == "image":
        image_type = content.get("type")
        url = (content.get(image_type) or {}).get("url") if image_type else None
        if url:
            return f'<img src="{html.escape(url, quote=True)}" style="max-width:100%;">'
        return ""

    return ""
