"""
Rich Text Renderer

A small markdown-like subset for profile bios:

    ## Heading            ### Subheading
    > quote               - list item
    **bold**  *italic*    [label](https://example.com)

Consecutive plain lines form one paragraph; a blank line ends the
current paragraph or list. Anything else is plain text. Output HTML is
fully escaped, only the tags produced here are emitted.
"""

import re
from dataclasses import dataclass, field
from html import escape
from typing import List, Union

LINK_PATTERN = re.compile(r'\[([^\]]+)\]\((https?://[^\s)]+)\)')
EMPHASIS_PATTERN = re.compile(r'(\*\*[^*]+\*\*|\*[^*]+\*)')

BLOCK_PREFIXES = (
    ("### ", "h3"),
    ("## ", "h2"),
    ("> ", "quote"),
)


@dataclass
class InlineNode:
    """A run of text: plain, strong, em, or link (with href)."""
    type: str
    text: str
    href: str = ""


@dataclass
class RichTextBlock:
    """h2, h3, quote and paragraph blocks carry content; lists carry items."""
    type: str
    content: str = ""
    items: List[str] = field(default_factory=list)


def _parse_emphasis(text: str) -> List[InlineNode]:
    nodes = []
    for part in EMPHASIS_PATTERN.split(text):
        if not part:
            continue
        if len(part) > 4 and part.startswith("**") and part.endswith("**"):
            nodes.append(InlineNode("strong", part[2:-2]))
        elif len(part) > 2 and part.startswith("*") and part.endswith("*"):
            nodes.append(InlineNode("em", part[1:-1]))
        else:
            nodes.append(InlineNode("text", part))
    return nodes


def parse_inline(text: str) -> List[InlineNode]:
    """Split a line into links and emphasised/plain runs."""
    nodes: List[InlineNode] = []
    cursor = 0

    for match in LINK_PATTERN.finditer(text):
        if match.start() > cursor:
            nodes.extend(_parse_emphasis(text[cursor:match.start()]))
        nodes.append(InlineNode("link", match.group(1), href=match.group(2)))
        cursor = match.end()

    if cursor < len(text):
        nodes.extend(_parse_emphasis(text[cursor:]))

    return nodes


def parse_rich_text(value: str) -> List[RichTextBlock]:
    blocks: List[RichTextBlock] = []
    paragraph: List[str] = []
    list_items: List[str] = []

    def flush_paragraph():
        if paragraph:
            blocks.append(RichTextBlock("paragraph", content=" ".join(paragraph)))
            paragraph.clear()

    def flush_list():
        if list_items:
            blocks.append(RichTextBlock("list", items=list(list_items)))
            list_items.clear()

    for raw_line in re.split(r'\r?\n', value or ""):
        line = raw_line.strip()

        if not line:
            flush_paragraph()
            flush_list()
            continue

        if line.startswith("- "):
            flush_paragraph()
            list_items.append(line[2:].strip())
            continue

        flush_list()

        for prefix, block_type in BLOCK_PREFIXES:
            if line.startswith(prefix):
                flush_paragraph()
                blocks.append(RichTextBlock(block_type, content=line[len(prefix):].strip()))
                break
        else:
            paragraph.append(line)

    flush_paragraph()
    flush_list()
    return blocks


def _render_inline_html(text: str) -> str:
    parts = []
    for node in parse_inline(text):
        if node.type == "link":
            parts.append(
                f'<a href="{escape(node.href)}" target="_blank" rel="noreferrer">'
                f'{escape(node.text)}</a>'
            )
        elif node.type in ("strong", "em"):
            parts.append(f"<{node.type}>{escape(node.text)}</{node.type}>")
        else:
            parts.append(escape(node.text))
    return "".join(parts)


_BLOCK_TAGS = {"h2": "h2", "h3": "h3", "quote": "blockquote", "paragraph": "p"}


def render_rich_text_html(value: Union[str, List[RichTextBlock]]) -> str:
    blocks = parse_rich_text(value) if isinstance(value, str) else value
    html = []

    for block in blocks:
        if block.type == "list":
            items = "".join(f"<li>{_render_inline_html(item)}</li>" for item in block.items)
            html.append(f"<ul>{items}</ul>")
        else:
            tag = _BLOCK_TAGS[block.type]
            html.append(f"<{tag}>{_render_inline_html(block.content)}</{tag}>")

    return "".join(html)
