"""List items -> Markdown list lines with per-numId multi-level counters."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from builders.text_block import render_inline
from docx_model import ConversionContext, DocxElement, ElementKind, NumberingLevel

logger = logging.getLogger(__name__)

INDENT = "  "
BULLET = "-"


@dataclass
class ListInfo:
    num_id: Optional[int]
    ilvl: int
    ordered: bool
    level: Optional[NumberingLevel] = None


def resolve_list_info(element: DocxElement, ctx: ConversionContext) -> ListInfo:
    """numId/ilvl -> ordered or bullet; anything unresolved falls back to a bullet."""
    num_id = element.props.num_id
    ilvl = max(0, element.props.ilvl or 0)
    level = ctx.numbering.resolve(num_id, ilvl) if ctx.numbering is not None else None
    ordered = (
        ctx.settings.handle_numbering
        and num_id is not None
        and level is not None
        and not level.is_bullet
    )
    return ListInfo(num_id=num_id, ilvl=ilvl, ordered=ordered, level=level)


def list_marker(info: ListInfo, ctx: ConversionContext) -> str:
    if not info.ordered:
        return BULLET
    count = ctx.list_counters.advance(info.num_id, info.ilvl)
    start = ctx.numbering.start_for(info.num_id, info.ilvl)
    return f"{count + start - 1}."


def append_list_block(add_lines: list[str], items: list[DocxElement], ctx: ConversionContext) -> None:
    """
    Append one contiguous run of list items as a single block.
    Counters live on ctx for the whole pass, so an interrupted list keeps counting.
    """
    lines: list[str] = []
    for item in items:
        if item.kind != ElementKind.LIST_ITEM:
            continue
        info = resolve_list_info(item, ctx)
        marker = list_marker(info, ctx)
        text = render_inline(item.children, ctx, line_break=" ").strip()
        lines.append(f"{INDENT * info.ilvl}{marker} {text}".rstrip())
    if lines:
        logger.debug(f"List group: {len(lines)} item(s)")
        add_lines.append("\n".join(lines))


def convert_list(items: list[DocxElement], ctx: ConversionContext) -> str:
    add_lines: list[str] = []
    append_list_block(add_lines, items, ctx)
    return "".join(add_lines)
