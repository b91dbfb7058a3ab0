"""TABLE element -> rectangular Markdown table text."""
from __future__ import annotations

import logging

from builders.text_block import render_inline
from docx_model import ConversionContext, DocxElement, ElementKind

logger = logging.getLogger(__name__)

CELL_BREAK = "<br>"
SEPARATORS = {"left": "---", "center": ":---:", "right": "---:"}


def escape_cell(text: str) -> str:
    text = (text or "").replace("\r\n", "\n").replace("|", "\\|")
    return text.replace("\n", CELL_BREAK).strip()


def render_cell(cell: DocxElement, ctx: ConversionContext) -> str:
    paragraphs = []
    for para in cell.children:
        text = render_inline(para.children, ctx, line_break=CELL_BREAK).strip()
        if text:
            paragraphs.append(escape_cell(text))
    return CELL_BREAK.join(paragraphs)


def table_rows(table: DocxElement, ctx: ConversionContext) -> list[list[str]]:
    """Rendered rows with colspan expanded into empty cells and padded to the widest row."""
    rows: list[list[str]] = []
    for row in table.children:
        if row.kind != ElementKind.TABLE_ROW:
            continue
        cells: list[str] = []
        for cell in row.children:
            cells.append(render_cell(cell, ctx))
            cells.extend([""] * (max(1, cell.props.colspan) - 1))
        rows.append(cells)
    width = max((len(r) for r in rows), default=0)
    for cells in rows:
        cells.extend([""] * (width - len(cells)))
    return rows


def format_table(rows: list[list[str]], alignment: str = "left") -> str:
    if not rows or not rows[0]:
        return ""
    width = len(rows[0])
    sep = SEPARATORS.get(alignment, SEPARATORS["left"])
    lines = ["| " + " | ".join(rows[0]) + " |", "| " + " | ".join([sep] * width) + " |"]
    for cells in rows[1:]:
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def convert_table(table: DocxElement, ctx: ConversionContext) -> str:
    rows = table_rows(table, ctx)
    logger.debug(f"Table: {len(rows)} row(s) x {len(rows[0]) if rows else 0} col(s)")
    return format_table(rows, ctx.settings.table_alignment)


def append_table_block(add_lines: list[str], table: DocxElement, ctx: ConversionContext) -> None:
    """Append the Markdown table for a TABLE element; empty tables add nothing."""
    text = convert_table(table, ctx)
    if text:
        add_lines.append(text)
