"""Inline Markdown: formatted runs, hyperlinks, breaks, tabs, inline formulas and images."""
from __future__ import annotations

import logging

from builders.image_block import render_image
from docx_model import ConversionContext, DocxElement, ElementKind, ElementProperties
from formula_converter import FORMULA_PLACEHOLDER, FormulaConverter

logger = logging.getLogger(__name__)

TAB_TEXT = "    "

_formula_converter = FormulaConverter()


def apply_formatting(text: str, props: ElementProperties) -> str:
    """Wrap innermost -> outermost: ~~, ***/**/*, ==, <sup>/<sub>, <u>. Edge whitespace stays outside."""
    core = text.strip() if text else ""
    if not core:
        return text or ""
    lead = text[: len(text) - len(text.lstrip())]
    trail = text[len(text.rstrip()):]
    if props.strikethrough:
        core = f"~~{core}~~"
    if props.bold and props.italic:
        core = f"***{core}***"
    elif props.bold:
        core = f"**{core}**"
    elif props.italic:
        core = f"*{core}*"
    if props.highlight:
        core = f"=={core}=="
    if props.superscript:
        core = f"<sup>{core}</sup>"
    elif props.subscript:
        core = f"<sub>{core}</sub>"
    if props.underline:
        core = f"<u>{core}</u>"
    return f"{lead}{core}{trail}"


def render_formula(element: DocxElement, ctx: ConversionContext, block: bool = False) -> str:
    """Inline `$...$` unless `block` is set; only a paragraph holding nothing but display math asks for `$$`."""
    latex = _formula_converter.convert(element.props.omml, ctx.warnings)
    if not latex or latex == FORMULA_PLACEHOLDER:
        return latex
    if block:
        return f"$$\n{latex}\n$$"
    return f"${latex}$"


def render_run(run: DocxElement, ctx: ConversionContext, line_break: str = "\n") -> str:
    parts: list[str] = []
    buf: list[str] = []

    def flush():
        if buf:
            parts.append(apply_formatting("".join(buf), run.props))
            buf.clear()

    for child in run.children:
        kind = child.kind
        if kind == ElementKind.TEXT:
            buf.append(child.text or "")
        elif kind == ElementKind.TAB:
            buf.append(TAB_TEXT)
        elif kind == ElementKind.BREAK:
            buf.append(line_break if ctx.settings.preserve_line_breaks else " ")
        elif kind == ElementKind.IMAGE:
            flush()
            parts.append(render_image(child, ctx))
        elif kind == ElementKind.FORMULA:
            flush()
            parts.append(render_formula(child, ctx))
    flush()
    return "".join(parts)


def render_hyperlink(link: DocxElement, ctx: ConversionContext, line_break: str = "\n") -> str:
    text = render_inline(link.children, ctx, line_break)
    if link.props.hyperlink_id:
        rel = ctx.relationships.get(link.props.hyperlink_id)
        target = rel.target if rel is not None and rel.target else "#"
        if rel is None:
            logger.debug(f"Unresolved hyperlink relationship {link.props.hyperlink_id!r}")
    elif link.props.anchor:
        target = f"#{link.props.anchor}"
    else:
        target = "#"
    return f"[{text}]({target})"


def render_inline(children: list[DocxElement], ctx: ConversionContext, line_break: str = "\n") -> str:
    """Inline content of a paragraph-like element; `line_break` is what w:br turns into."""
    out: list[str] = []
    for child in children:
        kind = child.kind
        if kind == ElementKind.RUN:
            out.append(render_run(child, ctx, line_break))
        elif kind == ElementKind.HYPERLINK:
            out.append(render_hyperlink(child, ctx, line_break))
        elif kind == ElementKind.FORMULA:
            out.append(render_formula(child, ctx))
        elif kind == ElementKind.IMAGE:
            out.append(render_image(child, ctx))
        elif kind == ElementKind.TEXT:
            out.append(child.text or "")
        elif child.children:
            out.append(render_inline(child.children, ctx, line_break))
    return "".join(out)


def append_text_block(add_lines: list[str], element: DocxElement, ctx: ConversionContext) -> None:
    """Append a plain paragraph, wrapped for center / right alignment."""
    text = render_inline(element.children, ctx).strip()
    if not text:
        return
    if element.props.alignment == "center":
        text = f"<center>{text}</center>"
    elif element.props.alignment == "right":
        text = f'<div style="text-align: right">{text}</div>'
    add_lines.append(text)


def append_heading_block(add_lines: list[str], element: DocxElement, ctx: ConversionContext) -> None:
    level = min(max(element.props.heading_level or 1, 1), 6)
    text = " ".join(render_inline(element.children, ctx).split())
    if text:
        add_lines.append(f"{'#' * level} {text}")
