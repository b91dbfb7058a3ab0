# -*- coding: utf-8 -*-
"""
ParsedDocx -> Markdown.

- Top-level elements are grouped: maximal contiguous list-item runs become one group
- Each group is dispatched to its builder; a failing element is dropped with a warning
- Every pass gets its own ConversionContext (list counters, image store, warnings)
"""
import logging
import re
from typing import List, Optional, Union

from builders.image_block import ImageStore, InMemoryImageStore
from builders.list_block import append_list_block
from builders.table_block import append_table_block
from builders.text_block import append_heading_block, append_text_block, render_formula
from converter_settings import DEFAULT_SETTINGS, ConverterSettings
from docx_model import (
    ConversionContext,
    ConversionResult,
    DocxElement,
    ElementKind,
    ListCounterState,
    ParsedDocx,
)
from docx_structure_parser import parse_package

logger = logging.getLogger(__name__)

Group = Union[DocxElement, List[DocxElement]]

_MANY_NEWLINES = re.compile(r"\n{3,}")


def group_elements(elements: List[DocxElement]) -> List[Group]:
    """Keep document order; only directly adjacent list items share a group."""
    groups: List[Group] = []
    current: List[DocxElement] = []
    for el in elements:
        if el.kind == ElementKind.LIST_ITEM:
            current.append(el)
            continue
        if current:
            groups.append(current)
            current = []
        groups.append(el)
    if current:
        groups.append(current)
    return groups


def normalize_markdown(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = _MANY_NEWLINES.sub("\n\n", text).strip("\n")
    return f"{text}\n" if text else ""


def _lone_display_formula(el: DocxElement) -> Optional[DocxElement]:
    formulas = list(el.iter_kind(ElementKind.FORMULA))
    if len(formulas) != 1 or not formulas[0].props.display:
        return None
    for node in el.iter_kind(ElementKind.TEXT):
        if (node.text or "").strip():
            return None
    if any(True for _ in el.iter_kind(ElementKind.IMAGE)):
        return None
    return formulas[0]


class MarkdownConverter(object):
    def __init__(self, settings: Optional[ConverterSettings] = None, image_store: Optional[ImageStore] = None):
        self.settings = settings or DEFAULT_SETTINGS
        self.image_store = image_store
        if self.settings.formula_format == "mathml":
            logger.info("formula_format=mathml: formulas are emitted as LaTeX")

    def _new_context(self, parsed: ParsedDocx) -> ConversionContext:
        store = self.image_store or InMemoryImageStore(
            folder=self.settings.image_folder,
            use_relative_paths=self.settings.use_relative_image_paths,
        )
        return ConversionContext(
            settings=self.settings,
            styles=parsed.styles,
            numbering=parsed.numbering,
            relationships=parsed.relationships,
            images=parsed.images,
            image_store=store,
            list_counters=ListCounterState(),
            warnings=list(parsed.warnings),
        )

    def convert_package(self, package) -> ConversionResult:
        return self.convert(parse_package(package))

    def convert(self, parsed: ParsedDocx) -> ConversionResult:
        ctx = self._new_context(parsed)
        blocks: List[str] = []
        for group in group_elements(parsed.body):
            kind = "listItem" if isinstance(group, list) else group.kind.value
            try:
                self._convert_group(blocks, group, ctx)
            except Exception as e:
                logger.error(f"Failed to convert element: {kind}: {e}")
                ctx.warn(f"Failed to convert element: {kind}")
        markdown = normalize_markdown("\n\n".join(b for b in blocks if b.strip()))
        images = dict(ctx.image_store.files) if isinstance(ctx.image_store, InMemoryImageStore) else {}
        logger.info(f"Converted {len(parsed.body)} block(s); {len(ctx.warnings)} warning(s)")
        return ConversionResult(markdown=markdown, warnings=ctx.warnings, images=images)

    def _convert_group(self, blocks: List[str], group: Group, ctx: ConversionContext):
        # builders append into a scratch list so a failure leaves `blocks` untouched
        add_lines: List[str] = []
        if isinstance(group, list):
            append_list_block(add_lines, group, ctx)
        elif group.kind == ElementKind.HEADING:
            append_heading_block(add_lines, group, ctx)
        elif group.kind == ElementKind.TABLE:
            append_table_block(add_lines, group, ctx)
        else:
            formula = _lone_display_formula(group)
            if formula is not None:
                add_lines.append(render_formula(formula, ctx, block=True))
            else:
                append_text_block(add_lines, group, ctx)
        blocks.extend(add_lines)
