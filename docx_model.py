# -*- coding: utf-8 -*-
"""
Typed model shared by the DOCX -> Markdown pipeline.

- DocxElement / ElementProperties: the structural element tree built from word/document.xml
- StyleDefinition, NumberingDefinition, Relationship, ImageData: side tables from the metadata parts
- ConversionContext: per-pass state (settings + side tables + list counters + warnings)
- ConversionResult: markdown text plus the warnings collected along the way
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from converter_settings import ConverterSettings

if TYPE_CHECKING:
    from builders.image_block import ImageStore


class DocxImportError(RuntimeError):
    """Fatal import failure: the container or the document body cannot be read."""


class ElementKind(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST_ITEM = "listItem"
    RUN = "run"
    TEXT = "text"
    BREAK = "break"
    TAB = "tab"
    HYPERLINK = "hyperlink"
    IMAGE = "image"
    FORMULA = "formula"
    TABLE = "table"
    TABLE_ROW = "tableRow"
    TABLE_CELL = "tableCell"
    UNKNOWN = "unknown"


BLOCK_KINDS = (ElementKind.PARAGRAPH, ElementKind.HEADING, ElementKind.LIST_ITEM)


@dataclass
class ElementProperties:
    # run flags
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    superscript: bool = False
    subscript: bool = False
    highlight: bool = False
    # paragraph
    style_id: Optional[str] = None
    heading_level: Optional[int] = None
    num_id: Optional[int] = None
    ilvl: int = 0
    alignment: Optional[str] = None
    # inline targets
    hyperlink_id: Optional[str] = None
    anchor: Optional[str] = None
    image_id: Optional[str] = None
    image_alt: str = ""
    omml: Optional[bytes] = None
    display: bool = False
    break_type: Optional[str] = None
    # table cells
    colspan: int = 1
    v_merge: Optional[str] = None

    @property
    def merge_restart(self) -> bool:
        return self.v_merge == "restart"


@dataclass
class DocxElement:
    kind: ElementKind
    text: Optional[str] = None
    children: List["DocxElement"] = field(default_factory=list)
    props: ElementProperties = field(default_factory=ElementProperties)

    def iter_kind(self, kind: ElementKind):
        """Yield descendants of the given kind in document order."""
        for child in self.children:
            if child.kind == kind:
                yield child
            yield from child.iter_kind(kind)


@dataclass
class StyleDefinition:
    style_id: str
    name: str = ""
    type: str = ""
    based_on: Optional[str] = None
    num_id: Optional[int] = None
    ilvl: Optional[int] = None


@dataclass
class NumberingLevel:
    ilvl: int
    num_fmt: str = "decimal"
    start: int = 1

    @property
    def is_bullet(self) -> bool:
        return (self.num_fmt or "").lower() in ("bullet", "none")


@dataclass
class AbstractFormat:
    abstract_id: int
    levels: Dict[int, NumberingLevel] = field(default_factory=dict)


@dataclass
class NumberingDefinition:
    abstract_formats: Dict[int, AbstractFormat] = field(default_factory=dict)
    instances: Dict[int, int] = field(default_factory=dict)
    start_overrides: Dict[int, Dict[int, int]] = field(default_factory=dict)

    def resolve(self, num_id: Optional[int], ilvl: int) -> Optional[NumberingLevel]:
        """numId -> instance -> abstract format -> level; None when any link is missing."""
        if num_id is None:
            return None
        abstract_id = self.instances.get(num_id)
        if abstract_id is None:
            return None
        fmt = self.abstract_formats.get(abstract_id)
        if fmt is None:
            return None
        return fmt.levels.get(ilvl)

    def start_for(self, num_id: int, ilvl: int) -> int:
        override = self.start_overrides.get(num_id, {}).get(ilvl)
        if override is not None:
            return override
        level = self.resolve(num_id, ilvl)
        return level.start if level is not None else 1


@dataclass
class Relationship:
    id: str
    type: str = ""
    target: str = ""
    target_mode: str = "Internal"

    @property
    def is_external(self) -> bool:
        return self.target_mode.lower() == "external"


@dataclass
class ImageData:
    data: bytes
    content_type: str
    file_name: str
    extension: str


@dataclass
class ParsedDocx:
    body: List[DocxElement]
    styles: Dict[str, StyleDefinition] = field(default_factory=dict)
    numbering: Optional[NumberingDefinition] = None
    relationships: Dict[str, Relationship] = field(default_factory=dict)
    images: Dict[str, ImageData] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


class ListCounterState:
    """Per-numId level counters for one conversion pass."""

    def __init__(self):
        self._counters: Dict[int, List[int]] = {}

    def advance(self, num_id: int, ilvl: int) -> int:
        """Count one item at `ilvl`; deeper levels restart. Returns the 1-based count."""
        counters = self._counters.setdefault(num_id, [])
        while len(counters) <= ilvl:
            counters.append(0)
        counters[ilvl] += 1
        for j in range(ilvl + 1, len(counters)):
            counters[j] = 0
        return counters[ilvl]

    def snapshot(self, num_id: int) -> List[int]:
        return list(self._counters.get(num_id, []))

    def reset(self):
        self._counters.clear()


@dataclass
class ConversionContext:
    settings: ConverterSettings
    styles: Dict[str, StyleDefinition]
    numbering: Optional[NumberingDefinition]
    relationships: Dict[str, Relationship]
    images: Dict[str, ImageData]
    image_store: "ImageStore"
    list_counters: ListCounterState = field(default_factory=ListCounterState)
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str):
        self.warnings.append(message)


@dataclass
class ConversionResult:
    markdown: str
    warnings: List[str] = field(default_factory=list)
    images: Dict[str, bytes] = field(default_factory=dict)
