"""Shared builders for raw WordprocessingML / OMML snippets and conversion contexts."""
from __future__ import annotations

import base64
from typing import Dict, Optional

from builders.image_block import InMemoryImageStore
from converter_settings import DEFAULT_SETTINGS, ConverterSettings
from docx_model import (
    ConversionContext,
    DocxElement,
    ElementKind,
    ElementProperties,
    ImageData,
    NumberingDefinition,
    Relationship,
)

NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "m": "http://schemas.openxmlformats.org/officeDocument/2006/math",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "v": "urn:schemas-microsoft-com:vml",
}
NS_DECLS = " ".join(f'xmlns:{prefix}="{uri}"' for prefix, uri in NAMESPACES.items())

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def document_xml(body: str) -> bytes:
    return f"<w:document {NS_DECLS}><w:body>{body}</w:body></w:document>".encode("utf-8")


def omml(inner: str) -> bytes:
    return f'<m:oMath xmlns:m="{NAMESPACES["m"]}">{inner}</m:oMath>'.encode("utf-8")


def mr(text: str) -> str:
    return f"<m:r><m:t>{text}</m:t></m:r>"


def text_run(text: str, **flags) -> DocxElement:
    return DocxElement(
        kind=ElementKind.RUN,
        children=[DocxElement(kind=ElementKind.TEXT, text=text)],
        props=ElementProperties(**flags),
    )


def paragraph(*children: DocxElement, **props) -> DocxElement:
    return DocxElement(kind=ElementKind.PARAGRAPH, children=list(children), props=ElementProperties(**props))


def list_item(text: str, num_id: Optional[int], ilvl: int = 0) -> DocxElement:
    return DocxElement(
        kind=ElementKind.LIST_ITEM,
        children=[text_run(text)],
        props=ElementProperties(num_id=num_id, ilvl=ilvl),
    )


def make_context(
    settings: Optional[ConverterSettings] = None,
    numbering: Optional[NumberingDefinition] = None,
    relationships: Optional[Dict[str, Relationship]] = None,
    images: Optional[Dict[str, ImageData]] = None,
    store=None,
) -> ConversionContext:
    settings = settings or DEFAULT_SETTINGS
    return ConversionContext(
        settings=settings,
        styles={},
        numbering=numbering,
        relationships=relationships or {},
        images=images or {},
        image_store=store or InMemoryImageStore(settings.image_folder, settings.use_relative_image_paths),
    )
