# -*- coding: utf-8 -*-
"""
DOCX structural parser: word/document.xml -> typed element tree, plus the side tables
(styles, numbering, relationships, media) read from the metadata parts.

- Paragraphs are classified once: heading > list item > plain paragraph
- Run flags follow the ST_OnOff rules (w:b / w:i present means on unless explicitly off)
- Math (m:oMath / m:oMathPara) is captured verbatim as an opaque payload
- Table cells keep gridSpan / vMerge; spanning is resolved by the table builder
- A missing or unparsable body is fatal; everything else degrades with a warning or silently
"""
import logging
import posixpath
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from docx.oxml.ns import qn
from lxml import etree

from docx_model import (
    AbstractFormat,
    DocxElement,
    DocxImportError,
    ElementKind,
    ElementProperties,
    ImageData,
    NumberingDefinition,
    NumberingLevel,
    ParsedDocx,
    Relationship,
    StyleDefinition,
)

logger = logging.getLogger(__name__)

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
M_NS = "http://schemas.openxmlformats.org/officeDocument/2006/math"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
V_NS = "urn:schemas-microsoft-com:vml"
MC_NS = "http://schemas.openxmlformats.org/markup-compatibility/2006"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
NSMAP = {"w": W_NS}
NSMAP_ALL = {"w": W_NS, "m": M_NS, "a": A_NS, "r": R_NS, "wp": WP_NS, "v": V_NS, "mc": MC_NS}

DOCUMENT_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
NUMBERING_PART = "word/numbering.xml"
RELS_PART = "word/_rels/document.xml.rels"
MEDIA_PREFIX = "word/media/"

W_VAL = qn("w:val")
R_ID = qn("r:id")
R_EMBED = qn("r:embed")

TAG_P = qn("w:p")
TAG_TBL = qn("w:tbl")
TAG_SDT = qn("w:sdt")
TAG_R = qn("w:r")
TAG_T = qn("w:t")
TAG_HYPERLINK = qn("w:hyperlink")
TAG_OMATH = f"{{{M_NS}}}oMath"
TAG_OMATH_PARA = f"{{{M_NS}}}oMathPara"
TAG_ALT_CONTENT = f"{{{MC_NS}}}AlternateContent"

# paragraph-level children that never carry visible content
SKIP_INLINE_TAGS = frozenset(qn(t) for t in (
    "w:pPr", "w:bookmarkStart", "w:bookmarkEnd", "w:proofErr", "w:permStart", "w:permEnd",
    "w:commentRangeStart", "w:commentRangeEnd", "w:del", "w:moveFrom", "w:moveFromRangeStart",
    "w:moveFromRangeEnd", "w:moveToRangeStart", "w:moveToRangeEnd",
))
SKIP_BLOCK_TAGS = frozenset(qn(t) for t in ("w:sectPr", "w:bookmarkStart", "w:bookmarkEnd", "w:proofErr"))

FALSE_VALUES = ("false", "0", "off")
HEADING_RE = re.compile(r"^heading\s*(\d+)$", re.IGNORECASE)
ALIGNMENTS = {"left": "left", "start": "left", "center": "center", "right": "right", "end": "right",
              "both": "justify", "distribute": "justify"}

XP_BLIP_EMBED = etree.XPath(".//a:blip[@r:embed]", namespaces=NSMAP_ALL)
XP_VML_IMAGEDATA = etree.XPath(".//v:imagedata[@r:id]", namespaces=NSMAP_ALL)
XP_DOCPR = etree.XPath(".//wp:docPr", namespaces=NSMAP_ALL)
XP_CELL_TEXT = etree.XPath("./w:p//w:t", namespaces=NSMAP)

IMAGE_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "emf": "image/emf",
    "wmf": "image/wmf",
}


def _int_or_none(val: Optional[str]) -> Optional[int]:
    if val is None:
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _child_val(parent, tag: str) -> Optional[str]:
    if parent is None:
        return None
    el = parent.find(tag, NSMAP)
    if el is None:
        return None
    return el.get(W_VAL)


def _on_off(el) -> bool:
    val = el.get(W_VAL)
    return val is None or val.strip().lower() not in FALSE_VALUES


def _local(el) -> str:
    return etree.QName(el).localname


def heading_level_for(style_id: Optional[str], styles: Dict[str, StyleDefinition]) -> Optional[int]:
    """Heading<N> by style id, then by the resolved style name ("heading 1")."""
    if not style_id:
        return None
    candidates = [style_id]
    style = styles.get(style_id)
    if style is not None and style.name:
        candidates.append(style.name)
    for cand in candidates:
        m = HEADING_RE.match(cand.strip())
        if m:
            level = int(m.group(1))
            if level >= 1:
                return level
    return None


def style_numbering(style_id: Optional[str], styles: Dict[str, StyleDefinition]) -> Tuple[Optional[int], Optional[int]]:
    """numId / ilvl inherited through the basedOn chain."""
    visited = set()
    current = style_id
    while current and current not in visited:
        visited.add(current)
        style = styles.get(current)
        if style is None:
            break
        if style.num_id is not None:
            return style.num_id, style.ilvl
        current = style.based_on
    return None, None


def media_key_for_target(target: str) -> str:
    """Relationship target -> key into the media table ("media/image1.png")."""
    t = (target or "").replace("\\", "/")
    if t.startswith("/"):
        t = t.lstrip("/")
    else:
        t = posixpath.normpath(posixpath.join("word", t))
    if t.startswith("word/"):
        t = t[len("word/"):]
    return t


class BodyParser(object):
    def __init__(self, styles: Optional[Dict[str, StyleDefinition]] = None):
        self.styles = styles or {}
        self.warnings: List[str] = []

    def _warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)

    def parse(self, xml_bytes: Optional[bytes]) -> List[DocxElement]:
        if xml_bytes is None:
            raise DocxImportError(f"{DOCUMENT_PART} not found in DOCX")
        try:
            root = etree.fromstring(xml_bytes)
        except etree.XMLSyntaxError as e:
            raise DocxImportError(f"{DOCUMENT_PART} is not well-formed XML: {e}") from e
        body = root.find("w:body", NSMAP)
        if body is None:
            return []
        elements: List[DocxElement] = []
        for child in body:
            if not isinstance(child.tag, str):
                continue
            try:
                elements.extend(self._parse_block(child))
            except Exception as e:
                self._warn(f"Skipped malformed <{_local(child)}> in body: {e}")
        return elements

    # ---------- block level ----------
    def _parse_block(self, el) -> List[DocxElement]:
        tag = el.tag
        if tag == TAG_P:
            return [self._parse_paragraph(el)]
        if tag == TAG_TBL:
            return [self._parse_table(el)]
        if tag in SKIP_BLOCK_TAGS:
            return []
        if tag == TAG_SDT:
            content = el.find("w:sdtContent", NSMAP)
            if content is None:
                return []
            out: List[DocxElement] = []
            for inner in content:
                if isinstance(inner.tag, str):
                    out.extend(self._parse_block(inner))
            return out
        # customXml, ins, moveTo ... : visit the wrapped blocks
        out = []
        for inner in el:
            if isinstance(inner.tag, str):
                out.extend(self._parse_block(inner))
        return out

    def _parse_paragraph(self, p) -> DocxElement:
        props = self._paragraph_props(p)
        children = self._parse_inline(p)
        if props.heading_level:
            kind = ElementKind.HEADING
        elif props.num_id is not None:
            kind = ElementKind.LIST_ITEM
        else:
            kind = ElementKind.PARAGRAPH
        return DocxElement(kind=kind, children=children, props=props)

    def _paragraph_props(self, p) -> ElementProperties:
        props = ElementProperties()
        ppr = p.find("w:pPr", NSMAP)
        if ppr is None:
            return props
        props.style_id = _child_val(ppr, "w:pStyle")
        props.heading_level = heading_level_for(props.style_id, self.styles)

        num_pr = ppr.find("w:numPr", NSMAP)
        direct_num = direct_ilvl = None
        if num_pr is not None:
            num_raw = _child_val(num_pr, "w:numId")
            direct_num = _int_or_none(num_raw)
            if num_raw is not None and direct_num is None:
                self._warn(f"Ignored non-numeric numId {num_raw!r}")
            direct_ilvl = _int_or_none(_child_val(num_pr, "w:ilvl"))
        style_num, style_ilvl = style_numbering(props.style_id, self.styles)
        props.num_id = direct_num if direct_num is not None else style_num
        # numId 0 switches numbering off, including any the style supplies
        if props.num_id == 0:
            props.num_id = None
        if props.num_id is not None:
            ilvl = direct_ilvl if direct_ilvl is not None else style_ilvl
            props.ilvl = max(0, ilvl or 0)

        jc = _child_val(ppr, "w:jc")
        if jc:
            props.alignment = ALIGNMENTS.get(jc)
        return props

    # ---------- inline level ----------
    def _parse_inline(self, container) -> List[DocxElement]:
        children: List[DocxElement] = []
        for item in container:
            if not isinstance(item.tag, str) or item.tag in SKIP_INLINE_TAGS:
                continue
            tag = item.tag
            if tag == TAG_R:
                run = self._parse_run(item)
                if run is not None:
                    children.append(run)
            elif tag == TAG_HYPERLINK:
                children.append(self._parse_hyperlink(item))
            elif tag in (TAG_OMATH, TAG_OMATH_PARA):
                children.append(self._parse_formula(item))
            elif len(item):
                inner = self._parse_inline(item)
                if inner:
                    children.append(DocxElement(kind=ElementKind.UNKNOWN, children=inner))
        return children

    def _parse_run(self, r) -> Optional[DocxElement]:
        props = self._run_props(r.find("w:rPr", NSMAP))
        children: List[DocxElement] = []
        for item in r:
            if not isinstance(item.tag, str):
                continue
            name = _local(item)
            ns = etree.QName(item).namespace
            if ns == W_NS and name == "t":
                children.append(DocxElement(kind=ElementKind.TEXT, text=item.text or ""))
            elif ns == W_NS and name == "br":
                br_type = item.get(qn("w:type"))
                if br_type == "page":
                    continue
                children.append(DocxElement(kind=ElementKind.BREAK, props=ElementProperties(break_type=br_type)))
            elif ns == W_NS and name == "cr":
                children.append(DocxElement(kind=ElementKind.BREAK))
            elif ns == W_NS and name == "tab":
                children.append(DocxElement(kind=ElementKind.TAB))
            elif ns == W_NS and name in ("drawing", "pict"):
                image = self._parse_image(item)
                if image is not None:
                    children.append(image)
            elif item.tag == TAG_ALT_CONTENT:
                image = self._parse_alternate_content(item)
                if image is not None:
                    children.append(image)
            elif item.tag in (TAG_OMATH, TAG_OMATH_PARA):
                children.append(self._parse_formula(item))
        if not children:
            return None
        return DocxElement(kind=ElementKind.RUN, children=children, props=props)

    @staticmethod
    def _run_props(rpr) -> ElementProperties:
        props = ElementProperties()
        if rpr is None:
            return props
        for item in rpr:
            if not isinstance(item.tag, str) or etree.QName(item).namespace != W_NS:
                continue
            name = _local(item)
            if name == "b":
                props.bold = _on_off(item)
            elif name == "i":
                props.italic = _on_off(item)
            elif name == "u":
                props.underline = (item.get(W_VAL) or "").lower() != "none"
            elif name in ("strike", "dstrike"):
                props.strikethrough = True
            elif name == "vertAlign":
                val = item.get(W_VAL)
                props.superscript = val == "superscript"
                props.subscript = val == "subscript"
            elif name == "highlight":
                props.highlight = True
        return props

    def _parse_hyperlink(self, el) -> DocxElement:
        props = ElementProperties(hyperlink_id=el.get(R_ID), anchor=el.get(qn("w:anchor")))
        return DocxElement(kind=ElementKind.HYPERLINK, children=self._parse_inline(el), props=props)

    @staticmethod
    def _parse_formula(el) -> DocxElement:
        payload = etree.tostring(el, encoding="utf-8")
        props = ElementProperties(omml=payload, display=el.tag == TAG_OMATH_PARA)
        return DocxElement(kind=ElementKind.FORMULA, props=props)

    @staticmethod
    def _parse_image(el) -> Optional[DocxElement]:
        # first embed reference in document order wins
        rid = None
        blips = XP_BLIP_EMBED(el)
        for blip in blips:
            rid = blip.get(R_EMBED)
            if rid:
                break
        if not rid:
            for imagedata in XP_VML_IMAGEDATA(el):
                rid = imagedata.get(R_ID)
                if rid:
                    break
        if not rid:
            return None
        alt = ""
        docprs = XP_DOCPR(el)
        if docprs:
            alt = docprs[0].get("descr") or docprs[0].get("title") or ""
        return DocxElement(kind=ElementKind.IMAGE, props=ElementProperties(image_id=rid, image_alt=alt))

    def _parse_alternate_content(self, el) -> Optional[DocxElement]:
        for branch in el:
            if not isinstance(branch.tag, str):
                continue
            for item in branch:
                if isinstance(item.tag, str) and item.tag in (qn("w:drawing"), qn("w:pict")):
                    image = self._parse_image(item)
                    if image is not None:
                        return image
        return None

    # ---------- tables ----------
    @staticmethod
    def _unwrap_nested_table(tbl):
        """Certain word files wrap the real table inside a single-row outer table."""
        rows = tbl.findall("w:tr", NSMAP)
        if len(rows) != 1:
            return tbl
        tcs = rows[0].findall("w:tc", NSMAP)
        if not tcs:
            return tbl
        candidate = None
        for tc in tcs:
            if any((t.text or "").strip() for t in XP_CELL_TEXT(tc)):
                return tbl
            for inner in tc.iter(TAG_TBL):
                inner_rows = inner.findall("w:tr", NSMAP)
                if len(inner_rows) > 1:
                    return inner
                if inner_rows and candidate is None:
                    candidate = inner
        return candidate if candidate is not None else tbl

    def _parse_table(self, tbl) -> DocxElement:
        tbl = self._unwrap_nested_table(tbl)
        rows: List[DocxElement] = []
        for tr in tbl.findall("w:tr", NSMAP):
            cells = [self._parse_cell(tc) for tc in tr.findall("w:tc", NSMAP)]
            rows.append(DocxElement(kind=ElementKind.TABLE_ROW, children=cells))
        return DocxElement(kind=ElementKind.TABLE, children=rows)

    def _parse_cell(self, tc) -> DocxElement:
        props = ElementProperties()
        tc_pr = tc.find("w:tcPr", NSMAP)
        if tc_pr is not None:
            span_raw = _child_val(tc_pr, "w:gridSpan")
            if span_raw is not None:
                span = _int_or_none(span_raw)
                if span is None:
                    self._warn(f"Ignored malformed gridSpan {span_raw!r}")
                else:
                    props.colspan = max(1, span)
            v_merge = tc_pr.find("w:vMerge", NSMAP)
            if v_merge is not None:
                props.v_merge = v_merge.get(W_VAL) or "continue"
        children: List[DocxElement] = []
        for item in tc:
            if item.tag == TAG_P:
                children.append(self._parse_paragraph(item))
            elif item.tag in (TAG_TBL, TAG_SDT):
                # nested content contributes its paragraphs to this cell
                for p in item.iter(TAG_P):
                    children.append(self._parse_paragraph(p))
        return DocxElement(kind=ElementKind.TABLE_CELL, children=children, props=props)


def parse_document_xml(xml_bytes: Optional[bytes],
                       styles: Optional[Dict[str, StyleDefinition]] = None) -> Tuple[List[DocxElement], List[str]]:
    parser = BodyParser(styles)
    body = parser.parse(xml_bytes)
    return body, parser.warnings


# ---------- side tables ----------
def _parse_part(xml_bytes: Optional[bytes], part_name: str):
    if not xml_bytes:
        return None
    try:
        return etree.fromstring(xml_bytes)
    except etree.XMLSyntaxError as e:
        logger.warning(f"Failed to parse {part_name}: {e}")
        return None


def parse_styles_xml(xml_bytes: Optional[bytes]) -> Dict[str, StyleDefinition]:
    styles: Dict[str, StyleDefinition] = {}
    root = _parse_part(xml_bytes, STYLES_PART)
    if root is None:
        return styles
    for st in root.findall("w:style", NSMAP):
        style_id = st.get(qn("w:styleId"))
        if not style_id:
            continue
        num_pr = st.find("w:pPr/w:numPr", NSMAP)
        num_id = ilvl = None
        if num_pr is not None:
            num_id = _int_or_none(_child_val(num_pr, "w:numId"))
            ilvl = _int_or_none(_child_val(num_pr, "w:ilvl"))
        styles[style_id] = StyleDefinition(
            style_id=style_id,
            name=_child_val(st, "w:name") or "",
            type=st.get(qn("w:type")) or "",
            based_on=_child_val(st, "w:basedOn"),
            num_id=num_id,
            ilvl=ilvl,
        )
    return styles


def parse_numbering_xml(xml_bytes: Optional[bytes]) -> Optional[NumberingDefinition]:
    root = _parse_part(xml_bytes, NUMBERING_PART)
    if root is None:
        return None
    numbering = NumberingDefinition()
    for abs_num in root.findall("w:abstractNum", NSMAP):
        anid = _int_or_none(abs_num.get(qn("w:abstractNumId")))
        if anid is None:
            continue
        fmt = AbstractFormat(abstract_id=anid)
        for lvl in abs_num.findall("w:lvl", NSMAP):
            ilvl = _int_or_none(lvl.get(qn("w:ilvl")))
            if ilvl is None:
                continue
            level = NumberingLevel(ilvl=ilvl)
            num_fmt = _child_val(lvl, "w:numFmt")
            if num_fmt:
                level.num_fmt = num_fmt
            start = _int_or_none(_child_val(lvl, "w:start"))
            if start is not None:
                level.start = start
            fmt.levels[ilvl] = level
        numbering.abstract_formats[anid] = fmt
    for num in root.findall("w:num", NSMAP):
        num_id = _int_or_none(num.get(qn("w:numId")))
        if num_id is None:
            continue
        anid = _int_or_none(_child_val(num, "w:abstractNumId"))
        if anid is not None:
            numbering.instances[num_id] = anid
        for ov in num.findall("w:lvlOverride", NSMAP):
            ilvl = _int_or_none(ov.get(qn("w:ilvl")))
            start_val = _int_or_none(_child_val(ov, "w:startOverride"))
            if ilvl is not None and start_val is not None:
                numbering.start_overrides.setdefault(num_id, {})[ilvl] = start_val
    return numbering


def parse_relationships_xml(xml_bytes: Optional[bytes]) -> Dict[str, Relationship]:
    rels: Dict[str, Relationship] = {}
    root = _parse_part(xml_bytes, RELS_PART)
    if root is None:
        return rels
    for rel in root.iter(f"{{{PKG_REL_NS}}}Relationship"):
        rid = rel.get("Id")
        if not rid:
            continue
        rels[rid] = Relationship(
            id=rid,
            type=rel.get("Type") or "",
            target=rel.get("Target") or "",
            target_mode=rel.get("TargetMode") or "Internal",
        )
    return rels


def collect_images(media_parts: Dict[str, bytes]) -> Dict[str, ImageData]:
    images: Dict[str, ImageData] = {}
    for part_name, data in media_parts.items():
        if not part_name.startswith(MEDIA_PREFIX) or data is None:
            continue
        file_name = part_name.rsplit("/", 1)[-1]
        extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
        images[media_key_for_target("/" + part_name)] = ImageData(
            data=data,
            content_type=IMAGE_CONTENT_TYPES.get(extension, "application/octet-stream"),
            file_name=file_name,
            extension=extension,
        )
    return images


def parse_package(package, max_workers: int = 3) -> ParsedDocx:
    """
    Parse every part the converter needs.
    Styles go first (heading detection reads style names); numbering, relationships and media
    are built on worker threads while the body parses here. All of them join before returning.
    """
    document_xml = package.read(DOCUMENT_PART)
    if document_xml is None:
        raise DocxImportError(f"{DOCUMENT_PART} not found in DOCX")
    styles = parse_styles_xml(package.read(STYLES_PART))
    media = {name: package.read(name) for name in package.names() if name.startswith(MEDIA_PREFIX)}
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="docx-side") as pool:
        fut_numbering = pool.submit(parse_numbering_xml, package.read(NUMBERING_PART))
        fut_rels = pool.submit(parse_relationships_xml, package.read(RELS_PART))
        fut_images = pool.submit(collect_images, media)
        body, warnings = parse_document_xml(document_xml, styles)
        numbering = fut_numbering.result()
        relationships = fut_rels.result()
        images = fut_images.result()
    logger.info(
        f"Parsed DOCX: {len(body)} block(s), {len(styles)} style(s), "
        f"{len(relationships)} relationship(s), {len(images)} media file(s), "
        f"numbering={'yes' if numbering else 'no'}"
    )
    return ParsedDocx(
        body=body,
        styles=styles,
        numbering=numbering,
        relationships=relationships,
        images=images,
        warnings=warnings,
    )
