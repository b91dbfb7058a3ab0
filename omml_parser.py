# -*- coding: utf-8 -*-
"""
OMML payload -> typed MathNode tree.

The payload is the serialized m:oMath / m:oMathPara subtree captured by the structural parser.
Tag -> kind is decided here once; consumers only look at `kind`. Attribute keys are reduced
to their local names (m:val / val -> "val").
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from lxml import etree

logger = logging.getLogger(__name__)

M_NS = "http://schemas.openxmlformats.org/officeDocument/2006/math"


class MathKind(str, Enum):
    MATH = "math"
    MATH_PARA = "mathPara"
    RUN = "run"
    TEXT = "text"
    FRACTION = "fraction"
    NUMERATOR = "numerator"
    DENOMINATOR = "denominator"
    RADICAL = "radical"
    DEGREE = "degree"
    ELEMENT = "element"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"
    SUP_CONTAINER = "superscriptContainer"
    SUB_CONTAINER = "subscriptContainer"
    SUB_SUP_CONTAINER = "subSupContainer"
    NARY = "nary"
    NARY_PROPS = "naryProps"
    LIMIT_LOW = "limitLow"
    LIMIT_UPPER = "limitUpper"
    LIMIT = "limit"
    MATRIX = "matrix"
    MATRIX_ROW = "matrixRow"
    DELIMITER = "delimiter"
    DELIMITER_PROPS = "delimiterProps"
    BEGIN_CHAR = "beginChar"
    END_CHAR = "endChar"
    SEPARATOR_CHAR = "separatorChar"
    FUNCTION = "function"
    FUNCTION_NAME = "functionName"
    EQUATION_ARRAY = "equationArray"
    ACCENT = "accent"
    ACCENT_PROPS = "accentProps"
    CHARACTER = "character"
    BAR = "bar"
    BOX = "box"
    GROUP_CHAR = "groupChar"
    GROUP_CHAR_PROPS = "groupCharProps"
    BORDER_BOX = "borderBox"
    PRE_SUB_SUP = "preSuperSubscript"
    CONTROL_PROPS = "controlProps"
    RUN_PROPS = "runProps"
    PROPS = "props"
    UNKNOWN = "unknown"


TAG_KINDS: Dict[str, MathKind] = {
    "oMath": MathKind.MATH,
    "oMathPara": MathKind.MATH_PARA,
    "r": MathKind.RUN,
    "t": MathKind.TEXT,
    "f": MathKind.FRACTION,
    "num": MathKind.NUMERATOR,
    "den": MathKind.DENOMINATOR,
    "rad": MathKind.RADICAL,
    "deg": MathKind.DEGREE,
    "e": MathKind.ELEMENT,
    "sup": MathKind.SUPERSCRIPT,
    "sub": MathKind.SUBSCRIPT,
    "sSup": MathKind.SUP_CONTAINER,
    "sSub": MathKind.SUB_CONTAINER,
    "sSubSup": MathKind.SUB_SUP_CONTAINER,
    "nary": MathKind.NARY,
    "naryPr": MathKind.NARY_PROPS,
    "limLow": MathKind.LIMIT_LOW,
    "limUpp": MathKind.LIMIT_UPPER,
    "lim": MathKind.LIMIT,
    "m": MathKind.MATRIX,
    "mr": MathKind.MATRIX_ROW,
    "d": MathKind.DELIMITER,
    "dPr": MathKind.DELIMITER_PROPS,
    "begChr": MathKind.BEGIN_CHAR,
    "endChr": MathKind.END_CHAR,
    "sepChr": MathKind.SEPARATOR_CHAR,
    "func": MathKind.FUNCTION,
    "fName": MathKind.FUNCTION_NAME,
    "eqArr": MathKind.EQUATION_ARRAY,
    "acc": MathKind.ACCENT,
    "accPr": MathKind.ACCENT_PROPS,
    "chr": MathKind.CHARACTER,
    "bar": MathKind.BAR,
    "box": MathKind.BOX,
    "groupChr": MathKind.GROUP_CHAR,
    "groupChrPr": MathKind.GROUP_CHAR_PROPS,
    "borderBox": MathKind.BORDER_BOX,
    "sPre": MathKind.PRE_SUB_SUP,
    "ctrlPr": MathKind.CONTROL_PROPS,
    "rPr": MathKind.RUN_PROPS,
}

# the remaining m:*Pr containers only carry layout hints
PROPERTY_TAGS = frozenset((
    "oMathParaPr", "fPr", "radPr", "sSupPr", "sSubPr", "sSubSupPr", "limLowPr", "limUppPr",
    "mPr", "mcs", "funcPr", "eqArrPr", "barPr", "boxPr", "borderBoxPr", "sPrePr", "phantPr",
    "degHide", "type", "pos", "vertJc", "limLoc", "subHide", "supHide", "grow", "sty", "scr",
))

PROPERTY_KINDS = frozenset((
    MathKind.NARY_PROPS, MathKind.DELIMITER_PROPS, MathKind.ACCENT_PROPS, MathKind.GROUP_CHAR_PROPS,
    MathKind.CONTROL_PROPS, MathKind.RUN_PROPS, MathKind.PROPS,
))


@dataclass
class MathNode:
    kind: MathKind
    tag: str = ""
    text: Optional[str] = None
    children: List["MathNode"] = field(default_factory=list)
    attrs: Dict[str, str] = field(default_factory=dict)

    def child(self, *kinds: MathKind) -> Optional["MathNode"]:
        """Last direct child of one of `kinds` (a repeated slot keeps the last one)."""
        found = None
        for ch in self.children:
            if ch.kind in kinds:
                found = ch
        return found

    def children_of(self, kind: MathKind) -> List["MathNode"]:
        return [ch for ch in self.children if ch.kind == kind]

    def val(self) -> Optional[str]:
        return self.attrs.get("val")


def unknown_root() -> MathNode:
    return MathNode(kind=MathKind.UNKNOWN)


def kind_for_tag(tag: str, namespace: Optional[str]) -> MathKind:
    if namespace != M_NS:
        return MathKind.UNKNOWN
    if tag in TAG_KINDS:
        return TAG_KINDS[tag]
    if tag in PROPERTY_TAGS:
        return MathKind.PROPS
    return MathKind.UNKNOWN


def _local_attrs(el) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for key, value in el.attrib.items():
        out[etree.QName(key).localname] = value
    return out


def _build(el) -> MathNode:
    qname = etree.QName(el)
    kind = kind_for_tag(qname.localname, qname.namespace)
    node = MathNode(kind=kind, tag=qname.localname, attrs=_local_attrs(el))
    if kind == MathKind.TEXT:
        node.text = el.text or ""
        return node
    for child in el:
        if not isinstance(child.tag, str):
            # comments / processing instructions
            continue
        node.children.append(_build(child))
    return node


def build_math_tree(payload: Union[bytes, str, None]) -> MathNode:
    """Parse an OMML payload; never raises, a bad payload gives an empty unknown root."""
    if not payload:
        return unknown_root()
    try:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        root = etree.fromstring(payload)
        return _build(root)
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.warning(f"OMML parse error: {e}")
        return unknown_root()
