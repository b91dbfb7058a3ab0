# -*- coding: utf-8 -*-
"""
MathNode tree -> LaTeX.

One visitor method per construct. Property-bag kinds render as "" and are only read by the
construct that owns them. `convert()` never raises: any failure becomes FORMULA_PLACEHOLDER.
"""
import logging
import re
import string
from typing import Callable, Dict, Iterable, List, Optional

from latex_tables import (
    ACCENTS,
    DEFAULT_ACCENT,
    DEFAULT_NARY,
    DELIMITERS,
    FUNCTION_NAMES,
    NARY_OPERATORS,
    OVERBRACE_CHARS,
    UNDERBRACE_CHARS,
    UNICODE_TO_LATEX,
)
from omml_parser import PROPERTY_KINDS, MathKind, MathNode, build_math_tree

logger = logging.getLogger(__name__)

FORMULA_PLACEHOLDER = "[Formula conversion error]"

ALNUM = frozenset(string.ascii_letters + string.digits)
SPACED_OPERATORS = ("+", "-", "=")
BRACE_TRIGGERS = ("+", "-", "*")

CONTROL_WORD_END = re.compile(r"\\[a-zA-Z]+$")
FUNCTION_PREFIX = re.compile(r"^([A-Za-z]+)([_^].*)$", re.DOTALL)

_CLEANUP_RULES = [
    (re.compile("\u00a0"), " "),
    (re.compile(r"\s*([+\-=])\s*"), r" \1 "),
    (re.compile(r"\s{2,}"), " "),
    (re.compile(r"\{\s+"), "{"),
    (re.compile(r"\s+\}"), "}"),
    (re.compile(r"\}\s+([_^])"), r"}\1"),
    # keeps "\Delta _" apart: only non-command characters pull the script in
    (re.compile(r"([^\\a-zA-Z])\s+([_^])"), r"\1\2"),
    (re.compile(r"([_^])\s+\{"), r"\1{"),
]
_CLEANUP_MAX_PASSES = 8


def _is_alnum(ch: Optional[str]) -> bool:
    return bool(ch) and ch in ALNUM


def _needs_space(result: str, next_char: Optional[str]) -> bool:
    return bool(result) and _is_alnum(next_char) and bool(CONTROL_WORD_END.search(result))


def render_text(text: str) -> str:
    """Render one m:t leaf character by character."""
    text = (text or "").replace("\u00a0", " ")
    out = ""
    for i, ch in enumerate(text):
        nxt = text[i + 1] if i + 1 < len(text) else None
        if ch in UNICODE_TO_LATEX:
            cmd = UNICODE_TO_LATEX[ch]
            if out and _is_alnum(out[-1]):
                out += " "
            out += cmd
            if _is_alnum(nxt) and not cmd.endswith("}"):
                out += " "
        elif ch == " ":
            if out and not out.endswith(" ") and not out.endswith("{"):
                out += " "
        elif ch in SPACED_OPERATORS:
            if out and not out.endswith(" "):
                out += " "
            out += ch
            if nxt is not None and nxt != " ":
                out += " "
        else:
            if _needs_space(out, ch):
                out += " "
            out += ch
    return out


def join_parts(parts: Iterable[str]) -> str:
    result = ""
    for part in parts:
        if not part:
            continue
        if _needs_space(result, part[0]):
            result += " "
        result += part
    return result


def brace_operand(operand: str) -> str:
    if any(op in operand for op in BRACE_TRIGGERS):
        return "{" + operand + "}"
    return operand


def fraction_latex(numerator: str, denominator: str) -> str:
    return f"\\frac{{{brace_operand(numerator)}}}{{{brace_operand(denominator)}}}"


def _cleanup_once(latex: str) -> str:
    for pattern, repl in _CLEANUP_RULES:
        latex = pattern.sub(repl, latex)
    return latex.strip()


def cleanup_latex(latex: str) -> str:
    """Spacing normalization; iterated until stable so it is idempotent."""
    current = latex or ""
    for _ in range(_CLEANUP_MAX_PASSES):
        cleaned = _cleanup_once(current)
        if cleaned == current:
            break
        current = cleaned
    return current


class LatexSynthesizer(object):
    def __init__(self):
        self._handlers: Dict[MathKind, Callable[[MathNode], str]] = {
            MathKind.TEXT: self._text,
            MathKind.FRACTION: self._fraction,
            MathKind.RADICAL: self._radical,
            MathKind.SUP_CONTAINER: self._superscript,
            MathKind.SUB_CONTAINER: self._subscript,
            MathKind.SUB_SUP_CONTAINER: self._sub_sup,
            MathKind.NARY: self._nary,
            MathKind.LIMIT_LOW: self._limit_low,
            MathKind.LIMIT_UPPER: self._limit_upper,
            MathKind.MATRIX: self._matrix,
            MathKind.DELIMITER: self._delimiter,
            MathKind.FUNCTION: self._function,
            MathKind.EQUATION_ARRAY: self._equation_array,
            MathKind.ACCENT: self._accent,
            MathKind.BAR: self._bar,
            MathKind.BOX: self.children,
            MathKind.GROUP_CHAR: self._group_char,
            MathKind.BORDER_BOX: self._border_box,
            MathKind.PRE_SUB_SUP: self._pre_sub_sup,
        }

    def visit(self, node: Optional[MathNode]) -> str:
        if node is None:
            return ""
        if node.kind in PROPERTY_KINDS:
            return ""
        if node.kind in (MathKind.CHARACTER, MathKind.BEGIN_CHAR, MathKind.END_CHAR, MathKind.SEPARATOR_CHAR):
            return ""
        handler = self._handlers.get(node.kind, self.children)
        return handler(node)

    def children(self, node: Optional[MathNode]) -> str:
        if node is None:
            return ""
        if node.text:
            return render_text(node.text)
        return join_parts(self.visit(ch) for ch in node.children)

    def _slot(self, node: MathNode, kind: MathKind) -> str:
        return self.children(node.child(kind))

    @staticmethod
    def _prop_val(node: MathNode, props_kind: MathKind, value_kind: MathKind) -> Optional[str]:
        props = node.child(props_kind)
        if props is None:
            return None
        value = props.child(value_kind)
        return value.val() if value is not None else None

    # ---------- constructs ----------
    def _text(self, node: MathNode) -> str:
        return render_text(node.text or "")

    def _fraction(self, node: MathNode) -> str:
        return fraction_latex(self._slot(node, MathKind.NUMERATOR), self._slot(node, MathKind.DENOMINATOR))

    def _radical(self, node: MathNode) -> str:
        degree = self._slot(node, MathKind.DEGREE)
        base = self._slot(node, MathKind.ELEMENT)
        if degree and degree.strip() and degree.strip() != "2":
            return f"\\sqrt[{degree}]{{{base}}}"
        return f"\\sqrt{{{base}}}"

    def _superscript(self, node: MathNode) -> str:
        return f"{self._slot(node, MathKind.ELEMENT)}^{{{self._slot(node, MathKind.SUPERSCRIPT)}}}"

    def _subscript(self, node: MathNode) -> str:
        return f"{self._slot(node, MathKind.ELEMENT)}_{{{self._slot(node, MathKind.SUBSCRIPT)}}}"

    def _sub_sup(self, node: MathNode) -> str:
        base = self._slot(node, MathKind.ELEMENT)
        sub = self._slot(node, MathKind.SUBSCRIPT)
        sup = self._slot(node, MathKind.SUPERSCRIPT)
        return f"{base}_{{{sub}}}^{{{sup}}}"

    def _nary(self, node: MathNode) -> str:
        chr_val = self._prop_val(node, MathKind.NARY_PROPS, MathKind.CHARACTER)
        op = NARY_OPERATORS.get(chr_val, DEFAULT_NARY) if chr_val else DEFAULT_NARY
        sub = self._slot(node, MathKind.SUBSCRIPT)
        sup = self._slot(node, MathKind.SUPERSCRIPT)
        base = self._slot(node, MathKind.ELEMENT)
        out = op
        if sub:
            out += f"_{{{sub}}}"
        if sup:
            out += f"^{{{sup}}}"
        if base:
            out += f" {base}"
        return out

    def _limit_low(self, node: MathNode) -> str:
        return f"{self._slot(node, MathKind.ELEMENT)}_{{{self._slot(node, MathKind.LIMIT)}}}"

    def _limit_upper(self, node: MathNode) -> str:
        return f"{self._slot(node, MathKind.ELEMENT)}^{{{self._slot(node, MathKind.LIMIT)}}}"

    def _matrix(self, node: MathNode) -> str:
        rows: List[str] = []
        for row in node.children_of(MathKind.MATRIX_ROW):
            cells = [self.children(cell) for cell in row.children_of(MathKind.ELEMENT)]
            rows.append(" & ".join(cells))
        return "\\begin{pmatrix} " + " \\\\ ".join(rows) + " \\end{pmatrix}"

    def _delimiter(self, node: MathNode) -> str:
        begin, end = "(", ")"
        props = node.child(MathKind.DELIMITER_PROPS)
        if props is not None:
            for prop in props.children:
                if prop.kind == MathKind.BEGIN_CHAR and prop.val() is not None:
                    begin = prop.val()
                elif prop.kind == MathKind.END_CHAR and prop.val() is not None:
                    end = prop.val()
        contents = [self.children(e) for e in node.children_of(MathKind.ELEMENT)]
        left = DELIMITERS.get(begin, begin)
        right = DELIMITERS.get(end, end)
        return f"\\left{left} {', '.join(contents)} \\right{right}"

    def _function(self, node: MathNode) -> str:
        name = self._slot(node, MathKind.FUNCTION_NAME).strip()
        arg = self._slot(node, MathKind.ELEMENT)
        if name in FUNCTION_NAMES:
            return f"{FUNCTION_NAMES[name]} {arg}"
        m = FUNCTION_PREFIX.match(name)
        if m and m.group(1) in FUNCTION_NAMES:
            # lim_{x \rightarrow 0} and friends: fName wraps a limLow around the name
            return f"{FUNCTION_NAMES[m.group(1)]}{m.group(2)} {arg}"
        return f"\\operatorname{{{name}}} {arg}"

    def _equation_array(self, node: MathNode) -> str:
        equations = [self.children(e) for e in node.children_of(MathKind.ELEMENT)]
        if len(equations) == 1:
            return equations[0]
        if not equations:
            return ""
        return "\\begin{aligned} " + " \\\\ ".join(equations) + " \\end{aligned}"

    def _accent(self, node: MathNode) -> str:
        chr_val = self._prop_val(node, MathKind.ACCENT_PROPS, MathKind.CHARACTER)
        cmd = ACCENTS.get(chr_val or "", DEFAULT_ACCENT)
        return f"{cmd}{{{self._slot(node, MathKind.ELEMENT)}}}"

    def _bar(self, node: MathNode) -> str:
        return f"\\overline{{{self._slot(node, MathKind.ELEMENT)}}}"

    def _group_char(self, node: MathNode) -> str:
        chr_val = self._prop_val(node, MathKind.GROUP_CHAR_PROPS, MathKind.CHARACTER) or ""
        base = self._slot(node, MathKind.ELEMENT)
        if chr_val in UNDERBRACE_CHARS:
            return f"\\underbrace{{{base}}}"
        if chr_val in OVERBRACE_CHARS:
            return f"\\overbrace{{{base}}}"
        return base

    def _border_box(self, node: MathNode) -> str:
        return f"\\boxed{{{self._slot(node, MathKind.ELEMENT)}}}"

    def _pre_sub_sup(self, node: MathNode) -> str:
        base = self._slot(node, MathKind.ELEMENT)
        sub = self._slot(node, MathKind.SUBSCRIPT)
        sup = self._slot(node, MathKind.SUPERSCRIPT)
        return f"{{}}_{{{sub}}}^{{{sup}}}{base}"


_SYNTHESIZER = LatexSynthesizer()


def formula_to_latex(node: MathNode) -> str:
    """Raw synthesis, no cleanup. May raise on pathological trees."""
    return _SYNTHESIZER.visit(node)


class FormulaConverter(object):
    """OMML payload -> cleaned LaTeX; failures become FORMULA_PLACEHOLDER."""

    def convert(self, payload, warnings: Optional[List[str]] = None) -> str:
        try:
            tree = build_math_tree(payload)
            return cleanup_latex(formula_to_latex(tree))
        except Exception as e:
            logger.error(f"Formula conversion error: {e}")
            if warnings is not None:
                warnings.append(f"Formula conversion failed: {e}")
            return FORMULA_PLACEHOLDER

    def convert_tree(self, tree: MathNode) -> str:
        try:
            return cleanup_latex(formula_to_latex(tree))
        except Exception as e:
            logger.error(f"Formula conversion error: {e}")
            return FORMULA_PLACEHOLDER
