from __future__ import annotations

from omml_parser import MathKind, build_math_tree
from tests.helpers import mr, omml


def test_tags_map_to_kinds():
    tree = build_math_tree(omml(f"<m:f><m:fPr/><m:num>{mr('1')}</m:num><m:den>{mr('2')}</m:den></m:f>"))
    assert tree.kind == MathKind.MATH
    frac = tree.children[0]
    assert frac.kind == MathKind.FRACTION
    assert [c.kind for c in frac.children] == [MathKind.PROPS, MathKind.NUMERATOR, MathKind.DENOMINATOR]
    text = frac.child(MathKind.NUMERATOR).children[0].children[0]
    assert text.kind == MathKind.TEXT
    assert text.text == "1"


def test_attribute_keys_are_local_names():
    tree = build_math_tree(omml('<m:nary><m:naryPr><m:chr m:val="∑"/></m:naryPr><m:e/></m:nary>'))
    chr_node = tree.children[0].child(MathKind.NARY_PROPS).child(MathKind.CHARACTER)
    assert chr_node.val() == "∑"


def test_unknown_tags_are_kept_with_children():
    tree = build_math_tree(omml(f"<m:whatever>{mr('z')}</m:whatever>"))
    unknown = tree.children[0]
    assert unknown.kind == MathKind.UNKNOWN
    assert unknown.tag == "whatever"
    assert unknown.children[0].kind == MathKind.RUN


def test_bad_payloads_give_unknown_root():
    for payload in (None, b"", b"<not-closed", "<<<"):
        tree = build_math_tree(payload)
        assert tree.kind == MathKind.UNKNOWN
        assert tree.children == []


def test_string_payload_is_accepted():
    tree = build_math_tree(omml(mr("x")).decode("utf-8"))
    assert tree.kind == MathKind.MATH
