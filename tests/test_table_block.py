from __future__ import annotations

from builders.table_block import convert_table, escape_cell, format_table
from converter_settings import ConverterSettings
from docx_model import DocxElement, ElementKind, ElementProperties
from tests.helpers import make_context, paragraph, text_run


def _cell(*texts: str, colspan: int = 1) -> DocxElement:
    return DocxElement(
        kind=ElementKind.TABLE_CELL,
        children=[paragraph(text_run(t)) for t in texts],
        props=ElementProperties(colspan=colspan),
    )


def _table(*rows) -> DocxElement:
    return DocxElement(
        kind=ElementKind.TABLE,
        children=[DocxElement(kind=ElementKind.TABLE_ROW, children=list(cells)) for cells in rows],
    )


def test_ragged_rows_are_padded():
    table = _table(
        [_cell("A"), _cell("B"), _cell("C")],
        [_cell("x")],
        [_cell("y"), _cell("z")],
    )
    assert convert_table(table, make_context()) == "\n".join([
        "| A | B | C |",
        "| --- | --- | --- |",
        "| x |  |  |",
        "| y | z |  |",
    ])


def test_colspan_expands_into_empty_cells():
    table = _table([_cell("h1"), _cell("h2"), _cell("h3")], [_cell("wide", colspan=2), _cell("c")])
    lines = convert_table(table, make_context()).split("\n")
    assert lines[2] == "| wide |  | c |"


def test_separator_follows_alignment():
    table = _table([_cell("a"), _cell("b")])
    centered = convert_table(table, make_context(settings=ConverterSettings(table_alignment="center")))
    assert centered.split("\n")[1] == "| :---: | :---: |"
    right = convert_table(table, make_context(settings=ConverterSettings(table_alignment="right")))
    assert right.split("\n")[1] == "| ---: | ---: |"


def test_cell_paragraphs_and_breaks():
    line_break = DocxElement(
        kind=ElementKind.RUN,
        children=[
            DocxElement(kind=ElementKind.TEXT, text="one"),
            DocxElement(kind=ElementKind.BREAK),
            DocxElement(kind=ElementKind.TEXT, text="two"),
        ],
    )
    cell = DocxElement(
        kind=ElementKind.TABLE_CELL,
        children=[paragraph(text_run("p1")), paragraph(line_break), paragraph()],
    )
    table = _table([cell])
    assert convert_table(table, make_context()).split("\n")[0] == "| p1<br>one<br>two |"


def test_pipes_are_escaped():
    table = _table([_cell("a|b")])
    assert convert_table(table, make_context()).split("\n")[0] == "| a\\|b |"
    assert escape_cell("x\ny") == "x<br>y"


def test_empty_table_renders_nothing():
    assert convert_table(_table(), make_context()) == ""
    assert format_table([]) == ""
