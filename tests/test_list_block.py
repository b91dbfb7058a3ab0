from __future__ import annotations

from builders.list_block import convert_list, resolve_list_info
from converter_settings import ConverterSettings
from docx_model import AbstractFormat, ListCounterState, NumberingDefinition, NumberingLevel
from tests.helpers import list_item, make_context


def _numbering(start_overrides=None) -> NumberingDefinition:
    levels = {
        0: NumberingLevel(ilvl=0, num_fmt="decimal"),
        1: NumberingLevel(ilvl=1, num_fmt="lowerLetter"),
        2: NumberingLevel(ilvl=2, num_fmt="bullet"),
    }
    return NumberingDefinition(
        abstract_formats={1: AbstractFormat(abstract_id=1, levels=levels)},
        instances={7: 1, 8: 1},
        start_overrides=start_overrides or {},
    )


def test_counter_state_resets_deeper_levels():
    state = ListCounterState()
    assert [state.advance(1, lvl) for lvl in (0, 0, 1, 1, 0, 1)] == [1, 2, 1, 2, 3, 1]
    assert state.snapshot(1) == [3, 1]
    state.reset()
    assert state.snapshot(1) == []


def test_ordered_list_resets_on_ascent_and_descent():
    ctx = make_context(numbering=_numbering())
    items = [list_item(t, 7, lvl) for t, lvl in zip("abcde", (0, 0, 1, 1, 0))]
    assert convert_list(items, ctx) == "1. a\n2. b\n  1. c\n  2. d\n3. e"


def test_bullet_fallback_for_unknown_num_id():
    ctx = make_context(numbering=_numbering())
    items = [list_item("a", 99, 0), list_item("b", 99, 1), list_item("c", 99, 2)]
    assert convert_list(items, ctx) == "- a\n  - b\n    - c"


def test_bullet_level_inside_ordered_list():
    ctx = make_context(numbering=_numbering())
    items = [list_item("a", 7, 0), list_item("b", 7, 2)]
    assert convert_list(items, ctx) == "1. a\n    - b"


def test_no_numbering_part_gives_bullets():
    ctx = make_context(numbering=None)
    assert convert_list([list_item("a", 7, 0)], ctx) == "- a"


def test_numbering_disabled_by_settings():
    ctx = make_context(settings=ConverterSettings(handle_numbering=False), numbering=_numbering())
    assert convert_list([list_item("a", 7, 0), list_item("b", 7, 0)], ctx) == "- a\n- b"


def test_counters_persist_across_groups():
    ctx = make_context(numbering=_numbering())
    assert convert_list([list_item("a", 7, 0), list_item("b", 7, 0)], ctx) == "1. a\n2. b"
    assert convert_list([list_item("c", 7, 0)], ctx) == "3. c"


def test_each_num_id_keeps_its_own_counters():
    ctx = make_context(numbering=_numbering())
    items = [list_item("a", 7, 0), list_item("x", 8, 0), list_item("b", 7, 0)]
    assert convert_list(items, ctx) == "1. a\n1. x\n2. b"


def test_start_values_and_overrides():
    numbering = _numbering(start_overrides={8: {0: 5}})
    numbering.abstract_formats[1].levels[0].start = 3
    ctx = make_context(numbering=numbering)
    assert convert_list([list_item("a", 7, 0), list_item("b", 7, 0)], ctx) == "3. a\n4. b"
    assert convert_list([list_item("x", 8, 0)], ctx) == "5. x"


def test_resolve_list_info():
    ctx = make_context(numbering=_numbering())
    info = resolve_list_info(list_item("a", 7, 1), ctx)
    assert info.ordered and info.level.num_fmt == "lowerLetter"
    assert not resolve_list_info(list_item("a", None, 0), ctx).ordered
