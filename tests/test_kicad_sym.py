"""Tests for the .kicad_sym exporter."""

import pytest
from kiutils.items.syitems import SyRect
from kiutils.symbol import SymbolLib

from stm2kicad.common import Options
from stm2kicad.kicad_sym import build_symbol, mil_to_mm, write_kicad_sym
from stm2kicad.symbol import layout_symbol


@pytest.fixture
def sample_layouts(sample_pins):
    return layout_symbol(sample_pins, Options())


def _props(symbol):
    return {p.key: p.value for p in symbol.properties}


def test_mil_to_mm():
    assert mil_to_mm(100) == 2.54
    assert mil_to_mm(50) == 1.27
    assert mil_to_mm(1600) == 40.64


def test_symbol_properties(sample_layouts):
    symbol = build_symbol("MyBoard", "LQFP8", sample_layouts)
    assert symbol.entryName == "MyBoard"
    assert _props(symbol) == {
        "Reference": "U",
        "Value": "MyBoard",
        "Footprint": "",
        "Datasheet": "",
        "ki_fp_filters": "LQFP-8",
    }


def test_one_unit_per_block(sample_layouts):
    symbol = build_symbol("MyBoard", "LQFP8", sample_layouts)
    assert [u.unitId for u in symbol.units] == [1, 2, 3, 4]
    assert all(u.entryName == "MyBoard" and u.styleId == 1 for u in symbol.units)
    assert [len(u.pins) for u in symbol.units] == [2, 2, 2, 2]


def test_unit_rectangle(sample_layouts):
    io = build_symbol("MyBoard", "LQFP8", sample_layouts).units[0]
    rects = [item for item in io.graphicItems if isinstance(item, SyRect)]
    assert len(rects) == 1
    assert (rects[0].start.X, rects[0].start.Y) == (-20.32, 20.32)
    assert (rects[0].end.X, rects[0].end.Y) == (20.32, -20.32)
    assert rects[0].fill.type == "background"


def test_pins(sample_layouts):
    symbol = build_symbol("MyBoard", "LQFP8", sample_layouts)
    io_pins = {p.number: p for p in symbol.units[0].pins}
    power_pins = {p.number: p for p in symbol.units[1].pins}

    pa0 = io_pins["2"]
    assert pa0.name == "PA0/LED"
    assert pa0.electricalType == "passive"
    assert (pa0.position.X, pa0.position.Y, pa0.position.angle) == (-25.4, 0, 0)
    assert pa0.length == 5.08

    pb0 = io_pins["6"]
    assert (pb0.position.X, pb0.position.angle) == (25.4, 180)

    vdd = power_pins["1"]
    assert vdd.electricalType == "power_in"
    # y is flipped the same way as in the legacy file
    assert (vdd.position.X, vdd.position.Y) == (15.24, 1.27)

    config_types = {p.electricalType for p in symbol.units[2].pins}
    unassigned_types = {p.electricalType for p in symbol.units[3].pins}
    assert config_types == {"bidirectional"}
    assert unassigned_types == {"unspecified"}


def test_write_and_reload(tmp_path, sample_layouts):
    path = tmp_path / "board.kicad_sym"
    write_kicad_sym(str(path), "MyBoard", "LQFP8", sample_layouts)

    lib = SymbolLib.from_file(str(path))
    assert lib.generator == "stm2kicad"
    assert [s.entryName for s in lib.symbols] == ["MyBoard"]
    reloaded = lib.symbols[0]
    assert [u.unitId for u in reloaded.units] == [1, 2, 3, 4]
    assert sorted(p.number for u in reloaded.units for p in u.pins) == \
        ["1", "2", "3", "4", "5", "6", "7", "8"]
