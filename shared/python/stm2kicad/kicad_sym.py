"""
Modern KiCad symbol library (.kicad_sym) export using kiutils.

Converts the block layouts computed by the layout engine into a kiutils
Symbol with one unit per block, so the same symbol can be saved in both the
legacy and the current library format.
"""

import logging
from typing import List

from kiutils.items.common import Effects, Fill, Font, Position, Property, Stroke
from kiutils.items.syitems import SyRect
from kiutils.symbol import Symbol, SymbolLib, SymbolPin

from .common import MIL_TO_MM
from .legacy import footprint_filter
from .renderers import BlockLayout, PlacedPin

log = logging.getLogger("stm2kicad.kicad_sym")

GENERATOR_NAME = "stm2kicad"
SYM_LIB_VERSION = "20211014"
FONT_SIZE = 1.27          # mm
RECT_STROKE_WIDTH = 0.254  # mm, 10 mil


def mil_to_mm(value: float) -> float:
    return round(value * MIL_TO_MM, 4)


def _property(key, value, prop_id, x, y, hide=False):
    return Property(
        key=key, value=value, id=prop_id,
        position=Position(X=x, Y=y, angle=0),
        effects=Effects(font=Font(width=FONT_SIZE, height=FONT_SIZE), hide=hide),
    )


def _create_pin(placed: PlacedPin, pin_length: float) -> SymbolPin:
    # Library space is Y-up, like the legacy file: y is negated the same way
    pin = SymbolPin()
    pin.electricalType = placed.pin.elec_type.sexpr_name
    pin.graphicalStyle = "line"
    pin.position = Position(X=mil_to_mm(placed.x), Y=mil_to_mm(-placed.y),
                            angle=placed.direction.angle)
    pin.length = mil_to_mm(pin_length)
    pin.name = placed.pin.display_name or placed.pin.name
    pin.number = str(placed.pin.position)
    pin.nameEffects = Effects(font=Font(width=FONT_SIZE, height=FONT_SIZE))
    pin.numberEffects = Effects(font=Font(width=FONT_SIZE, height=FONT_SIZE))
    return pin


def _create_unit(name: str, layout: BlockLayout) -> Symbol:
    unit = Symbol()
    unit.entryName = name
    unit.unitId = layout.unit
    unit.styleId = 1

    hw = mil_to_mm(layout.half_width)
    hh = mil_to_mm(layout.half_height)
    rect = SyRect()
    rect.start = Position(X=-hw, Y=hh)
    rect.end = Position(X=hw, Y=-hh)
    rect.stroke = Stroke(width=RECT_STROKE_WIDTH, type="default")
    rect.fill = Fill(type="background")
    unit.graphicItems.append(rect)

    for placed in layout.pins:
        unit.pins.append(_create_pin(placed, layout.pin_length))
    return unit


def build_symbol(name: str, package: str, layouts: List[BlockLayout]) -> Symbol:
    """Create a multi-unit kiutils Symbol from block layouts."""
    symbol = Symbol()
    symbol.entryName = name
    symbol.inBom = True
    symbol.onBoard = True
    symbol.properties = [
        _property("Reference", "U", 0, 0, 2.54),
        _property("Value", name, 1, 0, -2.54),
        _property("Footprint", "", 2, 0, 0, hide=True),
        _property("Datasheet", "", 3, 0, 0, hide=True),
        _property("ki_fp_filters", footprint_filter(package), 4, 0, 0, hide=True),
    ]
    for layout in layouts:
        symbol.units.append(_create_unit(name, layout))
    return symbol


def build_library(symbols: List[Symbol]) -> SymbolLib:
    lib = SymbolLib()
    lib.version = SYM_LIB_VERSION
    lib.generator = GENERATOR_NAME
    lib.symbols = symbols
    return lib


def write_kicad_sym(path: str, name: str, package: str, layouts: List[BlockLayout]) -> SymbolLib:
    """Build a one-symbol .kicad_sym library and save it to *path*."""
    lib = build_library([build_symbol(name, package, layouts)])
    lib.to_file(path)
    log.info("Wrote %d units to %s", len(layouts), path)
    return lib
