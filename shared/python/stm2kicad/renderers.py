"""
Pin layout engine: one renderer per package shape.

Each renderer turns the pins of one symbol unit into a rectangle and a list
of pin placements:

- SipRenderer -- single row of pins on the right edge, sorted by name
- DipRenderer -- two rows (left, right), sorted by name
- QfpRenderer -- four sides following the physical package, with three
  slot modes (accurate, compact, crushed)

All renderers share the same two-step contract: set_pins() sorts the pins
and computes the body size, then render_block() / render_pins() append the
legacy text lines and layout() returns the same result as data.

Coordinates are in mils with +y up; the legacy emitter negates y.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from itertools import groupby
from typing import Iterable, List, Optional, Sequence

from .common import (
    Geometry,
    InvalidConfiguration,
    InvalidLayoutMode,
    InvalidPinCount,
    IoStyle,
    PinDirection,
)
from .legacy import pin_line, rect_line
from .pins import Pin

log = logging.getLogger("stm2kicad.renderers")


class PackageShape(Enum):
    SIP = "sip"
    DIP = "dip"
    QFP = "qfp"


class QfpSide:
    LEFT = 0
    BOTTOM = 1
    RIGHT = 2
    TOP = 3


@dataclass(frozen=True)
class PlacedPin:
    """A pin with its connection point and stub direction."""
    pin: Pin
    x: float
    y: float
    direction: PinDirection


@dataclass
class BlockLayout:
    """Computed geometry of one symbol unit."""
    unit: int
    half_width: float
    half_height: float
    pin_length: float
    pins: List[PlacedPin] = field(default_factory=list)


@dataclass(frozen=True)
class QfpPin:
    """A pin with the side and slot the quad-flat layout gave it."""
    pin: Pin
    side: int
    position_on_side: int


def _sort_by_name(pins: Iterable[Pin]) -> List[Pin]:
    return sorted(pins, key=lambda p: (p.name, p.label or ""))


def _render_pins(layout: BlockLayout, out: List[str]) -> None:
    for placed in layout.pins:
        out.append(pin_line(
            placed.pin.display_name or placed.pin.name,
            placed.pin.position,
            placed.x, placed.y,
            layout.pin_length,
            placed.direction.value,
            layout.unit,
            placed.pin.elec_type.value,
        ))


# ==============================================================
# Single row
# ==============================================================

class SipRenderer:
    """Single row of pins down the right edge of the body."""

    shape = PackageShape.SIP

    def __init__(self, geometry: Geometry, unit: int = 1):
        self.geometry = geometry
        self.unit = unit
        self.pins: List[Pin] = []
        self.half_inner_width = 0
        self.half_inner_height = 0
        self.half_width = 0
        self.half_height = 0

    def _calc_geometry(self):
        g = self.geometry
        self.half_inner_width = g.width_sip / 2
        self.half_inner_height = max(len(self.pins) - 1, 0) * g.pin_spacing / 2
        self.half_width = self.half_inner_width
        self.half_height = self.half_inner_height + g.pin_spacing * g.margin_ip

    def set_pins(self, pins: Iterable[Pin]) -> None:
        self.pins = _sort_by_name(pins)
        self._calc_geometry()

    def _place(self, index: int, pin: Pin) -> PlacedPin:
        x = self.half_width + self.geometry.pin_length
        y = -self.half_inner_height + self.geometry.pin_spacing * index
        return PlacedPin(pin, x, y, PinDirection.LEFT)

    def layout(self) -> BlockLayout:
        return BlockLayout(
            self.unit, self.half_width, self.half_height, self.geometry.pin_length,
            [self._place(i, pin) for i, pin in enumerate(self.pins)],
        )

    def render_block(self, out: List[str]) -> None:
        out.append(rect_line(self.half_width, self.half_height, self.unit))

    def render_pins(self, out: List[str]) -> None:
        _render_pins(self.layout(), out)


# ==============================================================
# Dual row
# ==============================================================

class DipRenderer:
    """Two rows of pins, the first half on the left edge, the rest on the right.

    Odd counts put the extra pin on the left so every pin stays on the grid.
    """

    shape = PackageShape.DIP

    def __init__(self, geometry: Geometry, unit: int = 1):
        self.geometry = geometry
        self.unit = unit
        self.pins: List[Pin] = []
        self.per_side = 0
        self.half_inner_width = 0
        self.half_inner_height = 0
        self.half_width = 0
        self.half_height = 0

    def _calc_geometry(self):
        g = self.geometry
        self.per_side = math.ceil(len(self.pins) / 2)
        self.half_inner_width = g.width_dip / 2
        self.half_inner_height = max(self.per_side - 1, 0) * g.pin_spacing / 2
        self.half_width = self.half_inner_width
        self.half_height = self.half_inner_height + g.pin_spacing * g.margin_ip

    def set_pins(self, pins: Iterable[Pin]) -> None:
        self.pins = _sort_by_name(pins)
        self._calc_geometry()

    def _place(self, index: int, pin: Pin) -> PlacedPin:
        side, side_index = divmod(index, self.per_side)
        x = (-1, 1)[side] * (self.half_width + self.geometry.pin_length)
        y = -self.half_inner_height + self.geometry.pin_spacing * side_index
        direction = (PinDirection.RIGHT, PinDirection.LEFT)[side]
        return PlacedPin(pin, x, y, direction)

    def layout(self) -> BlockLayout:
        return BlockLayout(
            self.unit, self.half_width, self.half_height, self.geometry.pin_length,
            [self._place(i, pin) for i, pin in enumerate(self.pins)],
        )

    def render_block(self, out: List[str]) -> None:
        out.append(rect_line(self.half_width, self.half_height, self.unit))

    def render_pins(self, out: List[str]) -> None:
        _render_pins(self.layout(), out)


# ==============================================================
# Quad flat
# ==============================================================

def accurate_slots(pins: Sequence[Pin], total_pins: int) -> List[int]:
    """Every pin keeps its physical slot; missing pins leave gaps."""
    per_side = total_pins // 4
    return [(pin.position - 1) % per_side for pin in pins]


def compact_slots(pins: Sequence[Pin], total_pins: int) -> List[int]:
    """Pack pins, leaving one empty slot wherever physical pins are skipped.

    The expected position starts at the first pin's position and the slot
    counter at 0, so the first pin lands on slot 1.
    """
    slots = []
    slot = 0
    expected = pins[0].position if pins else 0
    for pin in pins:
        slot += 1 if pin.position == expected else 2
        slots.append(slot)
        expected = pin.position + 1
    return slots


def crushed_slots(pins: Sequence[Pin], total_pins: int) -> List[int]:
    """Pack pins without gaps."""
    return list(range(len(pins)))


def assign_slots(mode: IoStyle, pins: Sequence[Pin], total_pins: int) -> List[int]:
    """Slot index for each pin of one side (pins sorted by position).

    Raises:
        InvalidLayoutMode: If *mode* is not a quad-flat slot mode
    """
    if mode == IoStyle.ACCURATE:
        return accurate_slots(pins, total_pins)
    elif mode == IoStyle.COMPACT:
        return compact_slots(pins, total_pins)
    elif mode == IoStyle.CRUSHED:
        return crushed_slots(pins, total_pins)
    raise InvalidLayoutMode(f"Invalid QFP layout mode: {mode!r}")


# Per side: corner the slots start from, axis the slots advance along,
# and stub direction.  Indexed by QfpSide.
_QFP_ORIGIN = ((-1, -1), (-1, 1), (1, 1), (1, -1))
_QFP_ADVANCE = ((0, 1), (1, 0), (0, -1), (-1, 0))
_QFP_DIRECTION = (PinDirection.RIGHT, PinDirection.UP, PinDirection.LEFT, PinDirection.DOWN)


class QfpRenderer:
    """Pins on four sides in physical order, counter-clockwise from pin 1.

    Args:
        geometry: Drawing parameters
        unit: Symbol unit number
        total_pins: Pin count of the package (must be a multiple of 4)
        mode: IoStyle.ACCURATE, COMPACT or CRUSHED

    Raises:
        InvalidPinCount: If total_pins is not a multiple of 4
    """

    shape = PackageShape.QFP

    def __init__(self, geometry: Geometry, unit: int = 1, total_pins: int = 0,
                 mode: IoStyle = IoStyle.CRUSHED):
        if total_pins <= 0 or total_pins % 4:
            raise InvalidPinCount(
                f"Pin count must be a positive multiple of 4, got {total_pins}"
            )
        self.geometry = geometry
        self.unit = unit
        self.total_pins = total_pins
        self.mode = mode
        self.pins: List[QfpPin] = []
        self.half_inner_width = 0
        self.half_inner_height = 0
        self.half_width = 0
        self.half_height = 0

    def _side_of(self, pin: Pin) -> int:
        side = (pin.position - 1) // (self.total_pins // 4)
        if not 0 <= side <= 3:
            raise InvalidConfiguration(
                f"Pin {pin.name} at position {pin.position} is outside "
                f"a {self.total_pins}-pin package"
            )
        return side

    def set_pins(self, pins: Iterable[Pin]) -> None:
        ordered = sorted(pins, key=lambda p: p.position)
        placed = []
        for side, side_pins in groupby(ordered, key=self._side_of):
            side_pins = list(side_pins)
            slots = assign_slots(self.mode, side_pins, self.total_pins)
            placed.extend(
                QfpPin(pin, side, slot) for pin, slot in zip(side_pins, slots)
            )
        self.pins = placed
        self._calc_geometry()

    def _max_slot(self, sides) -> int:
        return max(
            (p.position_on_side for p in self.pins if p.side in sides),
            default=0,
        )

    def _calc_geometry(self):
        g = self.geometry
        if self.mode == IoStyle.ACCURATE:
            max_h = max_v = self.total_pins // 4 - 1
        else:
            max_h = self._max_slot((QfpSide.TOP, QfpSide.BOTTOM))
            max_v = self._max_slot((QfpSide.LEFT, QfpSide.RIGHT))
        self.half_inner_width = max_h * g.pin_spacing / 2
        self.half_inner_height = max_v * g.pin_spacing / 2
        self.half_width = self.half_inner_width + g.margin_qfp * g.pin_spacing
        self.half_height = self.half_inner_height + g.margin_qfp * g.pin_spacing
        log.debug("QFP unit %d: %d pins, %d x %d slots",
                  self.unit, len(self.pins), max_h, max_v)

    def _place(self, qpin: QfpPin) -> PlacedPin:
        g = self.geometry
        half_inner = (self.half_inner_width, self.half_inner_height)
        origin = _QFP_ORIGIN[qpin.side]
        advance = _QFP_ADVANCE[qpin.side]
        outward = g.margin_qfp * g.pin_spacing + g.pin_length
        x, y = (
            half_inner[i] * origin[i]
            + qpin.position_on_side * advance[i] * g.pin_spacing
            + (0 if advance[i] else origin[i]) * outward
            for i in (0, 1)
        )
        return PlacedPin(qpin.pin, x, y, _QFP_DIRECTION[qpin.side])

    def layout(self) -> BlockLayout:
        return BlockLayout(
            self.unit, self.half_width, self.half_height, self.geometry.pin_length,
            [self._place(qpin) for qpin in self.pins],
        )

    def render_block(self, out: List[str]) -> None:
        out.append(rect_line(self.half_width, self.half_height, self.unit))

    def render_pins(self, out: List[str]) -> None:
        _render_pins(self.layout(), out)


def create_renderer(shape: PackageShape, geometry: Geometry, unit: int = 1,
                    total_pins: Optional[int] = None,
                    mode: IoStyle = IoStyle.CRUSHED):
    """Build the renderer for *shape*.

    total_pins and mode only apply to PackageShape.QFP.
    """
    if shape is PackageShape.SIP:
        return SipRenderer(geometry, unit)
    elif shape is PackageShape.DIP:
        return DipRenderer(geometry, unit)
    elif shape is PackageShape.QFP:
        return QfpRenderer(geometry, unit, total_pins or 0, mode)
    raise InvalidConfiguration(f"Unknown package shape: {shape!r}")
