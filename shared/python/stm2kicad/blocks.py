"""
Symbol blocks and pin classification.

A block is one unit of the generated symbol: a list of pin ids plus the
renderer that lays them out.  classify_pin() decides which block a pin
belongs to and which KiCad electrical type it gets.
"""

import logging
from enum import IntEnum
from typing import Dict, List, Optional

from .common import ElectricalType, IoStyle, Options, PinConfigType
from .pins import Pin, PinTable
from .renderers import BlockLayout, PackageShape, create_renderer

log = logging.getLogger("stm2kicad.blocks")


class BlockRole(IntEnum):
    """Block roles, in emission order."""
    IO = 1
    POWER = 2
    CONFIG = 3
    UNASSIGNED = 4


class Block:
    """Pins of one symbol unit and the renderer that draws them."""

    def __init__(self, block_id: int, renderer, name: str = ""):
        self.block_id = block_id
        self.renderer = renderer
        self.name = name or f"block{block_id}"
        self.pin_ids: List[int] = []

    def __repr__(self):
        return f"Block({self.block_id}, {self.name!r}, {len(self.pin_ids)} pins)"

    def add(self, pin: Pin) -> None:
        """Take ownership of *pin*, releasing any previous owner's claim."""
        pin.block_id = self.block_id
        if pin.position not in self.pin_ids:
            self.pin_ids.append(pin.position)

    def owned_pins(self, pins: PinTable) -> List[Pin]:
        """Pins added to this block that still point back at it."""
        return [
            pins[pid] for pid in self.pin_ids
            if pid in pins and pins[pid].block_id == self.block_id
        ]

    def layout(self, pins: PinTable, unit: int) -> BlockLayout:
        self.renderer.unit = unit
        self.renderer.set_pins(self.owned_pins(pins))
        return self.renderer.layout()

    def render(self, pins: PinTable, out: List[str], unit: int) -> None:
        """Append the rectangle and pin lines of this block as *unit*."""
        self.renderer.unit = unit
        self.renderer.set_pins(self.owned_pins(pins))
        self.renderer.render_block(out)
        self.renderer.render_pins(out)


Blocks = Dict[BlockRole, Block]


def create_blocks(options: Options, total_pins: int) -> Blocks:
    """Create the four standard blocks for *options*.

    The IO block is quad-flat over the whole package unless the IO style is
    single-row; power and config are single-row, unassigned is dual-row.

    Raises:
        InvalidPinCount: If a quad-flat IO block is requested for a pin
            count that is not a multiple of 4
    """
    geometry = options.geometry
    if options.io_style == IoStyle.SINGLE_ROW:
        io_renderer = create_renderer(PackageShape.SIP, geometry, int(BlockRole.IO))
    else:
        io_renderer = create_renderer(PackageShape.QFP, geometry, int(BlockRole.IO),
                                      total_pins=total_pins, mode=options.io_style)
    return {
        BlockRole.IO: Block(BlockRole.IO, io_renderer, "io"),
        BlockRole.POWER: Block(
            BlockRole.POWER, create_renderer(PackageShape.SIP, geometry, int(BlockRole.POWER)), "power"),
        BlockRole.CONFIG: Block(
            BlockRole.CONFIG, create_renderer(PackageShape.SIP, geometry, int(BlockRole.CONFIG)), "config"),
        BlockRole.UNASSIGNED: Block(
            BlockRole.UNASSIGNED, create_renderer(PackageShape.DIP, geometry, int(BlockRole.UNASSIGNED)),
            "unassigned"),
    }


def classify_pin(pin: Pin, options: Options, blocks: Blocks) -> Optional[Block]:
    """Stamp the display name and electrical type on *pin* and add it to a block.

    Rules are tried in order and the first match wins:
      1. power pins -> power block (when power is separated)
      2. any non-I/O pin -> config block (when config is separated)
      3. assigned pins, or every pin when unassigned pins are neither
         separated nor dropped -> IO block
      4. unassigned pins -> unassigned block (when separated, not dropped)
      5. otherwise the pin is dropped

    Returns the block the pin went to, or None if it was dropped.
    """
    pin.display_name = pin.make_display_name()

    if options.separate_power and pin.config_type == PinConfigType.POWER:
        elec_type, role = ElectricalType.POWER_IN, BlockRole.POWER
    elif options.separate_config and pin.config_type != PinConfigType.IO:
        elec_type, role = ElectricalType.BIDI, BlockRole.CONFIG
    elif pin.assigned or (not options.separate_unassigned and not options.drop_unassigned):
        elec_type, role = ElectricalType.PASSIVE, BlockRole.IO
    elif options.separate_unassigned and not options.drop_unassigned:
        elec_type, role = ElectricalType.UNSPECIFIED, BlockRole.UNASSIGNED
    else:
        log.debug("Dropping unassigned pin %d (%s)", pin.position, pin.name)
        return None

    pin.elec_type = elec_type
    block = blocks[role]
    block.add(pin)
    return block


def classify_pins(pins: PinTable, options: Options, blocks: Blocks) -> int:
    """Classify every pin in table order.  Returns the number of dropped pins."""
    dropped = 0
    for pin in pins.values():
        if classify_pin(pin, options, blocks) is None:
            dropped += 1
    return dropped


def block_order(blocks: Blocks) -> List[Block]:
    """Distinct blocks in emission order (a block shared by two roles appears once)."""
    order: List[Block] = []
    for role in BlockRole:
        block = blocks.get(role)
        if block is not None and not any(block is b for b in order):
            order.append(block)
    return order
