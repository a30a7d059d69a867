"""
Symbol assembly: classify a device's pins into blocks and emit the symbol.

render_symbol() produces the complete legacy library text for one device;
layout_symbol() runs the same classification and layout but returns the
per-unit geometry (used by the .kicad_sym exporter).  Both only touch the
output once every block has been laid out, so a layout error leaves *out*
untouched.
"""

import logging
from typing import List, Optional

from .blocks import Blocks, block_order, classify_pins, create_blocks
from .common import Options
from .legacy import footer_lines, header_lines, write_library
from .pins import PinTable
from .renderers import BlockLayout

log = logging.getLogger("stm2kicad.symbol")


def _prepare(pins: PinTable, options: Options, blocks: Optional[Blocks]):
    if blocks is None:
        blocks = create_blocks(options, len(pins))
    dropped = classify_pins(pins, options, blocks)
    rendered = [b for b in block_order(blocks) if b.owned_pins(pins)]
    log.info("%d pins in %d units, %d dropped", len(pins) - dropped, len(rendered), dropped)
    for block in rendered:
        log.debug("  %s: %d pins", block.name, len(block.owned_pins(pins)))
    return rendered


def render_symbol(out: List[str], name: str, package: str, pins: PinTable,
                  options: Options, blocks: Optional[Blocks] = None) -> int:
    """Append the library text of one symbol to *out*.

    Args:
        out: Line buffer
        name: Symbol name
        package: CubeMX package name, used for the footprint filter
        pins: Pin table (classification mutates the pins)
        options: Layout options
        blocks: Blocks to classify into; the four standard blocks are
                created from *options* when omitted

    Returns:
        Number of units in the symbol
    """
    rendered = _prepare(pins, options, blocks)

    body: List[str] = []
    for unit, block in enumerate(rendered, start=1):
        block.render(pins, body, unit)

    out.extend(header_lines(name, len(rendered), package))
    out.extend(body)
    out.extend(footer_lines())
    return len(rendered)


def layout_symbol(pins: PinTable, options: Options,
                  blocks: Optional[Blocks] = None) -> List[BlockLayout]:
    """Classify and lay out *pins*; one BlockLayout per emitted unit."""
    rendered = _prepare(pins, options, blocks)
    return [block.layout(pins, unit) for unit, block in enumerate(rendered, start=1)]


def generate_library(path: str, name: str, package: str, pins: PinTable,
                     options: Options) -> List[str]:
    """Build the library for one device and write it to *path*.

    Nothing is written unless the whole symbol was built.

    Returns:
        The lines written
    """
    lines: List[str] = []
    render_symbol(lines, name, package, pins, options)
    write_library(path, lines)
    return lines
