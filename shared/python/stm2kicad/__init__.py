"""
STM32CubeMX to KiCad symbol generation.

This package lays out the pins of an STM32 microcontroller, as configured in
a CubeMX project, into a multi-unit KiCad schematic symbol and writes it as
a legacy .lib library (and optionally as a .kicad_sym library).
"""

__version__ = "0.3.0"

from .common import (
    Geometry, Options, IoStyle, PinConfigType, ElectricalType, PinDirection,
    Stm2KicadError, InvalidConfiguration, InvalidPinCount, InvalidLayoutMode,
    CubeFileError, load_geometry,
)
from .pins import Pin, make_pin_table
from .renderers import (
    PackageShape, SipRenderer, DipRenderer, QfpRenderer, create_renderer,
    accurate_slots, compact_slots, crushed_slots, assign_slots,
)
from .blocks import Block, BlockRole, create_blocks, classify_pin, classify_pins
from .symbol import render_symbol, layout_symbol, generate_library
from .cubemx import CubeProject, load_cubefile
