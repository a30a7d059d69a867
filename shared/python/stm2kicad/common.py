"""
Common types, constants and helpers for STM32 symbol generation.

Provides the pieces shared by the layout engine, the legacy library emitter
and the kiutils exporter:
- Geometry and Options records with their stock defaults
- CubeMX / KiCad pin type enums
- Error hierarchy
- Number formatting for the legacy text format
"""

import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Union


# ==============================================================
# Constants
# ==============================================================

# Legacy libraries carry a timestamp in the header.  A fixed one keeps
# repeated runs byte-identical.
LIBRARY_DATE = "24/1/1997-18:9:6"
LIBRARY_HEADER = f"EESchema-LIBRARY Version 2.0 {LIBRARY_DATE}"

MIL_TO_MM = 0.0254    # legacy libraries are in mils, .kicad_sym in mm
GRID_MIL = 50         # KiCad symbol pin grid
TEXT_SIZE_MIL = 50    # pin name / number text size in pin lines

DEFAULT_DATABASE = "/opt/stm32cubemx/db"


# ==============================================================
# Errors
# ==============================================================

class Stm2KicadError(Exception):
    """Base class for every error raised by stm2kicad."""


class InvalidConfiguration(Stm2KicadError, ValueError):
    """Layout options or geometry that the engine cannot lay out."""


class InvalidPinCount(InvalidConfiguration):
    """Quad-flat pin count that does not split evenly over four sides."""


class InvalidLayoutMode(InvalidConfiguration):
    """Unknown IO style / quad-flat slot mode."""


class CubeFileError(Stm2KicadError):
    """Unreadable or incomplete CubeMX project or MCU database file."""


# ==============================================================
# Enums
# ==============================================================

class PinConfigType(str, Enum):
    """Pin type as declared in the CubeMX MCU database."""
    POWER = "Power"
    IO = "I/O"
    RESET = "Reset"
    BOOT = "Boot"
    MONO_IO = "MonoIO"


class ElectricalType(str, Enum):
    """KiCad pin electrical type (legacy single-letter code)."""
    INPUT = "I"
    OUTPUT = "O"
    BIDI = "B"
    TRISTATE = "T"
    PASSIVE = "P"
    UNSPECIFIED = "U"
    POWER_IN = "W"
    POWER_OUT = "w"
    OPEN_COLLECTOR = "C"
    OPEN_EMITTER = "E"
    NOT_CONNECTED = "N"

    @property
    def sexpr_name(self) -> str:
        """Name of this type in the .kicad_sym s-expression format."""
        return _SEXPR_ELECTRICAL_NAMES[self]


_SEXPR_ELECTRICAL_NAMES = {
    ElectricalType.INPUT: "input",
    ElectricalType.OUTPUT: "output",
    ElectricalType.BIDI: "bidirectional",
    ElectricalType.TRISTATE: "tri_state",
    ElectricalType.PASSIVE: "passive",
    ElectricalType.UNSPECIFIED: "unspecified",
    ElectricalType.POWER_IN: "power_in",
    ElectricalType.POWER_OUT: "power_out",
    ElectricalType.OPEN_COLLECTOR: "open_collector",
    ElectricalType.OPEN_EMITTER: "open_emitter",
    ElectricalType.NOT_CONNECTED: "no_connect",
}


class PinDirection(str, Enum):
    """Direction of a pin stub, from its connection point toward the body."""
    RIGHT = "R"
    UP = "U"
    LEFT = "L"
    DOWN = "D"

    @property
    def angle(self) -> int:
        """Pin angle in degrees as used by .kicad_sym (0 = pointing right)."""
        return _DIRECTION_ANGLES[self]


_DIRECTION_ANGLES = {
    PinDirection.RIGHT: 0,
    PinDirection.UP: 90,
    PinDirection.LEFT: 180,
    PinDirection.DOWN: 270,
}


class IoStyle(str, Enum):
    """How the IO block is drawn."""
    ACCURATE = "accurate"
    COMPACT = "compact"
    CRUSHED = "crushed"
    SINGLE_ROW = "single-row"


# Quad-flat slot modes are the IO styles other than single-row
QFP_MODES = (IoStyle.ACCURATE, IoStyle.COMPACT, IoStyle.CRUSHED)

# Command-line spellings accepted for each style
STYLE_ALIASES = {
    "accurate": IoStyle.ACCURATE,
    "compact": IoStyle.COMPACT,
    "crushed": IoStyle.CRUSHED,
    "sip": IoStyle.SINGLE_ROW,
    "single-row": IoStyle.SINGLE_ROW,
}


def parse_io_style(value: Union[str, IoStyle]) -> IoStyle:
    """
    Resolve an IO style from its enum value or a command-line alias.

    Raises:
        InvalidLayoutMode: If the value names no known style
    """
    if isinstance(value, IoStyle):
        return value
    style = STYLE_ALIASES.get(str(value).lower())
    if style is None:
        raise InvalidLayoutMode(
            f"Invalid IO style: {value!r}. "
            f"Available: {', '.join(sorted(STYLE_ALIASES))}"
        )
    return style


# ==============================================================
# Geometry and options
# ==============================================================

@dataclass(frozen=True)
class Geometry:
    """Symbol drawing parameters, all in mils."""
    pin_spacing: float = 100
    pin_length: float = 200
    margin_qfp: float = 8     # in pin_spacing units
    margin_ip: float = 1      # in pin_spacing units
    width_sip: float = 800
    width_dip: float = 1600


@dataclass
class Options:
    """Everything the symbol assembler needs besides the pins."""
    io_style: IoStyle = IoStyle.CRUSHED
    separate_config: bool = True
    separate_power: bool = True
    separate_unassigned: bool = True
    drop_unassigned: bool = False
    geometry: Geometry = field(default_factory=Geometry)

    def __post_init__(self):
        self.io_style = parse_io_style(self.io_style)


def load_geometry(path: str, base: Geometry = Geometry()) -> Geometry:
    """
    Load geometry overrides from a JSON object file.

    Args:
        path: JSON file, e.g. {"pin_spacing": 100, "width_sip": 1000}
        base: Geometry the overrides are applied to

    Returns:
        New Geometry with the overridden fields

    Raises:
        InvalidConfiguration: On unreadable JSON, unknown keys or non-numbers
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise InvalidConfiguration(f"Cannot read geometry file {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidConfiguration(f"Geometry file {path} must hold a JSON object")

    known = {f.name for f in fields(Geometry)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidConfiguration(
            f"Unknown geometry keys in {path}: {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(known))}"
        )
    for key, value in data.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidConfiguration(f"Geometry value {key}={value!r} is not a number")
    return replace(base, **data)


# ==============================================================
# Formatting
# ==============================================================

def fmt_num(value: Union[int, float]) -> str:
    """Format a coordinate for the legacy text format.

    Integral values print without a decimal point, others with up to four
    decimals; negative zero prints as "0".
    """
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return str(value)
    s = f"{value:.4f}".rstrip("0").rstrip(".")
    if s == "-0":
        s = "0"
    return s
