"""
Pin records and the pin table.

The pin table is a dict keyed by physical pin position.  Positions are
unique within a device, so they double as stable pin ids: blocks store
positions and pins store the id of the block that owns them.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .common import ElectricalType, InvalidConfiguration, PinConfigType


_WHITESPACE = re.compile(r"\s")
_AFTER_FIRST_SPACE = re.compile(r"\s.*", re.DOTALL)


@dataclass
class Pin:
    """One physical pin of the device."""
    position: int
    name: str
    config_type: PinConfigType
    assigned: bool = False
    elec_type: ElectricalType = ElectricalType.UNSPECIFIED
    mode: Optional[str] = None
    label: Optional[str] = None
    display_name: Optional[str] = None
    block_id: Optional[int] = None

    @property
    def short_name(self) -> str:
        """Pin name up to the first whitespace ("PA13 (JTMS)" -> "PA13")."""
        return _AFTER_FIRST_SPACE.sub("", self.name, count=1)

    def make_display_name(self) -> str:
        """Name drawn next to the pin: "short/label" or the full name."""
        name = f"{self.short_name}/{self.label}" if self.label else self.name
        return _WHITESPACE.sub("_", name)


PinTable = Dict[int, Pin]


def make_pin_table(pins: Iterable[Pin]) -> PinTable:
    """Key pins by position.

    Raises:
        InvalidConfiguration: If two pins share a position
    """
    table: PinTable = {}
    for pin in pins:
        if pin.position in table:
            raise InvalidConfiguration(
                f"Duplicate pin position {pin.position}: "
                f"{table[pin.position].name} and {pin.name}"
            )
        table[pin.position] = pin
    return table
