"""
STM32CubeMX input loading.

Reads a CubeMX project file (.ioc, plain key=value lines) together with the
MCU description from the CubeMX database (<db>/mcu/<Mcu.Name>.xml) and
returns the device's pin table.
"""

import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .common import CubeFileError, PinConfigType
from .pins import Pin, PinTable

log = logging.getLogger("stm2kicad.cubemx")

_KEY_VALUE = re.compile(r"^([^=]+)=(.*)$")
_SIGNAL_KEY = re.compile(r"^(.*)\.Signal$")


@dataclass
class CubeProject:
    """A CubeMX project resolved against the MCU database."""
    name: str
    mcu: str
    family: str
    package: str
    pins: PinTable = field(default_factory=dict)


def parse_ioc(text: str) -> List[Tuple[str, str]]:
    """Parse .ioc text into (key, value) pairs, in file order.

    Lines that are not key=value (comments, blanks) are skipped.
    """
    pairs = []
    for line in text.split("\n"):
        m = _KEY_VALUE.match(line.rstrip("\r"))
        if m:
            pairs.append((m.group(1), m.group(2)))
    return pairs


def _escape(pin_name: str) -> str:
    """Pin name as written in .ioc keys, where spaces are backslash-escaped."""
    return pin_name.replace(" ", "\\ ")


def _local(tag: str) -> str:
    """Tag name without its XML namespace."""
    return tag.rsplit("}", 1)[-1]


def parse_mcu_xml(path: str) -> Tuple[str, List[Tuple[int, str, PinConfigType]]]:
    """Read the package name and (position, name, type) of every pin.

    Raises:
        CubeFileError: If the file is missing, malformed or has unknown pin types
    """
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        raise CubeFileError(f"Cannot read MCU description {path}: {e}") from e

    if _local(root.tag) != "Mcu":
        raise CubeFileError(f"{path}: root element is <{_local(root.tag)}>, expected <Mcu>")
    package = root.get("Package")
    if not package:
        raise CubeFileError(f"{path}: <Mcu> has no Package attribute")

    pins = []
    for elem in root:
        if _local(elem.tag) != "Pin":
            continue
        name = elem.get("Name")
        if not name:
            raise CubeFileError(f"{path}: <Pin> without a Name attribute")
        try:
            position = int(elem.get("Position", ""))
            config_type = PinConfigType(elem.get("Type"))
        except ValueError as e:
            raise CubeFileError(f"{path}: bad pin {name!r}: {e}") from e
        pins.append((position, name, config_type))
    return package, pins


def _required(data: Dict[str, str], key: str, path: str) -> str:
    value = data.get(key)
    if not value:
        raise CubeFileError(f"{path}: missing {key}")
    return value


def load_cubefile(cubefile: str, db_path: str) -> CubeProject:
    """Load a CubeMX project and its MCU pin list.

    Args:
        cubefile: Path to the .ioc project file
        db_path: CubeMX database directory (contains mcu/*.xml)

    Returns:
        CubeProject whose pins carry the project's signal assignments,
        labels and modes

    Raises:
        CubeFileError: On unreadable or incomplete input
    """
    try:
        with open(cubefile, encoding="utf-8") as f:
            kvp = parse_ioc(f.read())
    except (OSError, UnicodeDecodeError) as e:
        raise CubeFileError(f"Cannot read CubeMX project {cubefile}: {e}") from e

    data = dict(kvp)
    mcu_name = _required(data, "Mcu.Name", cubefile)
    user_name = _required(data, "Mcu.UserName", cubefile)

    xml_path = os.path.join(db_path, "mcu", f"{mcu_name}.xml")
    package, xml_pins = parse_mcu_xml(xml_path)

    pins: PinTable = {}
    name_to_position: Dict[str, int] = {}
    for position, name, config_type in xml_pins:
        if position in pins:
            raise CubeFileError(f"{xml_path}: duplicate pin position {position}")
        assigned = f"{_escape(name)}.Signal" in data
        name_to_position[name] = position
        pins[position] = Pin(position=position, name=name,
                             config_type=config_type, assigned=assigned)

    for key, signal in kvp:
        m = _SIGNAL_KEY.match(key)
        if not m:
            continue
        prefix = m.group(1)
        pin_name = prefix.replace("\\ ", " ")
        if pin_name not in name_to_position:
            continue
        pin = pins[name_to_position[pin_name]]
        pin.label = data.get(f"{prefix}.GPIO_Label") or signal
        mode: Optional[str] = data.get(f"{prefix}.Mode")
        if mode:
            pin.mode = mode

    log.info("Loaded %s (%s, %s): %d pins, %d assigned",
             user_name, mcu_name, package, len(pins),
             sum(1 for p in pins.values() if p.assigned))

    return CubeProject(
        name=user_name,
        mcu=mcu_name,
        family=data.get("Mcu.Family", ""),
        package=package,
        pins=pins,
    )
