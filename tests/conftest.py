"""Shared fixtures: a small 8-pin device and CubeMX project files."""

import textwrap

import pytest

from stm2kicad.common import Geometry, PinConfigType
from stm2kicad.pins import Pin, make_pin_table

P = PinConfigType

# (position, name, type, assigned, label)
SAMPLE_DEVICE = [
    (1, "VDD", P.POWER, False, None),
    (2, "PA0", P.IO, True, "LED"),
    (3, "PA1", P.IO, False, None),
    (4, "NRST", P.RESET, False, None),
    (5, "VSS", P.POWER, False, None),
    (6, "PB0", P.IO, True, "BTN"),
    (7, "BOOT0", P.BOOT, False, None),
    (8, "PB1", P.IO, False, None),
]

# Expected legacy output for SAMPLE_DEVICE with default options
SAMPLE_LIBRARY = [
    "EESchema-LIBRARY Version 2.0 24/1/1997-18:9:6",
    "DEF MyBoard U 0 40 Y Y 4 L N",
    'F0 "U" 0 100 50 H V C C',
    'F1 "MyBoard" 0 -100 50 H V C C',
    "$FPLIST",
    " LQFP-8",
    "$ENDFPLIST",
    "DRAW",
    "S -800 -800 800 800 1 1 10 f",
    "X PA0/LED 2 -1000 0 200 R 50 50 1 1 P",
    "X PB0/BTN 6 1000 0 200 L 50 50 1 1 P",
    "S -400 -150 400 150 2 1 10 f",
    "X VDD 1 600 50 200 L 50 50 2 1 W",
    "X VSS 5 600 -50 200 L 50 50 2 1 W",
    "S -400 -150 400 150 3 1 10 f",
    "X BOOT0 7 600 50 200 L 50 50 3 1 B",
    "X NRST 4 600 -50 200 L 50 50 3 1 B",
    "S -800 -100 800 100 4 1 10 f",
    "X PA1 3 -1000 0 200 R 50 50 4 1 U",
    "X PB1 8 1000 0 200 L 50 50 4 1 U",
    "ENDDRAW",
    "ENDDEF",
    "",
]


@pytest.fixture
def geometry():
    return Geometry()


@pytest.fixture
def sample_pins():
    return make_pin_table(
        Pin(position=pos, name=name, config_type=ctype, assigned=assigned, label=label)
        for pos, name, ctype, assigned, label in SAMPLE_DEVICE
    )


def io_pins(*positions, prefix="P"):
    """I/O pins at the given positions, named P<position>."""
    return [Pin(position=pos, name=f"{prefix}{pos}", config_type=PinConfigType.IO)
            for pos in positions]


@pytest.fixture
def make_io_pins():
    return io_pins


MCU_XML = """\
<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<Mcu xmlns="http://mcd.rou.st.com/modules.php?name=mcu" Family="STM32F0" Package="{package}" RefName="{mcu}">
\t<Core>Arm Cortex-M0</Core>
{pins}
</Mcu>
"""

SAMPLE_XML_PINS = [
    ("BOOT0", 1, "Boot"),
    ("PF0-OSC_IN (PF0)", 2, "I/O"),
    ("PF1-OSC_OUT (PF1)", 3, "I/O"),
    ("NRST", 4, "Reset"),
    ("VDDA", 5, "Power"),
    ("PA4", 6, "I/O"),
    ("PA9", 7, "I/O"),
    ("VSS", 8, "Power"),
]

SAMPLE_IOC = textwrap.dedent("""\
    #MicroXplorer Configuration settings - do not modify
    File.Version=6
    Mcu.Family=STM32F0
    Mcu.Name=STM32F030F4Px
    Mcu.UserName=STM32F030F4Px
    PA4.GPIO_Label=LED
    PA4.Locked=true
    PA4.Signal=GPIO_Output
    PA9.Mode=Asynchronous
    PA9.Signal=USART1_TX
    PF0-OSC_IN\\ (PF0).Mode=HSE-External-Oscillator
    PF0-OSC_IN\\ (PF0).Signal=RCC_OSC_IN
    """)


def write_cube_files(directory, xml_pins=SAMPLE_XML_PINS, ioc=SAMPLE_IOC,
                     mcu="STM32F030F4Px", package="TSSOP20"):
    """Write an .ioc file and a one-MCU database; returns (ioc_path, db_path)."""
    db = directory / "db"
    (db / "mcu").mkdir(parents=True)
    pin_elems = "\n".join(
        f'\t<Pin Name="{name}" Position="{pos}" Type="{ptype}">\n'
        f'\t\t<Signal Name="GPIO"/>\n'
        f'\t</Pin>'
        for name, pos, ptype in xml_pins
    )
    (db / "mcu" / f"{mcu}.xml").write_text(
        MCU_XML.format(package=package, mcu=mcu, pins=pin_elems), encoding="utf-8")
    ioc_path = directory / "board.ioc"
    ioc_path.write_text(ioc, encoding="utf-8")
    return str(ioc_path), str(db)


@pytest.fixture
def cube_files(tmp_path):
    return write_cube_files(tmp_path)


@pytest.fixture
def make_cube_files(tmp_path):
    def make(**kwargs):
        return write_cube_files(tmp_path, **kwargs)
    return make


@pytest.fixture
def sample_library():
    return list(SAMPLE_LIBRARY)
