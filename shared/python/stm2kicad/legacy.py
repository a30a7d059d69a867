"""
Legacy KiCad library (.lib, EESchema-LIBRARY Version 2.0) text emission.

Provides line formatters for the symbol header, the unit rectangles and the
pins, plus write_library() which puts a finished line buffer on disk in one
step.  Field order and the literal tokens ("10 f", "50 50") are fixed by the
format.
"""

import logging
import os
import re
import stat
import tempfile
from typing import List

from .common import LIBRARY_HEADER, TEXT_SIZE_MIL, fmt_num

log = logging.getLogger("stm2kicad.legacy")


def footprint_filter(package: str) -> str:
    """Footprint filter pattern for a CubeMX package name ("LQFP64" -> "LQFP-64")."""
    return re.sub(r"LQFP", "LQFP-", package, count=1)


def header_lines(name: str, unit_count: int, package: str) -> List[str]:
    """Library header, DEF line, fields and footprint filter, up to DRAW."""
    return [
        LIBRARY_HEADER,
        f"DEF {name} U 0 40 Y Y {unit_count} L N",
        'F0 "U" 0 100 50 H V C C',
        f'F1 "{name}" 0 -100 50 H V C C',
        "$FPLIST",
        f" {footprint_filter(package)}",
        "$ENDFPLIST",
        "DRAW",
    ]


def footer_lines() -> List[str]:
    return ["ENDDRAW", "ENDDEF", ""]


def rect_line(half_width, half_height, unit: int) -> str:
    """Filled rectangle centred on the origin."""
    return (
        f"S {fmt_num(-half_width)} {fmt_num(-half_height)} "
        f"{fmt_num(half_width)} {fmt_num(half_height)} {unit} 1 10 f"
    )


def pin_line(display_name: str, number: int, x, y, pin_length, direction: str,
             unit: int, elec_type: str) -> str:
    """Pin definition line.

    *y* is in the layout's coordinate model and is negated here; the
    library file uses the opposite vertical convention.
    """
    return (
        f"X {display_name} {number} {fmt_num(x)} {fmt_num(-y)} "
        f"{fmt_num(pin_length)} {direction} {TEXT_SIZE_MIL} {TEXT_SIZE_MIL} "
        f"{unit} 1 {elec_type}"
    )


def _file_mode(path: str) -> int:
    """Permissions for *path*: kept from an existing file, else 0666 minus the umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_library(path: str, lines: List[str]) -> None:
    """Write a finished library buffer to *path*.

    The text goes to a temporary file in the same directory first and is
    then moved over *path*, so a failed write never leaves a partial file.
    The result gets the permissions a plain open() would have given it.
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=".stm2kicad-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write("\n".join(lines))
        os.chmod(tmp_path, _file_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise
    log.info("Wrote %d lines to %s", len(lines), path)
