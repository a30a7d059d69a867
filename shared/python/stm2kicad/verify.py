"""
Verification of generated symbol libraries.

Provides general checks that apply to any generated symbol:
1. Unit count (DEF line vs units actually drawn)
2. Duplicate pin numbers
3. Stacked pins (two pins on the same point of the same unit)
4. Off-grid pins
5. Pins whose inner end does not touch their unit's body rectangle

Also provides:
- parse_library() -- legacy .lib parser
- parse_kicad_sym() -- .kicad_sym loader (via kiutils), converted to the
  same structure in mils so the same checks apply
"""

import math
from collections import defaultdict

from kiutils.items.syitems import SyRect
from kiutils.symbol import SymbolLib

from .common import GRID_MIL, MIL_TO_MM


# ==============================================================
# Configuration
# ==============================================================

TOLERANCE = 0.01  # mil tolerance for coordinate comparison

# Unit vector from a pin's connection point toward the body (Y-up)
_DIR_VECTORS = {"R": (1, 0), "U": (0, 1), "L": (-1, 0), "D": (0, -1)}
_ANGLE_TO_DIR = {0: "R", 90: "U", 180: "L", 270: "D"}


def _num(token):
    value = float(token)
    return int(value) if value.is_integer() else value


def _new_symbol(name, declared_units):
    return {
        'name': name,
        'declared_units': declared_units,
        'units': defaultdict(lambda: {'rects': [], 'pins': []}),
    }


# ==============================================================
# Library parsing
# ==============================================================

def parse_library_text(text):
    """Parse legacy library text.

    Returns a list of symbol dicts:
      name: symbol name
      declared_units: unit count from the DEF line
      units: {unit: {'rects': [(x1, y1, x2, y2)],
                     'pins': [(number, name, x, y, length, dir)]}}
    Coordinates are as written in the file (mils, Y-up).
    """
    symbols = []
    current = None
    for line in text.splitlines():
        fields = line.split()
        if not fields:
            continue
        if fields[0] == "DEF" and len(fields) >= 8:
            current = _new_symbol(fields[1], int(fields[7]))
            symbols.append(current)
        elif fields[0] == "ENDDEF":
            current = None
        elif current is None:
            continue
        elif fields[0] == "S" and len(fields) >= 6:
            x1, y1, x2, y2 = (_num(v) for v in fields[1:5])
            current['units'][int(fields[5])]['rects'].append((x1, y1, x2, y2))
        elif fields[0] == "X" and len(fields) >= 12:
            name, number = fields[1], fields[2]
            x, y, length = _num(fields[3]), _num(fields[4]), _num(fields[5])
            current['units'][int(fields[9])]['pins'].append(
                (number, name, x, y, length, fields[6]))
    return symbols


def parse_library(filepath):
    """Parse a legacy .lib file (see parse_library_text)."""
    with open(filepath, encoding="utf-8") as f:
        return parse_library_text(f.read())


def _mm_to_mil(value):
    return _num(f"{value / MIL_TO_MM:.3f}")


def parse_kicad_sym(filepath):
    """Load a .kicad_sym library into the parse_library structure (mils)."""
    lib = SymbolLib.from_file(filepath)
    symbols = []
    for sym in lib.symbols:
        current = _new_symbol(sym.entryName, len(sym.units))
        for unit in sym.units:
            entry = current['units'][unit.unitId]
            for item in unit.graphicItems:
                if isinstance(item, SyRect):
                    entry['rects'].append((
                        _mm_to_mil(item.start.X), _mm_to_mil(item.start.Y),
                        _mm_to_mil(item.end.X), _mm_to_mil(item.end.Y),
                    ))
            for pin in unit.pins:
                angle = int(pin.position.angle or 0) % 360
                entry['pins'].append((
                    pin.number, pin.name,
                    _mm_to_mil(pin.position.X), _mm_to_mil(pin.position.Y),
                    _mm_to_mil(pin.length), _ANGLE_TO_DIR.get(angle, "?"),
                ))
        symbols.append(current)
    return symbols


# ==============================================================
# Checks
# ==============================================================

def check_unit_count(sym):
    """DEF unit count must match the units that are drawn."""
    drawn = len(sym['units'])
    if sym['declared_units'] != drawn:
        return [f"  {sym['name']}: DEF declares {sym['declared_units']} units, "
                f"{drawn} drawn"]
    return []


def check_duplicate_numbers(sym):
    """Each pin number may appear once per symbol."""
    seen = {}
    issues = []
    for unit, entry in sorted(sym['units'].items()):
        for number, name, *_ in entry['pins']:
            if number in seen:
                issues.append(
                    f"  Pin {number} ({name}) in unit {unit} "
                    f"duplicates unit {seen[number]}"
                )
            else:
                seen[number] = unit
    return issues


def check_stacked_pins(sym):
    """Two pins of one unit on the same connection point."""
    issues = []
    for unit, entry in sorted(sym['units'].items()):
        by_point = defaultdict(list)
        for number, name, x, y, *_ in entry['pins']:
            by_point[(round(x, 2), round(y, 2))].append(f"{number}/{name}")
        for (x, y), names in sorted(by_point.items()):
            if len(names) > 1:
                issues.append(f"  Unit {unit} ({x}, {y}): {', '.join(names)}")
    return issues


def _off_grid(value, grid):
    return abs(value / grid - round(value / grid)) * grid > TOLERANCE


def check_off_grid(sym, grid=GRID_MIL):
    """Pin connection points must sit on the symbol grid."""
    issues = []
    for unit, entry in sorted(sym['units'].items()):
        for number, name, x, y, *_ in entry['pins']:
            if _off_grid(x, grid) or _off_grid(y, grid):
                issues.append(f"  Pin {number} ({name}) at ({x}, {y}) is off the {grid} mil grid")
    return issues


def _on_rect_edge(px, py, rect):
    x1, y1, x2, y2 = rect
    xmin, xmax = min(x1, x2), max(x1, x2)
    ymin, ymax = min(y1, y2), max(y1, y2)
    within_x = xmin - TOLERANCE <= px <= xmax + TOLERANCE
    within_y = ymin - TOLERANCE <= py <= ymax + TOLERANCE
    on_vertical = (math.isclose(px, xmin, abs_tol=TOLERANCE)
                   or math.isclose(px, xmax, abs_tol=TOLERANCE)) and within_y
    on_horizontal = (math.isclose(py, ymin, abs_tol=TOLERANCE)
                     or math.isclose(py, ymax, abs_tol=TOLERANCE)) and within_x
    return on_vertical or on_horizontal


def check_pins_touch_body(sym):
    """The body end of every pin must lie on its unit's rectangle."""
    issues = []
    for unit, entry in sorted(sym['units'].items()):
        for number, name, x, y, length, direction in entry['pins']:
            dx, dy = _DIR_VECTORS.get(direction, (0, 0))
            ex, ey = x + dx * length, y + dy * length
            if not any(_on_rect_edge(ex, ey, r) for r in entry['rects']):
                issues.append(
                    f"  Pin {number} ({name}) in unit {unit}: body end "
                    f"({ex}, {ey}) is not on the unit outline"
                )
    return issues


# ==============================================================
# Convenience: run all checks
# ==============================================================

def run_all_checks(sym, grid=GRID_MIL):
    """Run all checks on one parsed symbol.

    Returns list of (category_name, issues_list, is_error) tuples.
    Only non-empty checks are included.
    """
    results = []

    units = check_unit_count(sym)
    if units:
        results.append(("Unit Count", units, True))

    dupes = check_duplicate_numbers(sym)
    if dupes:
        results.append(("Duplicate Pin Numbers", dupes, True))

    stacked = check_stacked_pins(sym)
    if stacked:
        results.append(("Stacked Pins", stacked, True))

    off_grid = check_off_grid(sym, grid)
    if off_grid:
        results.append(("Off-grid Pins", off_grid, False))

    detached = check_pins_touch_body(sym)
    if detached:
        results.append(("Pin Not On Body", detached, True))

    return results


def verify_file(filepath, grid=GRID_MIL):
    """Parse a .lib or .kicad_sym file and check every symbol in it.

    Returns {symbol_name: results} with results as from run_all_checks().
    """
    if filepath.endswith(".kicad_sym"):
        symbols = parse_kicad_sym(filepath)
    else:
        symbols = parse_library(filepath)
    return {sym['name']: run_all_checks(sym, grid) for sym in symbols}
