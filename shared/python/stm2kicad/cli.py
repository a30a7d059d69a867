"""
Command line: generate a KiCad symbol library from an STM32CubeMX project.

Usage:
    python -m stm2kicad -i board.ioc -o board.lib
    python -m stm2kicad -i board.ioc -o board.lib -s accurate --kicad-sym board.kicad_sym
    python -m stm2kicad -i board.ioc -o board.lib --drop-unassigned --verify
"""

import argparse
import logging
import sys

from .common import DEFAULT_DATABASE, STYLE_ALIASES, Options, Stm2KicadError, load_geometry
from .cubemx import load_cubefile
from .kicad_sym import write_kicad_sym
from .symbol import generate_library, layout_symbol
from .verify import verify_file


def build_parser():
    parser = argparse.ArgumentParser(
        prog="stm2kicad",
        description="Generate a KiCad symbol from an STM32CubeMX project.",
    )
    parser.add_argument("-i", "--input", required=True,
                        help="STM32CubeMX project file (.ioc)")
    parser.add_argument("-o", "--output", required=True,
                        help="KiCad library to produce (.lib)")
    parser.add_argument("-d", "--database", default=DEFAULT_DATABASE,
                        help="Path to the STM32CubeMX database (default: %(default)s)")
    parser.add_argument("-s", "--style", default="crushed", choices=sorted(STYLE_ALIASES),
                        help="Style for IO pins (default: %(default)s)")
    parser.add_argument("--no-separate-config", dest="separate_config", action="store_false",
                        help="Keep boot/reset pins in the IO unit")
    parser.add_argument("--no-separate-power", dest="separate_power", action="store_false",
                        help="Keep power pins out of their own unit")
    parser.add_argument("--no-separate-unassigned", dest="separate_unassigned",
                        action="store_false",
                        help="Keep unassigned pins in the IO unit")
    parser.add_argument("--drop-unassigned", action="store_true",
                        help="Leave unassigned pins out of the symbol")
    parser.add_argument("--geometry", metavar="FILE",
                        help="JSON file overriding geometry parameters (mils)")
    parser.add_argument("--kicad-sym", metavar="FILE",
                        help="Also write the symbol as a .kicad_sym library")
    parser.add_argument("--verify", action="store_true",
                        help="Check the written libraries; exit 1 on errors")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log progress")
    return parser


def _report(path, results):
    """Print verification results.  Returns True if any error was found."""
    failed = False
    for sym_name, checks in results.items():
        if not checks:
            print(f"  {path}: {sym_name} OK")
            continue
        for category, issues, is_error in checks:
            level = "ERROR" if is_error else "WARNING"
            print(f"  [{level}] {path}: {sym_name}: {category} ({len(issues)})")
            for issue in issues:
                print(issue)
            failed = failed or is_error
    return failed


def run(args) -> int:
    geometry_kwargs = {}
    if args.geometry:
        geometry_kwargs["geometry"] = load_geometry(args.geometry)
    options = Options(
        io_style=args.style,
        separate_config=args.separate_config,
        separate_power=args.separate_power,
        separate_unassigned=args.separate_unassigned,
        drop_unassigned=args.drop_unassigned,
        **geometry_kwargs,
    )

    project = load_cubefile(args.input, args.database)
    print(f"{project.name}: {project.mcu} ({project.package}), {len(project.pins)} pins")

    lines = generate_library(args.output, project.name, project.package,
                             project.pins, options)
    print(f"  Saved: {args.output} ({len(lines)} lines)")
    written = [args.output]

    if args.kicad_sym:
        layouts = layout_symbol(project.pins, options)
        write_kicad_sym(args.kicad_sym, project.name, project.package, layouts)
        print(f"  Saved: {args.kicad_sym} ({len(layouts)} units)")
        written.append(args.kicad_sym)

    if args.verify:
        print("\nVerifying...")
        failed = False
        for path in written:
            failed = _report(path, verify_file(path)) or failed
        if failed:
            return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except Stm2KicadError as e:
        print(f"stm2kicad: error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
