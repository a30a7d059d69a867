"""End-to-end tests for the command line."""

import json

import pytest

from stm2kicad.cli import build_parser, main
from stm2kicad.verify import parse_library


def _run(cube_files, tmp_path, *extra):
    ioc, db = cube_files
    out = tmp_path / "board.lib"
    code = main(["-i", ioc, "-d", db, "-o", str(out), *extra])
    return code, out


def _pin_units(path):
    """{pin name: unit} of the one symbol in a legacy library."""
    sym = parse_library(str(path))[0]
    return {pin[1]: unit for unit, entry in sym['units'].items() for pin in entry['pins']}


def test_parser_defaults():
    args = build_parser().parse_args(["-i", "a.ioc", "-o", "a.lib"])
    assert args.database == "/opt/stm32cubemx/db"
    assert args.style == "crushed"
    assert args.separate_config and args.separate_power and args.separate_unassigned
    assert not args.drop_unassigned
    assert not args.verify


def test_parser_rejects_unknown_style():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["-i", "a.ioc", "-o", "a.lib", "-s", "zigzag"])


def test_generate(cube_files, tmp_path, capsys):
    code, out = _run(cube_files, tmp_path)
    assert code == 0
    assert "STM32F030F4Px: STM32F030F4Px (TSSOP20), 8 pins" in capsys.readouterr().out

    lines = out.read_text().split("\n")
    assert lines[0] == "EESchema-LIBRARY Version 2.0 24/1/1997-18:9:6"
    assert lines[1] == "DEF STM32F030F4Px U 0 40 Y Y 4 L N"
    assert lines[5] == " TSSOP20"
    assert _pin_units(out) == {
        "PF0-OSC_IN/RCC_OSC_IN": 1,
        "PA4/LED": 1,
        "PA9/USART1_TX": 1,
        "VDDA": 2,
        "VSS": 2,
        "BOOT0": 3,
        "NRST": 3,
        "PF1-OSC_OUT_(PF1)": 4,
    }


def test_drop_unassigned(cube_files, tmp_path):
    code, out = _run(cube_files, tmp_path, "--drop-unassigned")
    assert code == 0
    assert sorted(set(_pin_units(out).values())) == [1, 2, 3]
    assert "PF1-OSC_OUT_(PF1)" not in _pin_units(out)


def test_everything_in_one_unit(cube_files, tmp_path):
    code, out = _run(cube_files, tmp_path, "--no-separate-config",
                     "--no-separate-power", "--no-separate-unassigned")
    assert code == 0
    assert set(_pin_units(out).values()) == {1}


def test_single_row_style(cube_files, tmp_path):
    code, out = _run(cube_files, tmp_path, "-s", "sip")
    assert code == 0
    io = parse_library(str(out))[0]['units'][1]
    assert [pin[5] for pin in io['pins']] == ["L", "L", "L"]


def test_verify_and_kicad_sym(cube_files, tmp_path, capsys):
    sym_path = tmp_path / "board.kicad_sym"
    code, out = _run(cube_files, tmp_path, "--kicad-sym", str(sym_path), "--verify")
    assert code == 0
    assert sym_path.exists()
    printed = capsys.readouterr().out
    assert f"{out}: STM32F030F4Px OK" in printed
    assert f"{sym_path}: STM32F030F4Px OK" in printed


def test_verify_reports_off_grid_warning(cube_files, tmp_path, capsys):
    geometry = tmp_path / "geometry.json"
    geometry.write_text(json.dumps({"pin_length": 175}))
    code, _ = _run(cube_files, tmp_path, "--geometry", str(geometry), "--verify")
    # off-grid pins are warnings only
    assert code == 0
    assert "[WARNING]" in capsys.readouterr().out


def test_bad_geometry(cube_files, tmp_path, capsys):
    geometry = tmp_path / "geometry.json"
    geometry.write_text(json.dumps({"pin_pitch": 100}))
    code, out = _run(cube_files, tmp_path, "--geometry", str(geometry))
    assert code == 2
    assert "pin_pitch" in capsys.readouterr().err
    assert not out.exists()


def test_missing_database(cube_files, tmp_path, capsys):
    ioc, _ = cube_files
    out = tmp_path / "board.lib"
    code = main(["-i", ioc, "-d", str(tmp_path / "nodb"), "-o", str(out)])
    assert code == 2
    assert "stm2kicad: error:" in capsys.readouterr().err
    assert not out.exists()


def test_uneven_quad_flat(make_cube_files, tmp_path, capsys):
    xml_pins = [(f"PA{i}", i + 1, "I/O") for i in range(6)]
    ioc, db = make_cube_files(xml_pins=xml_pins)
    out = tmp_path / "board.lib"
    assert main(["-i", ioc, "-d", db, "-o", str(out), "-s", "accurate"]) == 2
    assert not out.exists()
    # the single-row style does not need a multiple of 4
    assert main(["-i", ioc, "-d", db, "-o", str(out), "-s", "single-row"]) == 0
    assert out.exists()


def test_non_utf8_project_file(cube_files, tmp_path, capsys):
    ioc, _ = cube_files
    with open(ioc, "ab") as f:
        f.write("PA4.GPIO_Label=Café\n".encode("latin-1"))
    code, out = _run(cube_files, tmp_path)
    assert code == 2
    assert "stm2kicad: error:" in capsys.readouterr().err
    assert not out.exists()


def test_pin_without_name_in_database(make_cube_files, tmp_path, capsys):
    ioc, db = make_cube_files()
    xml = tmp_path / "db" / "mcu" / "STM32F030F4Px.xml"
    xml.write_text(xml.read_text().replace('Name="VSS" ', ""))
    out = tmp_path / "board.lib"
    assert main(["-i", ioc, "-d", db, "-o", str(out)]) == 2
    assert "Name" in capsys.readouterr().err
    assert not out.exists()
