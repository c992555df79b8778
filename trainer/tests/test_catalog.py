"""Tests for catalog.py"""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import chess
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from catalog import (
    DEFAULT_CATALOG_PATH,
    Catalog,
    color_name,
    get_catalog,
    load_for_cli,
    parse_color,
    parse_pgn_moves,
)


def test_parse_pgn_moves_simple():
    assert parse_pgn_moves("1. e4") == ["e4"]
    assert parse_pgn_moves("1. Nh3") == ["Nh3"]


def test_parse_pgn_moves_sequence():
    assert parse_pgn_moves("1. e4 e5 2. Nf3 Nc6") == ["e4", "e5", "Nf3", "Nc6"]


def test_parse_pgn_moves_compact_numbers_and_result():
    assert parse_pgn_moves("1.d4 Nf6 2.c4 e6 3.Nc3 Bb4 *") == ["d4", "Nf6", "c4", "e6", "Nc3", "Bb4"]


def test_parse_pgn_moves_black_move_number():
    assert parse_pgn_moves("3... Bg4 4. h3") == ["Bg4", "h3"]


def test_parse_color():
    assert parse_color("white") == chess.WHITE
    assert parse_color("Black") == chess.BLACK
    with pytest.raises(ValueError):
        parse_color("green")


def test_color_name_round_trip():
    assert color_name(parse_color("black")) == "black"
    assert color_name(chess.WHITE) == "white"


def make_catalog_data():
    return {
        "version": 1,
        "families": [
            {
                "name": "Italian Game",
                "eco_code": "C50",
                "description": "Bc4 against f7.",
                "default_color": "white",
                "variations": [
                    {"name": "Giuoco Piano", "moves": ["e4", "e5", "Nf3", "Nc6", "Bc4", "Bc5"]},
                    {"name": "Two Knights", "pgn": "1. e4 e5 2. Nf3 Nc6 3. Bc4 Nf6", "explanation": "Active."},
                ],
            },
            {
                "name": "French Defense",
                "eco_code": "C00",
                "default_color": "black",
                "variations": [{"name": "Advance", "moves": "e4 e6 d4 d5 e5"}],
            },
        ],
    }


def test_catalog_from_dict():
    catalog = Catalog.from_dict(make_catalog_data())
    assert catalog.names() == ["Italian Game", "French Defense"]

    italian = catalog.families[0]
    assert italian.eco_code == "C50"
    assert italian.default_color == chess.WHITE
    assert italian.variations[0].explanation is None
    assert italian.variations[1].moves == ("e4", "e5", "Nf3", "Nc6", "Bc4", "Nf6")
    assert catalog.families[1].default_color == chess.BLACK
    assert catalog.families[1].variations[0].moves == ("e4", "e6", "d4", "d5", "e5")


def test_catalog_is_hashable_for_book_cache():
    catalog = Catalog.from_dict(make_catalog_data())
    assert hash(catalog.families[0]) == hash(Catalog.from_dict(make_catalog_data()).families[0])


def test_variation_without_moves_is_rejected():
    data = {"families": [{"name": "Bad", "variations": [{"name": "?"}]}]}
    with pytest.raises(ValueError):
        Catalog.from_dict(data)


def test_find_is_case_insensitive():
    catalog = Catalog.from_dict(make_catalog_data())
    assert catalog.find("french defense").eco_code == "C00"
    with pytest.raises(KeyError):
        catalog.find("Dutch Defense")


def test_search_matches_name_eco_and_variation():
    catalog = Catalog.from_dict(make_catalog_data())
    assert [f.name for f in catalog.search("ital")] == ["Italian Game"]
    assert [f.name for f in catalog.search("c00")] == ["French Defense"]
    assert [f.name for f in catalog.search("knights")] == ["Italian Game"]
    assert len(catalog.search("  ")) == 2
    assert catalog.search("zzz") == []


def test_load_from_file(tmp_path):
    path = tmp_path / "openings.json"
    path.write_text(json.dumps(make_catalog_data()))
    catalog = Catalog.load(path)
    assert len(catalog.families) == 2


def test_bundled_catalog_loads_once():
    assert get_catalog() is get_catalog()
    assert Path(DEFAULT_CATALOG_PATH).exists()
    catalog = Catalog.load(DEFAULT_CATALOG_PATH)
    assert "Italian Game" in catalog.names()
    assert catalog.find("Sicilian Defense").default_color == chess.BLACK
    assert all(v.moves for f in catalog.families for v in f.variations)


def test_missing_catalog_exits_with_message(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        load_for_cli(tmp_path / "nowhere.json")
    assert exc.value.code == 1
    assert "TRAINER_CATALOG" in capsys.readouterr().err


def test_drill_cli_names_known_families(tmp_path, capsys):
    import drill

    path = tmp_path / "openings.json"
    path.write_text(json.dumps(make_catalog_data()))
    argv = ["drill.py", "--family", "Dutch Defense", "--catalog", str(path)]
    with patch.object(sys, "argv", argv), pytest.raises(SystemExit):
        drill.main()
    assert "Italian Game, French Defense" in capsys.readouterr().err
