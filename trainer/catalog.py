#!/usr/bin/env python3
"""
Opening Catalog

Read-only collection of opening families (metadata + ordered variations),
produced offline and loaded once per process.

Usage:
  python catalog.py
  python catalog.py --search sicilian
  TRAINER_CATALOG=my_openings.json python catalog.py
"""

import argparse
import json
import os
import re
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import chess

sys.path.insert(0, str(Path(__file__).resolve().parent))
from models import OpeningFamily, Variation

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "openings.json"
CATALOG_PATH = os.environ.get("TRAINER_CATALOG", str(DEFAULT_CATALOG_PATH))

COLORS = {"white": chess.WHITE, "black": chess.BLACK}


def parse_color(name: str) -> chess.Color:
    """'white' / 'black' (any case) -> chess.WHITE / chess.BLACK."""
    key = (name or "").strip().lower()
    if key not in COLORS:
        raise ValueError(f"Unknown color: {name!r}")
    return COLORS[key]


def color_name(color: chess.Color) -> str:
    return "white" if color == chess.WHITE else "black"


def parse_pgn_moves(pgn: str) -> list[str]:
    """
    Parse PGN move string (e.g. "1. e4 e5 2. Nf3 Nc6") into list of SAN moves.
    """
    moves = []
    for token in pgn.split():
        token = token.strip()
        if not token:
            continue
        if token.startswith("{") or token.startswith("("):
            continue
        if re.match(r"^\d+\.+$", token):
            continue
        if re.match(r"^\d+\.", token):
            token = re.sub(r"^\d+\.+", "", token)
        if token and token not in ("1-0", "0-1", "1/2-1/2", "*"):
            moves.append(token)
    return moves


def variation_from_dict(data: dict) -> Variation:
    if "moves" in data:
        moves = data["moves"]
        if isinstance(moves, str):
            moves = moves.split()
    elif "pgn" in data:
        moves = parse_pgn_moves(data["pgn"])
    else:
        raise ValueError(f"Variation {data.get('name')!r} has neither 'moves' nor 'pgn'")
    return Variation(
        name=data.get("name", ""),
        moves=tuple(moves),
        explanation=data.get("explanation") or None,
    )


def family_from_dict(data: dict) -> OpeningFamily:
    return OpeningFamily(
        name=data["name"],
        eco_code=data.get("eco_code", ""),
        description=data.get("description", ""),
        default_color=parse_color(data.get("default_color", "white")),
        variations=tuple(variation_from_dict(v) for v in data.get("variations", [])),
    )


@dataclass(frozen=True)
class Catalog:
    """Immutable list of opening families, in authoring order."""

    families: tuple[OpeningFamily, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Catalog":
        return cls(families=tuple(family_from_dict(f) for f in data.get("families", [])))

    @classmethod
    def load(cls, path: str | Path) -> "Catalog":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def names(self) -> list[str]:
        return [f.name for f in self.families]

    def find(self, name: str) -> OpeningFamily:
        """Family by name, case-insensitive. Raises KeyError when missing."""
        wanted = name.strip().lower()
        for family in self.families:
            if family.name.lower() == wanted:
                return family
        raise KeyError(name)

    def search(self, query: str) -> list[OpeningFamily]:
        """Families whose name, ECO code or any variation name contains query."""
        q = query.strip().lower()
        if not q:
            return list(self.families)
        return [
            f for f in self.families
            if q in f.name.lower()
            or q in f.eco_code.lower()
            or any(q in v.name.lower() for v in f.variations)
        ]


def load_for_cli(path: str | Path) -> Catalog:
    """Load a catalog for a command-line tool, exiting with a message when the file is missing."""
    path = Path(path)
    if not path.exists():
        print(f"Error: catalog {path} does not exist. Set TRAINER_CATALOG or install with pip install -e .",
              file=sys.stderr)
        sys.exit(1)
    return Catalog.load(path)


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """Process-wide catalog, loaded from CATALOG_PATH on first use."""
    return Catalog.load(CATALOG_PATH)


def main():
    parser = argparse.ArgumentParser(description="List opening families in the catalog")
    parser.add_argument("--search", default=None, help="Filter by name, ECO code or variation")
    parser.add_argument("--catalog", default=None, help=f"Catalog JSON (default: {CATALOG_PATH})")
    args = parser.parse_args()

    catalog = load_for_cli(args.catalog or CATALOG_PATH)
    families = catalog.search(args.search) if args.search else list(catalog.families)
    for family in families:
        print(f"{family.eco_code:4s} {family.name} ({color_name(family.default_color)}, "
              f"{len(family.variations)} variations)")
        for i, variation in enumerate(family.variations):
            print(f"     [{i}] {variation.name}: {' '.join(variation.moves)}")
    print(f"{len(families)} families.")


if __name__ == "__main__":
    main()
