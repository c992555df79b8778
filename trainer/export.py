#!/usr/bin/env python3
"""
Export CLI — Output a compiled book tree

Formats: json (nested tree), pgn (one game, every branch as a variation)

Usage:
  python export.py --family "Italian Game" --format json --output italian.json
  python export.py --family "Sicilian Defense" --variation 0 --format pgn --output najdorf.pgn
"""

import argparse
import json
import sys
from pathlib import Path

import chess
import chess.pgn

sys.path.insert(0, str(Path(__file__).resolve().parent))
from book import build_tree, iter_lines
from catalog import CATALOG_PATH, color_name, load_for_cli
from models import BookTree, OpeningFamily, TrieNode
from rules import MOVE_ERRORS


def node_to_dict(node: TrieNode) -> dict:
    """Convert a trie node (and its subtree) to plain JSON data."""
    out = {"san": node.move, "fen": node.position_id}
    if node.is_terminal:
        out["variation_name"] = node.variation_name
        if node.explanation:
            out["explanation"] = node.explanation
    out["children"] = [node_to_dict(child) for child in node.children.values()]
    return out


def tree_to_dict(tree: BookTree) -> dict:
    root = node_to_dict(tree.root)
    return {
        "family": tree.family_name,
        "variation_index": tree.variation_index,
        "rootFen": root["fen"],
        "moves": root["children"],
    }


def _add_pgn_node(pgn_node: chess.pgn.GameNode, board: chess.Board, node: TrieNode) -> None:
    """Recursively add book moves as PGN variations. First child is the main line."""
    for i, (san, child) in enumerate(node.children.items()):
        try:
            move = board.parse_san(san)
        except MOVE_ERRORS:
            print(f"Warning: cannot export {san} after {board.fen()}", file=sys.stderr)
            continue

        if i == 0:
            next_node = pgn_node.add_main_variation(move)
        else:
            next_node = pgn_node.add_variation(move)

        if child.is_terminal and child.variation_name:
            next_node.comment = child.variation_name

        board.push(move)
        _add_pgn_node(next_node, board, child)
        board.pop()


def tree_to_pgn(tree: BookTree, family: OpeningFamily) -> chess.pgn.Game:
    game = chess.pgn.Game()
    game.headers["Event"] = family.name
    game.headers["ECO"] = family.eco_code
    game.headers["Site"] = "Opening Drill Trainer"
    game.headers["Result"] = "*"
    if tree.variation_index is not None:
        game.headers["Opening"] = f"{family.name}: {family.variations[tree.variation_index].name}"
    _add_pgn_node(game, chess.Board(), tree.root)
    return game


def export_json(family: OpeningFamily, output_path: Path, variation_index: int | None = None) -> int:
    """Write the nested tree. Returns the number of named lines."""
    tree = build_tree(family, variation_index)
    data = tree_to_dict(tree)
    data["eco"] = family.eco_code
    data["description"] = family.description
    data["color"] = color_name(family.default_color)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return sum(1 for _ in iter_lines(tree))


def export_pgn(family: OpeningFamily, output_path: Path, variation_index: int | None = None) -> int:
    """Write one PGN game holding every line. Returns the number of named lines."""
    tree = build_tree(family, variation_index)
    game = tree_to_pgn(tree, family)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        print(game, file=f, end="\n\n")
    return sum(1 for _ in iter_lines(tree))


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--family", required=True, help="Opening family name")
    parser.add_argument("--format", choices=["json", "pgn"], default="json")
    parser.add_argument("--output", "-o", required=True)
    parser.add_argument("--variation", type=int, default=None, help="Export a single variation by index")
    parser.add_argument("--catalog", default=CATALOG_PATH)
    args = parser.parse_args()

    catalog = load_for_cli(args.catalog)
    try:
        family = catalog.find(args.family)
    except KeyError:
        print(f"Error: unknown family {args.family!r}", file=sys.stderr)
        sys.exit(1)

    out = Path(args.output)
    if args.format == "json":
        n = export_json(family, out, args.variation)
        print(f"Exported {n} lines to {out}")
    elif args.format == "pgn":
        n = export_pgn(family, out, args.variation)
        print(f"Exported {n} lines to {out}")


if __name__ == "__main__":
    main()
