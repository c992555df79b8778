"""
Book tree: compile opening variations into a shared prefix tree and query it.

Every variation of a family is replayed from the start position; variations
that agree on their first k moves share the same k nodes. Queries follow a
move history from the root one edge at a time.
"""

import random
import sys
from functools import lru_cache
from pathlib import Path
from typing import Iterator

import chess

sys.path.insert(0, str(Path(__file__).resolve().parent))
from models import BookTree, OpeningFamily, PositionInfo, TrieNode
from rules import MOVE_ERRORS


class DivergedHistory(RuntimeError):
    """A session's move history no longer corresponds to any path in its book."""


def strip_annotations(move: str) -> str:
    """Drop trailing check/mate markers: 'Bb4+' -> 'Bb4'."""
    return move.rstrip("+#")


def build_tree(
    family: OpeningFamily,
    variation_index: int | None = None,
    *,
    with_positions: bool = True,
) -> BookTree:
    """
    Compile a family's variations into one BookTree.

    If variation_index is given only that variation is compiled. When two
    variations end on the same node the first one processed keeps its name
    and explanation.
    """
    if variation_index is not None:
        variations = [family.variations[variation_index]]
    else:
        variations = list(family.variations)

    root = TrieNode(position_id=chess.STARTING_FEN if with_positions else None)

    for variation in variations:
        if not variation.moves:
            print(f"Warning: skip empty variation {variation.name!r} in {family.name}", file=sys.stderr)
            continue

        board = chess.Board() if with_positions else None
        node = root
        for san in variation.moves:
            child = node.children.get(san)
            if child is None:
                child = TrieNode(move=san)
                node.children[san] = child
            if board is not None:
                try:
                    board.push_san(san)
                    if child.position_id is None:
                        child.position_id = board.fen()
                except MOVE_ERRORS as e:
                    print(f"Warning: invalid move {san} in {family.name}: {variation.name}: {e}",
                          file=sys.stderr)
                    board = None
            node = child

        if not node.is_terminal:
            node.is_terminal = True
            node.variation_name = variation.name
            node.explanation = variation.explanation

    return BookTree(root=root, family_name=family.name, variation_index=variation_index)


@lru_cache(maxsize=128)
def get_book(family: OpeningFamily, variation_index: int | None = None) -> BookTree:
    """Shared, memoized tree for a family/variation selection."""
    return build_tree(family, variation_index)


def find_node(tree: BookTree, history: list[str]) -> TrieNode | None:
    node = tree.root
    for move in history:
        node = node.children.get(move)
        if node is None:
            return None
    return node


def get_valid_moves(tree: BookTree, history: list[str]) -> list[str]:
    node = find_node(tree, history)
    if node is None:
        return []
    return list(node.children)


def match_book_move(tree: BookTree, history: list[str], candidate: str) -> str | None:
    """The book's spelling of candidate, ignoring +/# markers, or None."""
    wanted = strip_annotations(candidate)
    for move in get_valid_moves(tree, history):
        if strip_annotations(move) == wanted:
            return move
    return None


def is_valid_move(tree: BookTree, history: list[str], candidate: str) -> bool:
    return match_book_move(tree, history, candidate) is not None


def pick_random_move(tree: BookTree, history: list[str], rng=None) -> str | None:
    """Uniform pick among the book continuations. rng needs a .choice() method."""
    moves = get_valid_moves(tree, history)
    if not moves:
        return None
    return (rng or random).choice(moves)


def is_end_of_line(tree: BookTree, history: list[str]) -> bool:
    return not get_valid_moves(tree, history)


def get_position_info(tree: BookTree, history: list[str]) -> PositionInfo | None:
    node = find_node(tree, history)
    if node is None:
        return None
    if node.variation_name or node.explanation:
        return PositionInfo(variation_name=node.variation_name, explanation=node.explanation)
    return None


def iter_lines(tree: BookTree) -> Iterator[tuple[list[str], TrieNode]]:
    """Yield (moves, node) for every terminal node, depth-first."""
    stack = [([], tree.root)]
    while stack:
        moves, node = stack.pop()
        if node.is_terminal:
            yield moves, node
        for san, child in reversed(list(node.children.items())):
            stack.append((moves + [san], child))


def remaining_depth(node: TrieNode) -> int:
    """Plies along the longest book line below node."""
    depth = 0
    stack = [(node, 0)]
    while stack:
        current, d = stack.pop()
        depth = max(depth, d)
        for child in current.children.values():
            stack.append((child, d + 1))
    return depth
