"""Integration tests over the bundled catalog"""

import sys
from pathlib import Path

import chess
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from book import build_tree, find_node, get_valid_moves, is_end_of_line
from catalog import DEFAULT_CATALOG_PATH, Catalog
from session import MoveOutcome, PracticeSession, SessionPhase

CATALOG = Catalog.load(DEFAULT_CATALOG_PATH)


@pytest.mark.parametrize("family", CATALOG.families, ids=lambda f: f.name)
def test_every_bundled_variation_reaches_its_name(family):
    tree = build_tree(family, with_positions=False)
    for variation in family.variations:
        node = find_node(tree, list(variation.moves))
        assert node is not None and node.is_terminal
        assert node.variation_name == variation.name


@pytest.mark.parametrize("family", CATALOG.families, ids=lambda f: f.name)
def test_bundled_tree_end_of_line_matches_valid_moves(family):
    tree = build_tree(family, with_positions=False)
    for variation in family.variations:
        moves = list(variation.moves)
        for i in range(len(moves) + 1):
            assert is_end_of_line(tree, moves[:i]) == (get_valid_moves(tree, moves[:i]) == [])


def test_full_drill_of_one_bundled_line(scheduler):
    """Giuoco Piano main line as White: eight player moves, book answers the rest."""
    family = CATALOG.find("Italian Game")
    line = family.variations[0]
    session = PracticeSession(family, chess.WHITE, 0, scheduler=scheduler)
    session.start()

    player_moves = list(line.moves[0::2])
    for move in player_moves:
        scheduler.run_pending()
        assert session.phase is SessionPhase.AWAITING_PLAYER_MOVE
        assert session.player_move(move) is MoveOutcome.CORRECT

    assert session.phase is SessionPhase.COMPLETE
    assert session.state.corrects == len(player_moves) == 8
    assert session.state.moves_played == list(line.moves)
    assert session.state.current_variation == line.name

    board = chess.Board()
    for san in line.moves:
        board.push_san(san)
    assert session.engine.fen == board.fen()
