"""
Practice session: turn-taking drill against a scripted book opponent.

The session alternates between waiting for the book to answer (after a
short scheduled delay) and waiting for the player's move. Player moves are
checked against the book tree; off-book moves are taken back and counted
as mistakes.

Scheduling goes through any object with call_later(delay, callback)
returning a handle with cancel(). By default that is the running asyncio
event loop.

If the book cannot be followed from inside that callback (a scripted move
the engine refuses, or a history that left the tree) the session moves to
FAILED with the message in state.error, and the exception still propagates.
"""

import asyncio
import os
import sys
from enum import Enum
from pathlib import Path

import chess

sys.path.insert(0, str(Path(__file__).resolve().parent))
from book import (
    DivergedHistory,
    find_node,
    get_book,
    get_position_info,
    get_valid_moves,
    is_end_of_line,
    pick_random_move,
    remaining_depth,
)
from catalog import color_name
from models import OpeningFamily, PracticeSessionState, TrieNode
from rules import GameStatus, RulesEngine

OPPONENT_DELAY = float(os.environ.get("TRAINER_OPPONENT_DELAY", "0.5"))  # seconds


class SessionPhase(Enum):
    AWAITING_OPPONENT_MOVE = "awaiting_opponent_move"
    AWAITING_PLAYER_MOVE = "awaiting_player_move"
    COMPLETE = "complete"
    FAILED = "failed"


class MoveOutcome(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    ILLEGAL = "illegal"
    NOT_YOUR_TURN = "not_your_turn"


class BookMoveRejected(RuntimeError):
    """The rules engine refused a move scripted by the book."""


def side_to_move(moves_played: list[str]) -> chess.Color:
    return chess.WHITE if len(moves_played) % 2 == 0 else chess.BLACK


class PracticeSession:
    def __init__(
        self,
        family: OpeningFamily,
        player_color: chess.Color | None = None,
        variation_index: int | None = None,
        *,
        engine: RulesEngine | None = None,
        scheduler=None,
        rng=None,
        opponent_delay: float = OPPONENT_DELAY,
    ):
        if player_color is None:
            player_color = family.default_color
        self.family = family
        self.variation_index = variation_index
        self.tree = get_book(family, variation_index)
        self.engine = engine or RulesEngine()
        self.scheduler = scheduler
        self.rng = rng
        self.opponent_delay = opponent_delay
        self.state = PracticeSessionState(player_color=player_color)
        self.phase: SessionPhase | None = None
        self._pending = None

    @property
    def turn(self) -> chess.Color:
        return side_to_move(self.state.moves_played)

    @property
    def is_player_turn(self) -> bool:
        return self.phase is SessionPhase.AWAITING_PLAYER_MOVE

    @property
    def has_pending_move(self) -> bool:
        return self._pending is not None

    def start(self) -> None:
        """Begin (or begin again) from the initial position."""
        self.cancel_pending()
        self.engine.reset()
        self.state = PracticeSessionState(player_color=self.state.player_color)
        if not self.tree.root.children:
            self._complete()
            return
        self._advance()

    def restart(self) -> None:
        self.start()

    def change_color(self, color: chess.Color) -> None:
        self.cancel_pending()
        self.state.player_color = color
        self.start()

    def change_family(
        self,
        family: OpeningFamily,
        variation_index: int | None = None,
        color: chess.Color | None = None,
    ) -> None:
        self.cancel_pending()
        if color is not None:
            self.state.player_color = color
        self.tree = get_book(family, variation_index)
        self.family = family
        self.variation_index = variation_index
        self.start()

    def close(self) -> None:
        self.cancel_pending()

    def cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def player_move(self, move: str) -> MoveOutcome:
        """Handle a move from the board. SAN or UCI."""
        if self.phase is not SessionPhase.AWAITING_PLAYER_MOVE:
            return MoveOutcome.NOT_YOUR_TURN
        self._require_node()
        book_moves = self._book_moves()

        applied = self.engine.apply(move)
        if applied is None:
            return MoveOutcome.ILLEGAL

        book_move = book_moves.get(applied.uci)
        if book_move is None:
            self.engine.undo()
            self.state.mistakes += 1
            self.state.last_move_correct = False
            return MoveOutcome.INCORRECT

        self.state.corrects += 1
        self.state.last_move_correct = True
        self.state.showing_hint = False
        self._record(book_move)
        self._after_move()
        return MoveOutcome.CORRECT

    def hint_squares(self) -> set[str]:
        """Origin squares of the book moves available to the player."""
        if self.phase is not SessionPhase.AWAITING_PLAYER_MOVE:
            return set()
        book_moves = self._book_moves()
        return {legal.from_square for legal in self.engine.legal_moves() if legal.uci in book_moves}

    def show_hint(self) -> set[str]:
        squares = self.hint_squares()
        if squares:
            self.state.showing_hint = True
        return squares

    def progress(self) -> tuple[int, int]:
        """(plies played, plies in the longest book line through this position)."""
        played = len(self.state.moves_played)
        node = find_node(self.tree, self.state.moves_played)
        if node is None:
            return played, played
        return played, played + remaining_depth(node)

    def snapshot(self) -> dict:
        state = self.state
        played, total = self.progress()
        return {
            "family": self.family.name,
            "eco_code": self.family.eco_code,
            "variation_index": self.variation_index,
            "player_color": color_name(state.player_color),
            "phase": self.phase.value if self.phase else None,
            "turn": color_name(self.turn),
            "fen": self.engine.fen,
            "game_status": self.engine.status().value,
            "moves_played": list(state.moves_played),
            "valid_move_count": len(get_valid_moves(self.tree, state.moves_played)),
            "progress": {"played": played, "total": total},
            "mistakes": state.mistakes,
            "corrects": state.corrects,
            "current_variation": state.current_variation,
            "current_explanation": state.current_explanation,
            "completed": state.completed,
            "last_move_correct": state.last_move_correct,
            "showing_hint": state.showing_hint,
            "hint_squares": sorted(self.hint_squares()) if state.showing_hint else [],
            "error": state.error,
        }

    def _book_moves(self) -> dict[str, str]:
        """Book continuations that are legal here, keyed by UCI."""
        moves = {}
        for token in get_valid_moves(self.tree, self.state.moves_played):
            uci = self.engine.to_uci(token)
            if uci is not None:
                moves.setdefault(uci, token)
        return moves

    def _require_node(self) -> TrieNode:
        node = find_node(self.tree, self.state.moves_played)
        if node is None:
            raise DivergedHistory(
                f"{self.family.name}: moves {self.state.moves_played} are not a path in the book"
            )
        return node

    def _advance(self) -> None:
        if self.turn == self.state.player_color:
            self.phase = SessionPhase.AWAITING_PLAYER_MOVE
        else:
            self.phase = SessionPhase.AWAITING_OPPONENT_MOVE
            self._schedule_opponent_move()

    def _schedule_opponent_move(self) -> None:
        scheduler = self.scheduler or asyncio.get_running_loop()
        self._pending = scheduler.call_later(self.opponent_delay, self._play_opponent_move)

    def _play_opponent_move(self) -> None:
        self._pending = None
        if self.phase is not SessionPhase.AWAITING_OPPONENT_MOVE:
            return
        # Failures land in state.error and the FAILED phase as well as propagating.
        try:
            self._reply_from_book()
        except (DivergedHistory, BookMoveRejected) as e:
            self._fail(str(e))
            raise

    def _reply_from_book(self) -> None:
        self._require_node()
        move = pick_random_move(self.tree, self.state.moves_played, self.rng)
        if move is None:
            self._complete()
            return
        if self.engine.apply(move) is None:
            raise BookMoveRejected(
                f"{self.family.name}: book move {move} is illegal after {self.state.moves_played}"
            )
        self._record(move)
        self._after_move()

    def _record(self, move: str) -> None:
        self.state.moves_played.append(move)
        info = get_position_info(self.tree, self.state.moves_played)
        if info is not None:
            self.state.current_variation = info.variation_name
            self.state.current_explanation = info.explanation

    def _after_move(self) -> None:
        self._require_node()
        game_over = self.engine.status() is not GameStatus.ONGOING
        if game_over or is_end_of_line(self.tree, self.state.moves_played):
            self._complete()
        else:
            self._advance()

    def _complete(self) -> None:
        self.cancel_pending()
        self.phase = SessionPhase.COMPLETE
        self.state.completed = True
        self.state.showing_hint = False

    def _fail(self, message: str) -> None:
        self.cancel_pending()
        self.phase = SessionPhase.FAILED
        self.state.error = message
        self.state.showing_hint = False
        print(f"Error: {message}", file=sys.stderr)
