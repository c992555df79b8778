"""
Rules engine adapter

Thin wrapper around chess.Board exposing what a drill session needs:
apply a move, undo it, enumerate legal moves with their squares, and
report whether the game is over.
"""

from dataclasses import dataclass
from enum import Enum

import chess

MOVE_ERRORS = (chess.InvalidMoveError, chess.IllegalMoveError, chess.AmbiguousMoveError)


class GameStatus(Enum):
    ONGOING = "ongoing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"


@dataclass(frozen=True)
class AppliedMove:
    san: str
    uci: str
    fen: str


@dataclass(frozen=True)
class LegalMove:
    san: str
    uci: str
    from_square: str
    to_square: str


class RulesEngine:
    """One live position. Not shared between sessions."""

    def __init__(self, fen: str = chess.STARTING_FEN):
        self.start_fen = fen
        self.board = chess.Board(fen)

    @property
    def fen(self) -> str:
        return self.board.fen()

    @property
    def history(self) -> list[str]:
        """SAN of every move played since the start position."""
        replay = chess.Board(self.start_fen)
        sans = []
        for move in self.board.move_stack:
            sans.append(replay.san(move))
            replay.push(move)
        return sans

    def parse(self, move: str) -> chess.Move | None:
        """Parse SAN (preferred) or UCI against the current position."""
        try:
            parsed = self.board.parse_san(move)
        except MOVE_ERRORS:
            try:
                parsed = self.board.parse_uci(move)
            except MOVE_ERRORS:
                return None
        # Null moves ("--", "0000") parse without error
        return parsed or None

    def to_uci(self, move: str) -> str | None:
        """UCI spelling of a SAN or UCI move in the current position, None if illegal."""
        parsed = self.parse(move)
        return parsed.uci() if parsed else None

    def apply(self, move: str) -> AppliedMove | None:
        """Play a move. Returns None when it is not legal here."""
        parsed = self.parse(move)
        if parsed is None:
            return None
        san = self.board.san(parsed)
        self.board.push(parsed)
        return AppliedMove(san=san, uci=parsed.uci(), fen=self.board.fen())

    def undo(self) -> bool:
        if not self.board.move_stack:
            return False
        self.board.pop()
        return True

    def reset(self) -> None:
        self.board = chess.Board(self.start_fen)

    def legal_moves(self) -> list[LegalMove]:
        return [
            LegalMove(
                san=self.board.san(move),
                uci=move.uci(),
                from_square=chess.square_name(move.from_square),
                to_square=chess.square_name(move.to_square),
            )
            for move in self.board.legal_moves
        ]

    def status(self) -> GameStatus:
        """Game-ending conditions that have already occurred. Claimable draws do not count."""
        if self.board.is_checkmate():
            return GameStatus.CHECKMATE
        if self.board.is_stalemate():
            return GameStatus.STALEMATE
        if (
            self.board.is_insufficient_material()
            or self.board.is_seventyfive_moves()
            or self.board.is_fivefold_repetition()
        ):
            return GameStatus.DRAW
        return GameStatus.ONGOING
