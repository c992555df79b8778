"""Data models for the Opening Drill Trainer."""

from dataclasses import dataclass, field

import chess


@dataclass(frozen=True)
class Variation:
    """One named line inside an opening family."""

    name: str
    moves: tuple[str, ...] = ()
    explanation: str | None = None


@dataclass(frozen=True)
class OpeningFamily:
    """Named opening with its practice lines, in catalog order."""

    name: str
    eco_code: str = ""
    description: str = ""
    default_color: chess.Color = chess.WHITE
    variations: tuple[Variation, ...] = ()


@dataclass
class TrieNode:
    """Position reached by one specific move sequence from the start."""

    move: str = ""
    children: dict[str, "TrieNode"] = field(default_factory=dict)
    position_id: str | None = None
    is_terminal: bool = False
    variation_name: str | None = None
    explanation: str | None = None


@dataclass(frozen=True)
class BookTree:
    """Compiled book for one family (or one of its variations). Read-only once built."""

    root: TrieNode
    family_name: str = ""
    variation_index: int | None = None


@dataclass(frozen=True)
class PositionInfo:
    variation_name: str | None = None
    explanation: str | None = None


@dataclass
class PracticeSessionState:
    """Mutable drill progress, owned by a single PracticeSession."""

    player_color: chess.Color = chess.WHITE
    moves_played: list[str] = field(default_factory=list)
    mistakes: int = 0
    corrects: int = 0
    current_variation: str | None = None
    current_explanation: str | None = None
    completed: bool = False
    last_move_correct: bool | None = None
    showing_hint: bool = False
    error: str | None = None
