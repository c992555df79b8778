#!/usr/bin/env python3
"""
Terminal drill — practice an opening family against the book

Moves are typed in SAN ("Nf3") or UCI ("g1f3"). Commands: hint, restart, quit.

Usage:
  python drill.py --family "Italian Game"
  python drill.py --family "Sicilian Defense" --color black --variation 2
  TRAINER_OPPONENT_DELAY=0 python drill.py --family "London System"
"""

import argparse
import asyncio
import sys
from pathlib import Path

import chess

sys.path.insert(0, str(Path(__file__).resolve().parent))
from catalog import CATALOG_PATH, color_name, load_for_cli, parse_color
from session import OPPONENT_DELAY, MoveOutcome, PracticeSession, SessionPhase

FEEDBACK = {
    MoveOutcome.CORRECT: "Correct!",
    MoveOutcome.INCORRECT: "Incorrect move, try again (or type 'hint').",
    MoveOutcome.ILLEGAL: "Illegal move.",
    MoveOutcome.NOT_YOUR_TURN: "Wait for your opponent.",
}


def render(session: PracticeSession) -> str:
    board = chess.Board(session.engine.fen)
    lines = [board.unicode(orientation=session.state.player_color, empty_square=".")]
    history = session.engine.history
    if history:
        played, total = session.progress()
        lines.append(f"Moves ({played}/{total}): " + " ".join(history))
    if session.state.current_variation:
        lines.append(f"Line: {session.state.current_variation}")
    return "\n".join(lines)


async def wait_for_player(session: PracticeSession) -> None:
    while session.phase is SessionPhase.AWAITING_OPPONENT_MOVE:
        await asyncio.sleep(0.05)


async def run_drill(session: PracticeSession) -> SessionPhase:
    session.start()
    print(f"{session.family.eco_code}: {session.family.name} (playing {color_name(session.state.player_color)})")
    while True:
        await wait_for_player(session)
        print()
        print(render(session))
        if session.phase is SessionPhase.FAILED:
            print(f"Error: the book cannot continue: {session.state.error}", file=sys.stderr)
            return session.phase
        if session.phase is SessionPhase.COMPLETE:
            state = session.state
            print(f"Opening complete! {state.corrects} correct, {state.mistakes} mistakes.")
            if state.current_explanation:
                print(state.current_explanation)
            return session.phase

        text = (await asyncio.to_thread(input, "Your move: ")).strip()
        if text in ("quit", "exit"):
            session.close()
            return session.phase
        if text == "restart":
            session.restart()
            continue
        if text == "hint":
            squares = session.show_hint()
            print("Move a piece from: " + ", ".join(sorted(squares)) if squares else "No hint available.")
            if session.state.current_explanation:
                print(session.state.current_explanation)
            continue
        if not text:
            continue
        print(FEEDBACK[session.player_move(text)])


def main():
    parser = argparse.ArgumentParser(description="Practice an opening against the book")
    parser.add_argument("--family", required=True, help="Opening family name")
    parser.add_argument("--color", default=None, help="white or black (default: the family's color)")
    parser.add_argument("--variation", type=int, default=None, help="Practice a single variation by index")
    parser.add_argument("--catalog", default=CATALOG_PATH)
    parser.add_argument("--delay", type=float, default=OPPONENT_DELAY, help="Opponent thinking time (seconds)")
    args = parser.parse_args()

    catalog = load_for_cli(args.catalog)
    try:
        family = catalog.find(args.family)
    except KeyError:
        print(f"Error: unknown family {args.family!r}. Known: {', '.join(catalog.names())}", file=sys.stderr)
        sys.exit(1)
    if args.variation is not None and not 0 <= args.variation < len(family.variations):
        print(f"Error: {family.name} has {len(family.variations)} variations", file=sys.stderr)
        sys.exit(1)

    color = parse_color(args.color) if args.color else None
    session = PracticeSession(family, color, args.variation, opponent_delay=args.delay)
    try:
        phase = asyncio.run(run_drill(session))
    except (KeyboardInterrupt, EOFError):
        session.close()
        return
    if phase is SessionPhase.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
