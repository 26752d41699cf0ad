#!/usr/bin/env python3
"""Quick local race on a virtual clock.

Runs one host-side race against AI opponents without a network or a
real-time loop: the virtual scheduler fast-forwards time, and player
input (taps, trivia answers) is simulated.

Usage:
    python examples/quick_race.py [--mode MODE] [--ai N] [--seed SEED]

Examples:
    python examples/quick_race.py --mode random --ai 5
    python examples/quick_race.py --mode trivia --seed 7 --export
    python examples/quick_race.py --mode buttonMash --track 10
"""

import argparse
import asyncio
import sys
from functools import partial
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from furlong.config import configure_logging, load_config
from furlong.errors import ConfigurationError
from furlong.models import IssuedQuestion, RaceSnapshot
from furlong.output import ConsoleOutput, Exporter
from furlong.questions import OpenTriviaSource
from furlong.session import GameMode, RaceSession, build_local_roster
from furlong.simulation import VirtualScheduler
from furlong.sync import InMemoryRecordStore, RoomSync

MAX_RACE_MS = 15 * 60 * 1000


def main():
    parser = argparse.ArgumentParser(description="Run a headless local horse race")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in GameMode],
        default=GameMode.RANDOM.value,
        help="Game mode (default: random)",
    )
    parser.add_argument(
        "--ai",
        type=int,
        default=3,
        help="Number of AI opponents, up to 10 (default: 3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for a reproducible race",
    )
    parser.add_argument(
        "--track",
        type=int,
        default=6,
        help="Track length in furlongs for button-mash mode (default: 6)",
    )
    parser.add_argument(
        "--tap-interval",
        type=float,
        default=90.0,
        help="Milliseconds between simulated taps in button-mash mode (default: 90)",
    )
    parser.add_argument(
        "--accuracy",
        type=float,
        default=0.6,
        help="Chance a simulated player answers a trivia question correctly (default: 0.6)",
    )
    parser.add_argument(
        "--online",
        action="store_true",
        help="Fetch trivia questions from Open Trivia DB",
    )
    parser.add_argument(
        "--config",
        help="YAML config file (default: $FURLONG_CONFIG or built-in defaults)",
    )
    parser.add_argument(
        "--show-every",
        type=float,
        default=5.0,
        help="Seconds of race time between progress printouts (default: 5)",
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help="Export results to CSV/JSON",
    )
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Output directory for exports (default: output)",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error loading config: {e}")
        return 1
    configure_logging(config.log_level)

    mode = GameMode(args.mode)
    rng = np.random.default_rng(args.seed)
    scheduler = VirtualScheduler()
    roster = build_local_roster("You", args.ai, rng=rng)
    names = {pid: e.name for pid, e in roster.items()}

    print("Furlong Quick Race")
    print("=" * 40)
    print(f"Mode: {mode.value}")
    print(f"Runners: {', '.join(names.values())}")
    print(f"Seed: {args.seed}")
    print()

    # A local room record lets the export include what clients would see
    store = InMemoryRecordStore()
    host_id = next(iter(roster))
    sync = RoomSync(store, "LOCAL", host_id, is_host=True, config=config.sync, scheduler=scheduler)

    history: list[RaceSnapshot] = []
    last_shown = [-float("inf")]

    def on_update(snapshot: RaceSnapshot) -> None:
        history.append(snapshot)
        if snapshot.timestamp_ms - last_shown[0] >= args.show_every * 1000:
            last_shown[0] = snapshot.timestamp_ms
            ConsoleOutput.print_progress(snapshot)

    def on_question(question: IssuedQuestion) -> None:
        print(f"\nQ{question.number}/{question.total}: {question.text}")
        for player_id in roster:
            if rng.random() < args.accuracy:
                answer = question.correct_index
            else:
                wrong = [i for i in range(len(question.options)) if i != question.correct_index]
                answer = wrong[int(rng.integers(len(wrong)))]
            delay = float(rng.uniform(500, question.timeout_ms - 500))
            scheduler.call_later(delay, partial(session.submit_answer, player_id, answer))

    session = RaceSession(
        mode=mode,
        roster=roster,
        config=config,
        scheduler=scheduler,
        rng=rng,
        sync=sync,
        question_source=OpenTriviaSource(config.question_source, rng=rng) if args.online else None,
        track_length=args.track,
        on_update=on_update,
        on_question=on_question,
        on_event=partial(ConsoleOutput.print_events, names=names),
    )

    if mode == GameMode.BUTTON_MASH:
        scheduler.call_every(args.tap_interval, session.tap, name="simulated-taps")

    asyncio.run(session.start())
    finished = scheduler.run_until(lambda: session.is_finished, max_ms=MAX_RACE_MS)
    session.stop()

    if not finished:
        print(f"\nRace did not finish within {MAX_RACE_MS / 60000:.0f} minutes of race time")
        return 1

    ConsoleOutput.print_rankings(session.rankings, session.winner)
    print(f"Race time: {scheduler.now_ms() / 1000:.1f}s")

    if args.export:
        print("\nExporting results...")
        exporter = Exporter(output_dir=args.output_dir)
        files = exporter.export_all(
            session.rankings,
            session.winner,
            history=history,
            metadata={"mode": mode.value, "seed": args.seed, "room": sync.read_room()},
            prefix=mode.value,
        )
        for fmt, path in files.items():
            print(f"  {fmt}: {path}")

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
