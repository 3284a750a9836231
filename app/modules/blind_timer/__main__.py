"""
Run a blind schedule in the terminal.

    python -m app.modules.blind_timer                 # default ten levels
    python -m app.modules.blind_timer --preset my.json
    python -m app.modules.blind_timer --interval 0.01 # fast-forward

A preset file holds the same level list the API stores:
``[{"smallBlind": 25, "bigBlind": 50, "ante": 0, "durationMinutes": 15}, ...]``.
"""
import argparse
import asyncio
import json
import sys
from typing import List

from app.modules.blind_timer.timer import BlindLevel, BlindTimer, BlindTimerError, DEFAULT_LEVELS


def load_levels(path: str) -> List[BlindLevel]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("levels", [])
    return [
        BlindLevel(
            small_blind=int(level["smallBlind"]),
            big_blind=int(level["bigBlind"]),
            ante=int(level.get("ante", 0)),
            duration_minutes=int(level["durationMinutes"]),
        )
        for level in raw
    ]


def format_clock(seconds: int) -> str:
    minutes, seconds = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{seconds:02d}"


def announce(timer: BlindTimer) -> None:
    level = timer.current_level
    line = (f"==> Level {timer.level_index + 1}/{len(timer.levels)}: {level.describe()} "
            f"({format_clock(timer.remaining_seconds)})")
    upcoming = timer.upcoming_level
    if upcoming is not None:
        line += f", next {upcoming.describe()}"
    print(line, flush=True)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Poker blind level countdown")
    ap.add_argument("--preset", help="JSON file with the level list (default: built-in schedule)")
    ap.add_argument("--interval", type=float, default=1.0,
                    help="Seconds per tick; lower it to fast-forward (default: 1.0)")
    ap.add_argument("--start-level", type=int, default=1, help="1-based level to start from")
    args = ap.parse_args(argv)

    try:
        levels = load_levels(args.preset) if args.preset else DEFAULT_LEVELS
        timer = BlindTimer(
            levels,
            on_level_change=lambda i, level: announce(timer),
            on_finish=lambda: print("==> Schedule finished", flush=True),
        )
        if args.start_level != 1:
            timer.go_to_level(args.start_level - 1)
    except (OSError, ValueError, KeyError, TypeError, AttributeError, BlindTimerError) as e:
        print(f"!! Cannot load blind schedule: {e}", file=sys.stderr, flush=True)
        return 2

    if args.start_level == 1:
        announce(timer)
    try:
        asyncio.run(timer.run(args.interval))
    except KeyboardInterrupt:
        print(f"\n==> Stopped at level {timer.level_index + 1} with {format_clock(timer.remaining_seconds)} left",
              flush=True)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
