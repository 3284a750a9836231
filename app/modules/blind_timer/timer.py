"""
Blind level countdown.

IDLE -> RUNNING <-> PAUSED -> FINISHED. ``tick()`` is driven once per second
by ``run()`` (or by a test calling it directly); each tick takes one second
off the current level and, at zero, moves to the next level at its full
duration or finishes after the last one. Manual navigation is refused while
the clock is running.

Nothing here is persisted: presets store only the level list.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"


class BlindTimerError(Exception):
    pass


@dataclass(frozen=True)
class BlindLevel:
    small_blind: int
    big_blind: int
    ante: int = 0
    duration_minutes: int = 15

    def __post_init__(self):
        if min(self.small_blind, self.big_blind, self.ante) < 0:
            raise ValueError("Blinds and ante must be non-negative")
        if self.duration_minutes < 1:
            raise ValueError("Level duration must be at least one minute")

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    def describe(self) -> str:
        text = f"{self.small_blind}/{self.big_blind}"
        if self.ante:
            text += f" ante {self.ante}"
        return text


DEFAULT_LEVELS: List[BlindLevel] = [
    BlindLevel(25, 50, 0, 15),
    BlindLevel(50, 100, 0, 15),
    BlindLevel(75, 150, 0, 15),
    BlindLevel(100, 200, 25, 15),
    BlindLevel(150, 300, 25, 15),
    BlindLevel(200, 400, 50, 15),
    BlindLevel(300, 600, 75, 15),
    BlindLevel(400, 800, 100, 15),
    BlindLevel(500, 1000, 100, 15),
    BlindLevel(600, 1200, 200, 15),
]


class BlindTimer:
    def __init__(
        self,
        levels: Optional[Iterable[BlindLevel]] = None,
        on_level_change: Optional[Callable[[int, BlindLevel], None]] = None,
        on_finish: Optional[Callable[[], None]] = None,
    ):
        self.on_level_change = on_level_change
        self.on_finish = on_finish
        self.levels: List[BlindLevel] = []
        self.state = TimerState.IDLE
        self.level_index = 0
        self.remaining_seconds = 0
        self.set_levels(DEFAULT_LEVELS if levels is None else levels)

    @property
    def current_level(self) -> Optional[BlindLevel]:
        if self.state is TimerState.FINISHED:
            return None
        return self.levels[self.level_index]

    @property
    def upcoming_level(self) -> Optional[BlindLevel]:
        if self.level_index + 1 < len(self.levels):
            return self.levels[self.level_index + 1]
        return None

    def set_levels(self, levels: Iterable[BlindLevel]) -> None:
        """Replace the schedule; the clock goes back to IDLE on the first level"""
        levels = list(levels)
        if not levels:
            raise BlindTimerError("A blind schedule needs at least one level")
        self.levels = levels
        self.reset()

    def start(self) -> None:
        if self.state is TimerState.FINISHED:
            raise BlindTimerError("Timer has finished; reset it first")
        if self.state is TimerState.PAUSED:
            self.resume()
            return
        self.state = TimerState.RUNNING

    def pause(self) -> None:
        if self.state is not TimerState.RUNNING:
            raise BlindTimerError("Timer is not running")
        self.state = TimerState.PAUSED

    def resume(self) -> None:
        if self.state is not TimerState.PAUSED:
            raise BlindTimerError("Timer is not paused")
        self.state = TimerState.RUNNING

    def reset(self) -> None:
        self.level_index = 0
        self.remaining_seconds = self.levels[0].duration_seconds
        self.state = TimerState.IDLE

    def next_level(self) -> bool:
        if self.level_index + 1 >= len(self.levels):
            self._ensure_stopped()
            return False
        self.go_to_level(self.level_index + 1)
        return True

    def previous_level(self) -> bool:
        if self.level_index == 0:
            self._ensure_stopped()
            return False
        self.go_to_level(self.level_index - 1)
        return True

    def go_to_level(self, index: int) -> None:
        """Jump to ``index`` at its full duration. A finished clock becomes PAUSED there."""
        self._ensure_stopped()
        if not 0 <= index < len(self.levels):
            raise BlindTimerError(f"No level {index + 1} in this schedule")
        self.level_index = index
        self.remaining_seconds = self.levels[index].duration_seconds
        if self.state is TimerState.FINISHED:
            self.state = TimerState.PAUSED
        self._level_changed()

    def tick(self) -> bool:
        """Take one second off the clock; returns False when not running"""
        if self.state is not TimerState.RUNNING:
            return False
        self.remaining_seconds -= 1
        if self.remaining_seconds > 0:
            return True

        if self.level_index + 1 < len(self.levels):
            self.level_index += 1
            self.remaining_seconds = self.levels[self.level_index].duration_seconds
            self._level_changed()
        else:
            self.remaining_seconds = 0
            self.state = TimerState.FINISHED
            logger.info("Blind schedule finished")
            if self.on_finish:
                self.on_finish()
        return True

    async def run(self, interval: float = 1.0) -> None:
        """Tick every ``interval`` seconds until the schedule finishes.

        Starts an idle timer. Pausing leaves the loop waiting; cancelling the
        task stops it at the next sleep.
        """
        if self.state is TimerState.IDLE:
            self.start()
        while self.state is not TimerState.FINISHED:
            await asyncio.sleep(interval)
            self.tick()

    def _ensure_stopped(self) -> None:
        if self.state is TimerState.RUNNING:
            raise BlindTimerError("Pause the timer before changing levels")

    def _level_changed(self) -> None:
        logger.debug(f"Blind level {self.level_index + 1}: {self.levels[self.level_index].describe()}")
        if self.on_level_change:
            self.on_level_change(self.level_index, self.levels[self.level_index])
