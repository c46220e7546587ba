"""Game clock parsing and the in-game alert window."""

import re
from typing import Optional

from ..api.models import Game

CLOCK_PATTERN = re.compile(r"(\d+):(\d+)")


def parse_time_remaining(time_remaining: Optional[str]) -> int:
    """Parse a "M:SS" or "MM:SS" clock into seconds.

    Missing or unparseable clocks count as zero seconds.
    """
    if not time_remaining:
        return 0

    match = CLOCK_PATTERN.search(time_remaining)
    if not match:
        return 0

    return int(match.group(1)) * 60 + int(match.group(2))


def is_target_window(
    game: Game,
    target_period: int = 3,
    target_seconds: int = 7 * 60,
    tolerance_seconds: int = 30,
) -> bool:
    """Check if a game is at the alert point (3rd quarter, ~7:00 left).

    Both ends of the tolerance band are inclusive.
    """
    if game.scores is None or game.scores.period != target_period:
        return False

    clock = game.scores.time_remaining
    if not clock or not CLOCK_PATTERN.search(clock):
        return False

    remaining = parse_time_remaining(clock)
    return target_seconds - tolerance_seconds <= remaining <= target_seconds + tolerance_seconds
