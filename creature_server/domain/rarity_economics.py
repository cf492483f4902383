"""Milestone ritual economics, keyed by rarity and the level being left.

Rule of thumb (same as the rest of ``domain``):
- OK: lookup tables, pure calculations, random draws from an injected generator.
- Not OK: touching DB sessions, Redis, FastAPI, datetime.now(), etc.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Protocol

MAX_LEVEL = 40
MILESTONE_LEVELS = (10, 20, 30)
PROGRESS_COMPLETE = 100


class Rarity(str, Enum):
    common = "common"
    rare = "rare"
    epic = "epic"
    legendary = "legendary"
    elite = "elite"


class RandomSource(Protocol):
    """Anything with numpy's ``Generator.integers`` signature."""

    def integers(self, low, high=None, size=None, dtype=None, endpoint=False): ...


@dataclass(frozen=True)
class ProgressPolicy:
    opening_progress: int
    draw_min: int
    draw_max: int
    # Round whose draw is forced to close the ritual. Round 1 is the free opening.
    # None: the draw range alone always reaches 100 on round 2.
    final_round: int | None


@dataclass(frozen=True)
class RitualEconomics:
    rarity: Rarity
    from_level: int
    cooldown: timedelta
    first_round_cost: int
    subsequent_round_cost: int
    policy: ProgressPolicy

    @property
    def target_level(self) -> int:
        return self.from_level + 1


# ==============================================================================
# ==== Tables (index 0/1/2 -> from level 10/20/30) =============================
# ==============================================================================
# NOTE: elite cooldowns mirror legendary on purpose until product says otherwise.

_COOLDOWN_MINUTES = {
    Rarity.common: (15, 30, 60),
    Rarity.rare: (30, 60, 90),
    Rarity.epic: (60, 120, 240),
    Rarity.legendary: (240, 480, 1440),
    Rarity.elite: (240, 480, 1440),
}

# Defined for parity with the shop tables; never charged by the ritual.
_FIRST_ROUND_COST = {
    Rarity.common: (100, 200, 300),
    Rarity.rare: (200, 400, 600),
    Rarity.epic: (600, 1200, 1800),
    Rarity.legendary: (1200, 2400, 4800),
    Rarity.elite: (1400, 2800, 4600),
}

_SUBSEQUENT_ROUND_COST = {
    Rarity.common: (30, 60, 90),
    Rarity.rare: (60, 120, 180),
    Rarity.epic: (90, 180, 270),
    Rarity.legendary: (120, 240, 360),
    Rarity.elite: (150, 300, 450),
}

_PROGRESS_POLICY = {
    Rarity.common: ProgressPolicy(opening_progress=50, draw_min=50, draw_max=100, final_round=None),
    Rarity.rare: ProgressPolicy(opening_progress=25, draw_min=25, draw_max=40, final_round=4),
    Rarity.epic: ProgressPolicy(opening_progress=15, draw_min=15, draw_max=25, final_round=8),
    Rarity.legendary: ProgressPolicy(opening_progress=10, draw_min=10, draw_max=15, final_round=10),
    Rarity.elite: ProgressPolicy(opening_progress=10, draw_min=10, draw_max=15, final_round=10),
}


def is_milestone(level: int) -> bool:
    """Return True when leaving ``level`` requires a ritual."""
    return level in MILESTONE_LEVELS


def normalize_rarity(rarity: str | Rarity) -> Rarity:
    """Map a stored rarity string onto the enum, case-insensitively."""
    if isinstance(rarity, Rarity):
        return rarity
    return Rarity(str(rarity).strip().lower())


def ritual_economics(rarity: str | Rarity, from_level: int) -> RitualEconomics:
    """Look up cooldown, costs and progress policy for one milestone.

    Args:
        rarity: Rarity tier of the template.
        from_level: 10, 20 or 30.

    Raises:
        ValueError: ``from_level`` is not a milestone level.
    """
    if not is_milestone(from_level):
        raise ValueError(f"Level {from_level} is not a milestone level")
    tier = normalize_rarity(rarity)
    index = MILESTONE_LEVELS.index(from_level)
    return RitualEconomics(
        rarity=tier,
        from_level=from_level,
        cooldown=timedelta(minutes=_COOLDOWN_MINUTES[tier][index]),
        first_round_cost=_FIRST_ROUND_COST[tier][index],
        subsequent_round_cost=_SUBSEQUENT_ROUND_COST[tier][index],
        policy=_PROGRESS_POLICY[tier],
    )


def increment_range(rarity: str | Rarity, round_index: int, progress: int) -> tuple[int, int]:
    """Closed range the next progress increment is drawn from.

    On the nominal final round the range collapses to exactly what is missing,
    so every ritual terminates.
    """
    policy = _PROGRESS_POLICY[normalize_rarity(rarity)]
    if policy.final_round is not None and round_index >= policy.final_round:
        remaining = max(PROGRESS_COMPLETE - progress, 0)
        return remaining, remaining
    return policy.draw_min, policy.draw_max


def draw_increment(
    rarity: str | Rarity, round_index: int, progress: int, rng: RandomSource
) -> int:
    """Draw the progress increment for ``round_index`` (2 is the first paid round)."""
    low, high = increment_range(rarity, round_index, progress)
    if low == high:
        return low
    return int(rng.integers(low, high, endpoint=True))
