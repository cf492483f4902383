"""Per-level stat resolution for creature templates.

Stats for a level come from the catalog row when one exists. Legacy templates
are missing rows, so the row is synthesized from the template's growth rate.
"""

import math

from creature_server.domain.errors import LevelStatsNotFound
from creature_server.domain.rarity_economics import MAX_LEVEL, Rarity, normalize_rarity

GOLD_GROWTH_PER_LEVEL = 1.3
ARCANE_ENERGY_GROWTH_PER_LEVEL = 2

DEFAULT_GROWTH_PERCENT = {
    Rarity.common: 3,
    Rarity.rare: 3,
    Rarity.epic: 4,
    Rarity.legendary: 4,
    Rarity.elite: 5,
}

# (gold, arcane_energy) used when the template declares zero.
DEFAULT_YIELDS = {
    Rarity.common: (77, 99),
    Rarity.rare: (125, 212),
    Rarity.epic: (415, 403),
    Rarity.legendary: (1001, 612),
    Rarity.elite: (1503, 843),
}

STAT_FIELDS = (
    "attack",
    "health",
    "speed",
    "armor",
    "critical_chance",
    "critical_damage",
    "gold",
    "arcane_energy",
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def growth_percent(template) -> int:
    """Declared growth rate, or the rarity default."""
    if template.growth_percent:
        return int(template.growth_percent)
    return DEFAULT_GROWTH_PERCENT[normalize_rarity(template.rarity)]


def base_yields(template) -> tuple[int, int]:
    default_gold, default_arcane = DEFAULT_YIELDS[normalize_rarity(template.rarity)]
    gold = template.gold_coins or default_gold
    arcane_energy = template.arcane_energy or default_arcane
    return gold, arcane_energy


def synthesize_level_stats(template, level: int) -> dict:
    """Build the stat row for ``level`` from the template's base values.

    Attack and health compound by the growth percentage, rounding at every
    level. Gold grows 30% per level and arcane energy doubles.
    """
    if level < 1 or level > MAX_LEVEL:
        raise LevelStatsNotFound(template.template_key, level)

    rate = growth_percent(template) / 100
    attack = template.base_attack
    health = template.base_health
    for _ in range(1, level):
        attack += _round_half_up(attack * rate)
        health += _round_half_up(health * rate)

    gold, arcane_energy = base_yields(template)
    if level > 1:
        gold = _round_half_up(gold * GOLD_GROWTH_PER_LEVEL ** (level - 1))
        arcane_energy = arcane_energy * ARCANE_ENERGY_GROWTH_PER_LEVEL ** (level - 1)

    return {
        "level": level,
        "attack": attack,
        "health": health,
        "speed": template.speed,
        "armor": template.armor,
        "critical_chance": template.critical_chance,
        "critical_damage": template.critical_damage,
        "gold": gold,
        "arcane_energy": arcane_energy,
    }


def resolve_level_stats(template, level: int, row=None) -> dict:
    """Return the stats for ``level``.

    Args:
        template: Catalog template (ORM row or schema).
        level: 1..40.
        row: Explicit catalog row for this level, if the catalog has one.

    Raises:
        LevelStatsNotFound: ``level`` is outside 1..40.
    """
    if level < 1 or level > MAX_LEVEL:
        raise LevelStatsNotFound(template.template_key, level)
    if row is None:
        return synthesize_level_stats(template, level)

    gold, arcane_energy = base_yields(template)
    # Zero on the row means "use the template default".
    return {
        "level": level,
        "attack": row.attack,
        "health": row.health,
        "speed": row.speed or template.speed,
        "armor": row.armor or template.armor,
        "critical_chance": row.critical_chance or template.critical_chance,
        "critical_damage": row.critical_damage or template.critical_damage,
        "gold": row.gold or gold,
        "arcane_energy": row.arcane_energy or arcane_energy,
    }


def generate_level_table(template) -> list[dict]:
    """Synthesize rows for every level, used when seeding the catalog."""
    return [synthesize_level_stats(template, level) for level in range(1, MAX_LEVEL + 1)]
