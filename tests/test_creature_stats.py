from types import SimpleNamespace

import pytest
from uuid6 import uuid7

from creature_server.domain.creature_stats import (
    generate_level_table,
    growth_percent,
    resolve_level_stats,
    synthesize_level_stats,
)
from creature_server.domain.errors import LevelStatsNotFound
from creature_server.models.schema_models import CreatureTemplateSchema


def make_template(**fields) -> CreatureTemplateSchema:
    data = {
        "template_id": uuid7(),
        "template_key": "goblin",
        "name": "Goblin",
        "rarity": "common",
        "base_attack": 100,
        "base_health": 25,
        "growth_percent": 10,
    }
    data.update(fields)
    return CreatureTemplateSchema(**data)


def test_level_one_uses_base_values():
    stats = synthesize_level_stats(make_template(), 1)
    assert stats["attack"] == 100
    assert stats["health"] == 25
    assert stats["speed"] == 100
    assert stats["gold"] == 77
    assert stats["arcane_energy"] == 99


def test_growth_compounds_with_half_up_rounding():
    template = make_template()
    assert [synthesize_level_stats(template, level)["attack"] for level in (2, 3, 4)] == [110, 121, 133]
    # 25 * 10% = 2.5 rounds up to 3
    assert synthesize_level_stats(template, 2)["health"] == 28


def test_gold_and_arcane_energy_growth():
    stats = synthesize_level_stats(make_template(gold_coins=10, arcane_energy=3), 3)
    assert stats["gold"] == 17  # 10 * 1.69 = 16.9
    assert stats["arcane_energy"] == 12


def test_growth_defaults_by_rarity():
    assert growth_percent(make_template(growth_percent=None)) == 3
    assert growth_percent(make_template(growth_percent=None, rarity="epic")) == 4
    assert growth_percent(make_template(growth_percent=None, rarity="elite")) == 5


def test_catalog_row_wins_and_zero_falls_back_to_template():
    template = make_template(speed=120, armor=70)
    row = SimpleNamespace(
        attack=999, health=888, speed=0, armor=55, critical_chance=0, critical_damage=0, gold=0, arcane_energy=5
    )
    stats = resolve_level_stats(template, 11, row)
    assert stats["attack"] == 999
    assert stats["health"] == 888
    assert stats["speed"] == 120
    assert stats["armor"] == 55
    assert stats["gold"] == 77
    assert stats["arcane_energy"] == 5


def test_missing_row_is_synthesized():
    template = make_template()
    assert resolve_level_stats(template, 11) == synthesize_level_stats(template, 11)


@pytest.mark.parametrize("level", [0, 41])
def test_level_out_of_range(level):
    with pytest.raises(LevelStatsNotFound):
        resolve_level_stats(make_template(), level)


def test_generated_table_covers_every_level():
    table = generate_level_table(make_template())
    assert [row["level"] for row in table] == list(range(1, 41))
