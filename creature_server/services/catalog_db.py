"""DB service layer for the creature catalog.

The catalog is read-only at runtime. Templates are looked up by canonical id
first, then by the stored type tag, then by display name, because older
player data only carries some of these.
"""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from creature_server.crud import CreateData, ReadData
from creature_server.db import Session
from creature_server.domain.creature_stats import generate_level_table, resolve_level_stats
from creature_server.domain.errors import InvalidTemplateRarity, TemplateNotFound
from creature_server.domain.rarity_economics import MAX_LEVEL, normalize_rarity
from creature_server.models.schema_models import CreatureTemplateSchema, LevelStatsSchema
from creature_server.models.schemas import CreatureTemplate
from uuid6 import uuid7


async def resolve_template(session: AsyncSession, instance) -> CreatureTemplate:
    """Find the template an instance was created from.

    Args:
        session (AsyncSession): Open session
        instance: Creature instance carrying template_id, template_key and name

    Raises:
        TemplateNotFound: None of the three keys matches a template.
        InvalidTemplateRarity: The template's stored rarity is not one of the known tiers.
    """
    template = None
    if instance.template_id is not None:
        template = await ReadData.read_template_by_id(instance.template_id, session)
    if template is None and instance.template_key:
        template = await ReadData.read_template_by_key(instance.template_key, session)
    if template is None and instance.name:
        template = await ReadData.read_template_by_name(instance.name, session)

    if template is None:
        logging.error(
            f"Template lookup failed for instance {instance.instance_id} "
            f"(template_id={instance.template_id}, template_key={instance.template_key!r}, "
            f"name={instance.name!r}); catalog and player data have drifted"
        )
        raise TemplateNotFound(instance.template_id, instance.template_key, instance.name)

    try:
        normalize_rarity(template.rarity)
    except ValueError as e:
        logging.error(
            f"Template {template.template_key!r} (template_id={template.template_id}) used by instance "
            f"{instance.instance_id} has unknown rarity {template.rarity!r}; catalog data has drifted"
        )
        raise InvalidTemplateRarity(template.template_key, template.rarity) from e
    return template


async def get_level_stats(session: AsyncSession, template: CreatureTemplate, level: int) -> LevelStatsSchema:
    """Stats for ``level``: the catalog row if present, otherwise synthesized."""
    row = await ReadData.read_level_stats(template.template_id, level, session)
    if row is None:
        logging.info(f"No level {level} row for {template.template_key}; synthesizing from growth rate")
    return LevelStatsSchema(**resolve_level_stats(template, level, row))


async def read_templates() -> List[CreatureTemplateSchema]:
    async with Session() as session:
        templates = await ReadData.read_templates(session)
        return [CreatureTemplateSchema.model_validate(template) for template in templates]


async def read_template(template_key: str) -> CreatureTemplateSchema | None:
    async with Session() as session:
        template = await ReadData.read_template_by_key(template_key, session)
        if template is None:
            return None
        return CreatureTemplateSchema.model_validate(template)


async def read_template_levels(template_key: str) -> List[LevelStatsSchema] | None:
    """All 40 levels of a template, explicit rows merged with synthesized ones."""
    async with Session() as session:
        template = await ReadData.read_template_by_key(template_key, session)
        if template is None:
            return None
        rows = {row.level: row for row in template.level_stats}
        return [
            LevelStatsSchema(**resolve_level_stats(template, level, rows.get(level)))
            for level in range(1, MAX_LEVEL + 1)
        ]


# Seeded on first start so a fresh database can serve merges.
DEFAULT_TEMPLATES = [
    {"template_key": "goblin", "name": "Goblin", "rarity": "common", "base_attack": 10, "base_health": 50,
     "speed": 100, "armor": 40, "critical_chance": 50, "critical_damage": 15, "gold_coins": 5,
     "description": "A small but vicious goblin that attacks with primitive weapons."},
    {"template_key": "skeleton", "name": "Skeleton", "rarity": "common", "base_attack": 12, "base_health": 45,
     "speed": 90, "armor": 30, "critical_chance": 40, "critical_damage": 20, "gold_coins": 5,
     "description": "An undead skeleton armed with a bow, firing bone arrows."},
    {"template_key": "orc", "name": "Orc Warrior", "rarity": "rare", "base_attack": 18, "base_health": 80,
     "speed": 85, "armor": 60, "critical_chance": 55, "critical_damage": 25, "gold_coins": 10,
     "description": "A brutal orc warrior wielding a heavy axe."},
    {"template_key": "witch", "name": "Forest Witch", "rarity": "rare", "base_attack": 22, "base_health": 65,
     "speed": 80, "armor": 50, "critical_chance": 50, "critical_damage": 30, "gold_coins": 12,
     "description": "A mysterious witch who casts powerful nature spells."},
    {"template_key": "griffin", "name": "Storm Griffin", "rarity": "epic", "base_attack": 30, "base_health": 120,
     "speed": 120, "armor": 70, "critical_chance": 60, "critical_damage": 35,
     "description": "A winged hunter that dives out of thunderclouds."},
    {"template_key": "dragon", "name": "Ancient Dragon", "rarity": "legendary", "base_attack": 45, "base_health": 200,
     "speed": 110, "armor": 90, "critical_chance": 65, "critical_damage": 45,
     "description": "An ancient wyrm whose breath melts stone."},
    {"template_key": "phoenix", "name": "Ember Phoenix", "rarity": "elite", "base_attack": 55, "base_health": 230,
     "speed": 130, "armor": 85, "critical_chance": 70, "critical_damage": 50,
     "description": "A firebird reborn from its own ashes."},
]


async def seed_default_catalog() -> int:
    """Insert the default templates when the catalog is empty.

    Returns:
        int: Number of templates inserted
    """
    async with Session() as session:
        async with session.begin():
            if await ReadData.read_templates(session):
                return 0
            for data in DEFAULT_TEMPLATES:
                template = CreatureTemplateSchema(template_id=uuid7(), **data)
                await CreateData.add_template_data(template, generate_level_table(template), session)
    logging.info(f"Seeded {len(DEFAULT_TEMPLATES)} creature templates")
    return len(DEFAULT_TEMPLATES)
