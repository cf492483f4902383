# import database
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import flag_modified
from datetime import datetime
from typing import List
import logging

from creature_server.domain.errors import InsufficientAnima
from creature_server.models.schema_models import (
    CreatureInstanceSchema,
    CreatureTemplateSchema,
    MergeHistorySchema,
    PlayerSchema,
)
from creature_server.models.schemas import (
    CreatureInstance,
    CreatureLevelStats,
    CreatureTemplate,
    MergeHistory,
    Player,
    UserTable,
)
from uuid import UUID

# NOTE: helpers here never commit. Callers own the transaction
# (``async with session.begin()``) so a merge is written all-or-nothing.


class ReadData:
    @staticmethod
    async def read_player(player_id: UUID, session: AsyncSession, for_update: bool = False) -> Player | None:
        """Read the player aggregate root

        Args:
            player_id (UUID): To identify the player
            for_update (bool): Lock the row until the transaction ends

        Returns:
            Player | None: Player row
        """
        stmt = select(Player).where(Player.player_id == player_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_player_creatures(player_id: UUID, session: AsyncSession) -> List[CreatureInstance]:
        """Read every creature the player owns, oldest first

        Args:
            player_id (UUID): To identify the player

        Returns:
            List[CreatureInstance]: Owned instances
        """
        stmt = (
            select(CreatureInstance)
            .where(CreatureInstance.player_id == player_id)
            .order_by(CreatureInstance.created_at, CreatureInstance.instance_id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_template_by_id(template_id: UUID, session: AsyncSession) -> CreatureTemplate | None:
        stmt = (
            select(CreatureTemplate)
            .where(CreatureTemplate.template_id == template_id)
            .options(selectinload(CreatureTemplate.level_stats))
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_template_by_key(template_key: str, session: AsyncSession) -> CreatureTemplate | None:
        stmt = (
            select(CreatureTemplate)
            .where(CreatureTemplate.template_key == template_key)
            .options(selectinload(CreatureTemplate.level_stats))
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_template_by_name(name: str, session: AsyncSession) -> CreatureTemplate | None:
        stmt = (
            select(CreatureTemplate)
            .where(CreatureTemplate.name == name)
            .order_by(CreatureTemplate.template_key)
            .options(selectinload(CreatureTemplate.level_stats))
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_templates(session: AsyncSession) -> List[CreatureTemplate]:
        stmt = select(CreatureTemplate).order_by(CreatureTemplate.template_key)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_level_stats(template_id: UUID, level: int, session: AsyncSession) -> CreatureLevelStats | None:
        """Read the explicit catalog row for one level

        Args:
            template_id (UUID): To identify the template
            level (int): Level of the row

        Returns:
            CreatureLevelStats | None: None when the catalog has no row for this level
        """
        stmt = select(CreatureLevelStats).where(
            CreatureLevelStats.template_id == template_id,
            CreatureLevelStats.level == level,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_merge_history(player_id: UUID, session: AsyncSession) -> List[MergeHistory]:
        """Read the player's merge receipts, newest first"""
        stmt = (
            select(MergeHistory)
            .where(MergeHistory.player_id == player_id)
            .order_by(desc(MergeHistory.completed_at), desc(MergeHistory.entry_id))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_user_data(username: str, session: AsyncSession) -> UserTable | None:
        stmt = select(UserTable).where(UserTable.username == username)
        result = await session.execute(stmt)
        return result.scalars().first()


class CreateData:
    @staticmethod
    async def add_player_data(player: PlayerSchema, session: AsyncSession) -> Player:
        new_player = Player(
            player_id=player.player_id,
            player_name=player.player_name,
            anima=player.anima,
        )
        session.add(new_player)
        return new_player

    @staticmethod
    async def add_user_data(username: str, hash_password: str, salt: str, player_id: UUID, session: AsyncSession):
        session.add(
            UserTable(
                username=username,
                hash_password=hash_password,
                salt=salt,
                player_id=player_id,
            )
        )

    @staticmethod
    async def add_template_data(template: CreatureTemplateSchema, level_rows: List[dict], session: AsyncSession):
        """Add a catalog template with its per-level stat rows

        Args:
            template (CreatureTemplateSchema): Template data
            level_rows (List[dict]): One dict per level, keys as in CreatureLevelStats
        """
        new_template = CreatureTemplate(
            template_id=template.template_id,
            template_key=template.template_key,
            name=template.name,
            rarity=template.rarity.value,
            description=template.description,
            base_attack=template.base_attack,
            base_health=template.base_health,
            speed=template.speed,
            armor=template.armor,
            critical_chance=template.critical_chance,
            critical_damage=template.critical_damage,
            gold_coins=template.gold_coins,
            arcane_energy=template.arcane_energy,
            growth_percent=template.growth_percent,
        )
        session.add(new_template)
        session.add_all(
            [CreatureLevelStats(template_id=template.template_id, **row) for row in level_rows]
        )

    @staticmethod
    async def add_creature_instance(instance: CreatureInstanceSchema, session: AsyncSession) -> CreatureInstance:
        """Add one owned creature

        Args:
            instance (CreatureInstanceSchema): Creature data with resolved stats
        """
        new_instance = CreatureInstance(**instance.model_dump())
        session.add(new_instance)
        return new_instance

    @staticmethod
    async def add_merge_history(entry: MergeHistorySchema, session: AsyncSession):
        """Append one merge receipt to the ledger

        Args:
            entry (MergeHistorySchema): Completed merge
        """
        session.add(MergeHistory(**entry.model_dump()))


class UpdateData:
    @staticmethod
    def set_ritual_fields(instance: CreatureInstance, fields: dict):
        """Write the mirrored ritual columns on one instance"""
        for name, value in fields.items():
            setattr(instance, name, value)

    @staticmethod
    def debit_anima(player: Player, amount: int):
        """Take anima from the player's wallet

        Raises:
            InsufficientAnima: The wallet holds less than ``amount``
        """
        if amount < 0:
            raise ValueError("amount must be >= 0")
        if player.anima < amount:
            raise InsufficientAnima(amount, player.anima)
        player.anima -= amount
        logging.debug(f"Debited {amount} anima from player {player.player_id}")

    @staticmethod
    def touch_player(player: Player, now: datetime):
        """Mark the aggregate as modified so its version is checked and bumped"""
        player.updated_at = now
        flag_modified(player, "updated_at")


class DeleteData:
    @staticmethod
    async def delete_creature_instances(instances: List[CreatureInstance], session: AsyncSession):
        for instance in instances:
            await session.delete(instance)
