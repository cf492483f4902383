from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column, UniqueConstraint
from sqlalchemy.types import BigInteger, Boolean, Integer, String, Uuid, DateTime, TEXT
from uuid6 import uuid7
from datetime import datetime


class Base(DeclarativeBase):
    pass


class Player(Base):
    """Player aggregate root. Every merge bumps ``version`` so that two
    requests working from the same snapshot cannot both commit."""

    __tablename__ = "player"
    player_id = Column(Uuid, primary_key=True, default=uuid7)
    player_name = Column(String)
    anima = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)

    __mapper_args__ = {"version_id_col": version}


class UserTable(Base):
    __tablename__ = "users"
    username = Column(String, primary_key=True, index=True)
    hash_password = Column(String)
    salt = Column(String)
    player_id = Column(Uuid, index=True)


class CreatureTemplate(Base):
    __tablename__ = "creature_template"
    template_id = Column(Uuid, primary_key=True, default=uuid7)
    template_key = Column(String, unique=True, index=True)
    name = Column(String, index=True)
    rarity = Column(String, nullable=False)
    description = Column(TEXT, default="")
    base_attack = Column(Integer, nullable=False)
    base_health = Column(Integer, nullable=False)
    speed = Column(Integer, default=100)
    armor = Column(Integer, default=50)
    critical_chance = Column(Integer, default=50)
    critical_damage = Column(Integer, default=20)
    gold_coins = Column(BigInteger, default=0)
    arcane_energy = Column(BigInteger, default=0)
    growth_percent = Column(Integer, nullable=True)

    level_stats = relationship(
        "CreatureLevelStats",
        primaryjoin="CreatureTemplate.template_id == foreign(CreatureLevelStats.template_id)",
        back_populates="template",
        order_by="CreatureLevelStats.level",
        cascade="all, delete",
    )


class CreatureLevelStats(Base):
    __tablename__ = "creature_level_stats"
    __table_args__ = (UniqueConstraint("template_id", "level"),)
    level_stats_id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(Uuid, nullable=False, index=True)
    level = Column(Integer, nullable=False)
    attack = Column(Integer, nullable=False)
    health = Column(Integer, nullable=False)
    speed = Column(Integer, default=100)
    armor = Column(Integer, default=50)
    critical_chance = Column(Integer, default=50)
    critical_damage = Column(Integer, default=20)
    gold = Column(BigInteger, default=0)
    arcane_energy = Column(BigInteger, default=0)

    template = relationship(
        "CreatureTemplate",
        primaryjoin="foreign(CreatureLevelStats.template_id) == CreatureTemplate.template_id",
        back_populates="level_stats",
    )


class CreatureInstance(Base):
    """A creature owned by a player.

    The ritual columns mirror the pair state on both partners; they are plain
    columns so a ritual in progress survives restarts.
    """

    __tablename__ = "creature_instance"
    instance_id = Column(Uuid, primary_key=True, default=uuid7)
    player_id = Column(Uuid, nullable=False, index=True)
    # Legacy rows may only carry the type tag or the display name.
    template_id = Column(Uuid, nullable=True)
    template_key = Column(String, nullable=True)
    name = Column(String)
    level = Column(Integer, nullable=False, default=1)
    attack = Column(Integer)
    health = Column(Integer)
    speed = Column(Integer)
    armor = Column(Integer)
    critical_chance = Column(Integer)
    critical_damage = Column(Integer)
    gold = Column(BigInteger)
    arcane_energy = Column(BigInteger)
    partner_instance_id = Column(Uuid, nullable=True)
    progress_percent = Column(Integer, nullable=False, default=0)
    ritual_round = Column(Integer, nullable=False, default=0)
    ritual_started_at = Column(DateTime, nullable=True)
    last_round_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class MergeHistory(Base):
    __tablename__ = "merge_history"
    # Instance ids are never reused, so one row per pair means one completion.
    __table_args__ = (UniqueConstraint("player_id", "first_instance_id", "second_instance_id"),)
    entry_id = Column(Uuid, primary_key=True, default=uuid7)
    player_id = Column(Uuid, nullable=False, index=True)
    first_instance_id = Column(Uuid, nullable=False)
    second_instance_id = Column(Uuid, nullable=False)
    new_instance_id = Column(Uuid, nullable=False)
    template_id = Column(Uuid, nullable=False)
    procedure = Column(String, nullable=False)
    target_level = Column(Integer, nullable=False)
    anima_spent = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=False)
    can_collect = Column(Boolean, nullable=False, default=True)
