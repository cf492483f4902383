from pydantic import BaseModel
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime, timedelta

from creature_server.domain.rarity_economics import Rarity


class PlayerSchema(BaseModel):
    player_id: UUID
    player_name: str
    anima: int
    version: int | None = None

    class Config:
        from_attributes = True


class LevelStatsSchema(BaseModel):
    level: int
    attack: int
    health: int
    speed: int
    armor: int
    critical_chance: int
    critical_damage: int
    gold: int
    arcane_energy: int

    class Config:
        from_attributes = True


class CreatureTemplateSchema(BaseModel):
    template_id: UUID
    template_key: str
    name: str
    rarity: Rarity
    description: str = ""
    base_attack: int
    base_health: int
    speed: int = 100
    armor: int = 50
    critical_chance: int = 50
    critical_damage: int = 20
    gold_coins: int = 0
    arcane_energy: int = 0
    growth_percent: int | None = None

    class Config:
        from_attributes = True


class CreatureInstanceSchema(BaseModel):
    instance_id: UUID
    player_id: UUID
    template_id: UUID | None
    template_key: str | None
    # Legacy rows may lack the display name and stats; the columns are nullable.
    name: str | None = None
    level: int
    attack: int | None = None
    health: int | None = None
    speed: int | None = None
    armor: int | None = None
    critical_chance: int | None = None
    critical_damage: int | None = None
    gold: int | None = None
    arcane_energy: int | None = None
    partner_instance_id: UUID | None = None
    progress_percent: int = 0
    ritual_round: int = 0
    ritual_started_at: datetime | None = None
    last_round_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MergeHistorySchema(BaseModel):
    entry_id: UUID
    player_id: UUID
    first_instance_id: UUID
    second_instance_id: UUID
    new_instance_id: UUID
    template_id: UUID
    procedure: Literal["instant", "ritual"]
    target_level: int
    anima_spent: int
    started_at: datetime
    completed_at: datetime
    can_collect: bool = True

    class Config:
        from_attributes = True


class RitualPendingSchema(BaseModel):
    """Ritual in progress: the caller has to come back after the cooldown."""

    status: Literal["pending"] = "pending"
    first_instance_id: UUID
    second_instance_id: UUID
    rarity: Rarity
    from_level: int
    progress: int
    round_index: int
    wait_remaining: timedelta
    cooldown_until: datetime
    anima_spent: int = 0
    increment: int = 0
    # False when the request only reported the remaining cooldown.
    round_taken: bool = True


class MergeCompletedSchema(BaseModel):
    status: Literal["completed"] = "completed"
    procedure: Literal["instant", "ritual"]
    new_instance: CreatureInstanceSchema
    anima_spent: int = 0
    history: Optional[MergeHistorySchema] = None


class PlayerCreaturesSchema(BaseModel):
    player: PlayerSchema
    creatures: List[CreatureInstanceSchema]
