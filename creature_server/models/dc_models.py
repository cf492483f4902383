from pydantic import BaseModel
from enum import Enum
from uuid import UUID
from datetime import datetime
from typing import List, Literal, Optional

from creature_server.models.schema_models import CreatureInstanceSchema


class MergeProcedureModel(str, Enum):
    instant = "instant"  # one request, no cost
    ritual = "ritual"  # milestone levels 10/20/30, several rounds


class MergeRequestModel(BaseModel):
    first_instance_id: UUID
    second_instance_id: UUID


class ProgressModel(BaseModel):
    current: int
    total: int = 100
    percentage: str


class RitualPendingModel(BaseModel):
    status: Literal["pending"] = "pending"
    message: str
    first_instance_id: UUID
    second_instance_id: UUID
    from_level: int
    target_level: int
    round: int
    wait_remaining_seconds: int
    cooldown_until: datetime
    anima_spent: int
    progress: ProgressModel


class MergeCompletedModel(BaseModel):
    status: Literal["completed"] = "completed"
    message: str
    procedure: MergeProcedureModel
    new_creature: CreatureInstanceSchema
    anima_spent: int
    can_collect: bool = True


class MergeErrorModel(BaseModel):
    code: str
    reason: Optional[str] = None
    message: str


class MergeHistoryModel(BaseModel):
    entry_id: UUID
    first_instance_id: UUID
    second_instance_id: UUID
    new_instance_id: UUID
    procedure: MergeProcedureModel
    target_level: int
    anima_spent: int
    started_at: datetime
    completed_at: datetime
    can_collect: bool

    class Config:
        from_attributes = True


class CreatureListModel(BaseModel):
    anima: int
    creatures: List[CreatureInstanceSchema]
