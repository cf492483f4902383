"""Error taxonomy for creature merges.

Every error is raised before the aggregate is mutated, or inside the
transaction so that the session rolls back. Waiting on a cooldown is not an
error: it is returned as ``RitualPending``.
"""

from enum import Enum
from uuid import UUID


class EligibilityReason(str, Enum):
    not_found = "NotFound"
    template_mismatch = "TemplateMismatch"
    level_mismatch = "LevelMismatch"
    already_max_level = "AlreadyMaxLevel"
    requires_ritual = "RequiresRitual"
    not_milestone = "NotMilestone"


class MergeError(Exception):
    code = "merge_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MergeError):
    code = "validation_error"


class EligibilityError(MergeError):
    code = "eligibility_error"

    def __init__(self, reason: EligibilityReason, message: str):
        super().__init__(message)
        self.reason = reason


class InsufficientAnima(MergeError):
    code = "insufficient_anima"

    def __init__(self, required: int, available: int):
        super().__init__(f"This round costs {required} anima, only {available} available.")
        self.required = required
        self.available = available


class TemplateNotFound(MergeError):
    code = "template_not_found"

    def __init__(self, template_id: UUID | None, template_key: str | None, name: str | None):
        super().__init__(
            f"No creature template for id={template_id} key={template_key!r} name={name!r}"
        )
        self.template_id = template_id
        self.template_key = template_key
        self.name = name


class InvalidTemplateRarity(MergeError):
    code = "invalid_template_rarity"

    def __init__(self, template_key: str, rarity: str):
        super().__init__(f"Creature template {template_key!r} has unknown rarity {rarity!r}")
        self.template_key = template_key
        self.rarity = rarity


class LevelStatsNotFound(MergeError):
    code = "level_stats_not_found"

    def __init__(self, template_key: str, level: int):
        super().__init__(f"Level {level} is out of range for creature {template_key!r}")
        self.template_key = template_key
        self.level = level


class ConcurrencyConflict(MergeError):
    code = "concurrency_conflict"
