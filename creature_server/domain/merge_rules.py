"""Merge eligibility rules, independent from HTTP and DB.

Instances are passed in already loaded from the player's collection (``None``
when the caller does not own the id), so the checks here stay pure.
"""

from enum import Enum
from uuid import UUID

from creature_server.domain.errors import EligibilityError, EligibilityReason, ValidationError
from creature_server.domain.rarity_economics import MAX_LEVEL, is_milestone


class MergeRoute(str, Enum):
    instant = "instant"
    ritual = "ritual"


def parse_instance_ids(first_id, second_id) -> tuple[UUID, UUID]:
    """Validate the two requested ids before anything is read.

    Raises:
        ValidationError: An id is not a UUID, or both ids are the same.
    """
    parsed = []
    for raw in (first_id, second_id):
        if isinstance(raw, UUID):
            parsed.append(raw)
            continue
        try:
            parsed.append(UUID(str(raw)))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid creature id: {raw!r}") from e

    if parsed[0] == parsed[1]:
        raise ValidationError("A creature cannot be merged with itself")
    return parsed[0], parsed[1]


def same_template(first, second) -> bool:
    """Compare template identity, falling back to the legacy type tag."""
    if first.template_id is not None and second.template_id is not None:
        return first.template_id == second.template_id
    if first.template_key and second.template_key:
        return first.template_key == second.template_key
    return first.name == second.name


def check_eligibility(player_id: UUID, first, second) -> MergeRoute:
    """Validate a pair of owned instances and pick the merge procedure.

    Checks run in a fixed order so the caller always sees the first failure:
    ownership, template, level, level cap.

    Args:
        player_id: Caller identity.
        first: First instance, or None when it does not exist.
        second: Second instance, or None when it does not exist.

    Returns:
        MergeRoute: ``ritual`` for levels 10/20/30, otherwise ``instant``.
    """
    for instance in (first, second):
        if instance is None or instance.player_id != player_id:
            raise EligibilityError(EligibilityReason.not_found, "Creature not found")

    if not same_template(first, second):
        raise EligibilityError(
            EligibilityReason.template_mismatch, "Only identical creatures can be merged"
        )

    if first.level != second.level:
        raise EligibilityError(
            EligibilityReason.level_mismatch, "Creatures must be the same level to merge"
        )

    if first.level >= MAX_LEVEL:
        raise EligibilityError(
            EligibilityReason.already_max_level, f"Creature is already at max level {MAX_LEVEL}"
        )

    if is_milestone(first.level):
        return MergeRoute.ritual
    return MergeRoute.instant


def require_route(actual: MergeRoute, expected: MergeRoute | None, level: int) -> None:
    """Reject a request that names the wrong procedure for the pair's level."""
    if expected is None or actual == expected:
        return
    if actual == MergeRoute.ritual:
        raise EligibilityError(
            EligibilityReason.requires_ritual,
            f"Level {level} creatures can only advance through a milestone ritual",
        )
    raise EligibilityError(
        EligibilityReason.not_milestone,
        f"Level {level} is not a milestone level; use an instant merge",
    )
