"""Milestone ritual state machine.

A pair of same-template creatures at level 10/20/30 advances to level+1 over
several client-initiated rounds:

    Unpaired --(first advance, free)--> AwaitingRound --(paid rounds)--> Completed

The pair state is mirrored on both instances (partner id, progress, round,
timestamps). ``classify_pair`` reads it back and refuses to trust a mirror that
does not agree with itself; such a pair is reopened from scratch instead of
guessing a wait time.

Nothing here touches the DB or the clock: ``now`` and the random generator are
passed in, and the caller applies the returned ``RitualStep``.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from creature_server.domain.errors import InsufficientAnima
from creature_server.domain.rarity_economics import (
    PROGRESS_COMPLETE,
    RandomSource,
    RitualEconomics,
    draw_increment,
)


class PairStatus(str, Enum):
    unpaired = "unpaired"
    awaiting = "awaiting"
    corrupted = "corrupted"


class RitualStepKind(str, Enum):
    opened = "opened"
    waiting = "waiting"
    advanced = "advanced"
    completed = "completed"


@dataclass(frozen=True)
class RitualPairState:
    first_id: UUID
    second_id: UUID
    progress: int
    round_index: int
    started_at: datetime
    last_round_at: datetime

    def cooldown_until(self, economics: RitualEconomics) -> datetime:
        return self.last_round_at + economics.cooldown


@dataclass(frozen=True)
class RitualStep:
    kind: RitualStepKind
    state: RitualPairState
    wait_remaining: timedelta
    anima_cost: int = 0
    increment: int = 0
    # Anima charged over the whole ritual, this round included.
    ritual_anima_spent: int = 0
    repaired: bool = False
    stale_partner_ids: tuple[UUID, ...] = ()


UNPAIRED_FIELDS = {
    "partner_instance_id": None,
    "progress_percent": 0,
    "ritual_round": 0,
    "ritual_started_at": None,
    "last_round_at": None,
}


def ritual_fields(state: RitualPairState, instance_id: UUID) -> dict:
    """Column values to write on one side of the pair."""
    if instance_id == state.first_id:
        partner_id = state.second_id
    elif instance_id == state.second_id:
        partner_id = state.first_id
    else:
        raise ValueError(f"{instance_id} is not part of this ritual pair")
    return {
        "partner_instance_id": partner_id,
        "progress_percent": state.progress,
        "ritual_round": state.round_index,
        "ritual_started_at": state.started_at,
        "last_round_at": state.last_round_at,
    }


def stale_partner_ids(first, second) -> tuple[UUID, ...]:
    """Partners either instance is linked to outside of this pair."""
    pair_ids = {first.instance_id, second.instance_id}
    stale = []
    for instance in (first, second):
        partner_id = instance.partner_instance_id
        if partner_id is not None and partner_id not in pair_ids and partner_id not in stale:
            stale.append(partner_id)
    return tuple(stale)


def _has_orphan_progress(instance) -> bool:
    return (instance.progress_percent or 0) > 0 and instance.partner_instance_id is None


def classify_pair(first, second) -> tuple[PairStatus, RitualPairState | None]:
    """Read the mirrored ritual fields of two instances.

    Returns:
        (PairStatus, RitualPairState | None): The state is only returned when
        both sides agree and describe a ritual in progress.
    """
    linked_forward = first.partner_instance_id == second.instance_id
    linked_back = second.partner_instance_id == first.instance_id

    if not linked_forward and not linked_back:
        if _has_orphan_progress(first) or _has_orphan_progress(second):
            return PairStatus.corrupted, None
        return PairStatus.unpaired, None

    if linked_forward != linked_back:
        return PairStatus.corrupted, None

    progress = first.progress_percent or 0
    round_index = first.ritual_round or 0
    consistent = (
        progress == (second.progress_percent or 0)
        and round_index == (second.ritual_round or 0)
        and first.last_round_at is not None
        and first.last_round_at == second.last_round_at
        and first.ritual_started_at == second.ritual_started_at
        and 0 < progress < PROGRESS_COMPLETE
        and round_index >= 1
    )
    if not consistent:
        return PairStatus.corrupted, None

    state = RitualPairState(
        first_id=first.instance_id,
        second_id=second.instance_id,
        progress=progress,
        round_index=round_index,
        started_at=first.ritual_started_at or first.last_round_at,
        last_round_at=first.last_round_at,
    )
    return PairStatus.awaiting, state


def open_ritual(first, second, economics: RitualEconomics, now: datetime, repaired: bool = False) -> RitualStep:
    """First round: free, grants the opening contribution and starts the cooldown."""
    state = RitualPairState(
        first_id=first.instance_id,
        second_id=second.instance_id,
        progress=economics.policy.opening_progress,
        round_index=1,
        started_at=now,
        last_round_at=now,
    )
    return RitualStep(
        kind=RitualStepKind.opened,
        state=state,
        wait_remaining=economics.cooldown,
        repaired=repaired,
        stale_partner_ids=stale_partner_ids(first, second),
    )


def plan_ritual_round(
    first,
    second,
    economics: RitualEconomics,
    anima_balance: int,
    now: datetime,
    rng: RandomSource,
) -> RitualStep:
    """Decide what one advance request does to the pair.

    Args:
        first: First instance of the pair.
        second: Second instance of the pair.
        economics: Economics for the pair's rarity and level.
        anima_balance: Caller's current anima.
        now: Request time.
        rng: Random source for the progress draw.

    Raises:
        InsufficientAnima: The cooldown has elapsed but the caller cannot pay.
    """
    status, state = classify_pair(first, second)
    if status != PairStatus.awaiting:
        return open_ritual(first, second, economics, now, repaired=status == PairStatus.corrupted)

    cooldown_until = state.cooldown_until(economics)
    if now < cooldown_until:
        return RitualStep(
            kind=RitualStepKind.waiting,
            state=state,
            wait_remaining=cooldown_until - now,
        )

    cost = economics.subsequent_round_cost
    if anima_balance < cost:
        raise InsufficientAnima(cost, anima_balance)

    round_index = state.round_index + 1
    increment = draw_increment(economics.rarity, round_index, state.progress, rng)
    progress = min(state.progress + increment, PROGRESS_COMPLETE)
    new_state = replace(state, progress=progress, round_index=round_index, last_round_at=now)
    completed = progress >= PROGRESS_COMPLETE

    return RitualStep(
        kind=RitualStepKind.completed if completed else RitualStepKind.advanced,
        state=new_state,
        wait_remaining=timedelta(0) if completed else economics.cooldown,
        anima_cost=cost,
        increment=increment,
        ritual_anima_spent=(round_index - 1) * cost,
    )
