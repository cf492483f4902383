"""DB service layer for creature merges.

- Routers should not touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries.
- Use CRUD helpers that do NOT commit inside session.begin().

One request is one read-modify-write of the player aggregate:
per-player lock -> player row FOR UPDATE -> checks -> writes -> version bump.
Domain errors raised inside ``session.begin()`` roll the whole request back.
"""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

import numpy as np
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from creature_server.crud import CreateData, DeleteData, ReadData, UpdateData
from creature_server.db import Session
from creature_server.domain.errors import (
    ConcurrencyConflict,
    EligibilityError,
    EligibilityReason,
    InsufficientAnima,
)
from creature_server.domain.merge_rules import (
    MergeRoute,
    check_eligibility,
    parse_instance_ids,
    require_route,
)
from creature_server.domain.rarity_economics import RandomSource, RitualEconomics, ritual_economics
from creature_server.domain.ritual import (
    UNPAIRED_FIELDS,
    RitualStep,
    RitualStepKind,
    plan_ritual_round,
    ritual_fields,
)
from creature_server.models.schema_models import (
    CreatureInstanceSchema,
    MergeCompletedSchema,
    MergeHistorySchema,
    PlayerCreaturesSchema,
    PlayerSchema,
    RitualPendingSchema,
)
from creature_server.models.schemas import CreatureInstance, CreatureTemplate, Player
from creature_server.player_lock_manager import player_locks
from creature_server.services.catalog_db import get_level_stats, resolve_template
from uuid6 import uuid7

MergeOutcome = MergeCompletedSchema | RitualPendingSchema


async def read_player_creatures(player_id: UUID) -> PlayerCreaturesSchema | None:
    async with Session() as session:
        player = await ReadData.read_player(player_id, session)
        if player is None:
            return None
        creatures = await ReadData.read_player_creatures(player_id, session)
        return PlayerCreaturesSchema(
            player=PlayerSchema.model_validate(player),
            creatures=[CreatureInstanceSchema.model_validate(creature) for creature in creatures],
        )


async def read_merge_history(player_id: UUID) -> List[MergeHistorySchema]:
    async with Session() as session:
        entries = await ReadData.read_merge_history(player_id, session)
        return [MergeHistorySchema.model_validate(entry) for entry in entries]


async def merge_creatures(
    player_id: UUID,
    first_id,
    second_id,
    now: datetime | None = None,
    rng: RandomSource | None = None,
) -> MergeOutcome:
    """Merge two creatures with whichever procedure their level calls for."""
    return await _run_merge(player_id, first_id, second_id, None, now, rng)


async def instant_merge(player_id: UUID, first_id, second_id, now: datetime | None = None) -> MergeCompletedSchema:
    """Combine two non-milestone creatures into one of the next level, free of charge.

    Raises:
        EligibilityError: The pair is not mergeable, or sits on a milestone level (RequiresRitual).
    """
    return await _run_merge(player_id, first_id, second_id, MergeRoute.instant, now, None)


async def advance_ritual(
    player_id: UUID,
    first_id,
    second_id,
    now: datetime | None = None,
    rng: RandomSource | None = None,
) -> MergeOutcome:
    """Take one step of the milestone ritual for a pair.

    Args:
        player_id (UUID): Caller
        first_id: First creature id
        second_id: Second creature id
        now (datetime | None): Request time, defaults to the wall clock
        rng (RandomSource | None): Source of the progress draw, defaults to a fresh numpy Generator

    Returns:
        MergeOutcome: Pending while the ritual is below 100%, Completed once it closes

    Raises:
        InsufficientAnima: The cooldown has elapsed and the wallet cannot pay the round.
        EligibilityError: The pair is not mergeable, or is not on a milestone level (NotMilestone).
    """
    return await _run_merge(player_id, first_id, second_id, MergeRoute.ritual, now, rng)


async def _run_merge(
    player_id: UUID,
    first_id,
    second_id,
    expected_route: MergeRoute | None,
    now: datetime | None,
    rng: RandomSource | None,
) -> MergeOutcome:
    first_id, second_id = parse_instance_ids(first_id, second_id)
    now = now or datetime.now()
    rng = rng if rng is not None else np.random.default_rng()

    async with player_locks.hold(player_id):
        try:
            async with Session() as session:
                async with session.begin():
                    player = await ReadData.read_player(player_id, session, for_update=True)
                    if player is None:
                        raise EligibilityError(EligibilityReason.not_found, "Player not found")

                    creatures = {
                        creature.instance_id: creature
                        for creature in await ReadData.read_player_creatures(player_id, session)
                    }
                    first = creatures.get(first_id)
                    second = creatures.get(second_id)

                    route = check_eligibility(player_id, first, second)
                    require_route(route, expected_route, first.level)

                    # Resolved before anything is written so a drifted catalog aborts cleanly.
                    template = await resolve_template(session, first)

                    if route == MergeRoute.instant:
                        return await _complete_merge(
                            session, player, first, second, template, MergeRoute.instant, 0, now, now
                        )

                    economics = ritual_economics(template.rarity, first.level)
                    try:
                        step = plan_ritual_round(first, second, economics, player.anima, now, rng)
                    except InsufficientAnima as e:
                        logging.warning(
                            f"Player {player_id} cannot pay ritual round for {first_id}/{second_id}: {e.message}"
                        )
                        raise
                    return await _apply_ritual_step(
                        session, player, creatures, first, second, template, economics, step, now
                    )
        except (StaleDataError, IntegrityError) as e:
            logging.warning(f"Concurrent modification of player {player_id} during merge: {e}")
            raise ConcurrencyConflict(
                "Another request changed this player's creatures, please retry"
            ) from e


async def _complete_merge(
    session: AsyncSession,
    player: Player,
    first: CreatureInstance,
    second: CreatureInstance,
    template: CreatureTemplate,
    procedure: MergeRoute,
    anima_spent: int,
    started_at: datetime,
    now: datetime,
) -> MergeCompletedSchema:
    """Replace the pair with one creature of the next level and write the receipt."""
    target_level = first.level + 1
    stats = await get_level_stats(session, template, target_level)

    new_instance = CreatureInstanceSchema(
        instance_id=uuid7(),
        player_id=player.player_id,
        template_id=template.template_id,
        template_key=template.template_key,
        name=template.name,
        created_at=now,
        **stats.model_dump(),
    )
    # Stored in a fixed order so the unique key catches a second completion of the same pair.
    pair_ids = sorted([first.instance_id, second.instance_id])
    history = MergeHistorySchema(
        entry_id=uuid7(),
        player_id=player.player_id,
        first_instance_id=pair_ids[0],
        second_instance_id=pair_ids[1],
        new_instance_id=new_instance.instance_id,
        template_id=template.template_id,
        procedure=procedure.value,
        target_level=target_level,
        anima_spent=anima_spent,
        started_at=started_at,
        completed_at=now,
        can_collect=True,
    )

    await DeleteData.delete_creature_instances([first, second], session)
    await CreateData.add_creature_instance(new_instance, session)
    await CreateData.add_merge_history(history, session)
    UpdateData.touch_player(player, now)

    logging.info(
        f"Player {player.player_id} merged {pair_ids[0]} + {pair_ids[1]} into {new_instance.instance_id} "
        f"({template.template_key} lv{target_level}, {procedure.value}, {anima_spent} anima)"
    )
    return MergeCompletedSchema(
        procedure=procedure.value,
        new_instance=new_instance,
        anima_spent=anima_spent,
        history=history,
    )


def _reset_stale_partners(
    step: RitualStep,
    creatures: dict[UUID, CreatureInstance],
    first: CreatureInstance,
    second: CreatureInstance,
) -> None:
    """Unpair the old partners this ritual is taking a creature away from."""
    pair_ids = {first.instance_id, second.instance_id}
    for stale_id in step.stale_partner_ids:
        stale = creatures.get(stale_id)
        # Only a partner that still points back is live; anything else is a dangling link.
        if stale is None or stale.partner_instance_id not in pair_ids:
            continue
        logging.warning(
            f"Resetting ritual of {stale_id} (partner {stale.partner_instance_id}, "
            f"progress {stale.progress_percent}%) before pairing {first.instance_id}/{second.instance_id}"
        )
        UpdateData.set_ritual_fields(stale, UNPAIRED_FIELDS)


async def _apply_ritual_step(
    session: AsyncSession,
    player: Player,
    creatures: dict[UUID, CreatureInstance],
    first: CreatureInstance,
    second: CreatureInstance,
    template: CreatureTemplate,
    economics: RitualEconomics,
    step: RitualStep,
    now: datetime,
) -> MergeOutcome:
    if step.kind == RitualStepKind.waiting:
        logging.debug(
            f"Ritual {first.instance_id}/{second.instance_id} still cooling down, "
            f"{int(step.wait_remaining.total_seconds())}s left"
        )
        return _pending(first, second, economics, step)

    if step.kind == RitualStepKind.opened:
        if step.repaired:
            logging.warning(
                f"Inconsistent ritual state on {first.instance_id}/{second.instance_id} "
                f"(progress {first.progress_percent}/{second.progress_percent}); restarting the ritual"
            )
        _reset_stale_partners(step, creatures, first, second)
        UpdateData.set_ritual_fields(first, ritual_fields(step.state, first.instance_id))
        UpdateData.set_ritual_fields(second, ritual_fields(step.state, second.instance_id))
        UpdateData.touch_player(player, now)
        logging.info(
            f"Player {player.player_id} opened {economics.rarity.value} ritual lv{economics.from_level} "
            f"for {first.instance_id}/{second.instance_id} at {step.state.progress}%"
        )
        return _pending(first, second, economics, step)

    UpdateData.debit_anima(player, step.anima_cost)

    if step.kind == RitualStepKind.completed:
        return await _complete_merge(
            session,
            player,
            first,
            second,
            template,
            MergeRoute.ritual,
            step.ritual_anima_spent,
            step.state.started_at,
            now,
        )

    UpdateData.set_ritual_fields(first, ritual_fields(step.state, first.instance_id))
    UpdateData.set_ritual_fields(second, ritual_fields(step.state, second.instance_id))
    UpdateData.touch_player(player, now)
    logging.info(
        f"Player {player.player_id} ritual round {step.state.round_index} for "
        f"{first.instance_id}/{second.instance_id}: +{step.increment}% -> {step.state.progress}% "
        f"({step.anima_cost} anima)"
    )
    return _pending(first, second, economics, step)


def _pending(
    first: CreatureInstance,
    second: CreatureInstance,
    economics: RitualEconomics,
    step: RitualStep,
) -> RitualPendingSchema:
    return RitualPendingSchema(
        first_instance_id=first.instance_id,
        second_instance_id=second.instance_id,
        rarity=economics.rarity,
        from_level=economics.from_level,
        progress=step.state.progress,
        round_index=step.state.round_index,
        wait_remaining=step.wait_remaining,
        cooldown_until=step.state.cooldown_until(economics),
        anima_spent=(step.state.round_index - 1) * economics.subsequent_round_cost,
        increment=step.increment,
        round_taken=step.kind != RitualStepKind.waiting,
    )
