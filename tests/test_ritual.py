from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from uuid6 import uuid7

from creature_server.domain.errors import InsufficientAnima
from creature_server.domain.rarity_economics import ritual_economics
from creature_server.domain.ritual import (
    PairStatus,
    RitualStepKind,
    classify_pair,
    plan_ritual_round,
    ritual_fields,
    stale_partner_ids,
)
from tests.conftest import StubRandom

NOW = datetime(2026, 3, 1, 9, 0, 0)


def unpaired():
    return SimpleNamespace(
        instance_id=uuid7(),
        partner_instance_id=None,
        progress_percent=0,
        ritual_round=0,
        ritual_started_at=None,
        last_round_at=None,
    )


def paired(progress=50, round_index=1, last_round_at=NOW, started_at=NOW):
    first, second = unpaired(), unpaired()
    for this, other in ((first, second), (second, first)):
        this.partner_instance_id = other.instance_id
        this.progress_percent = progress
        this.ritual_round = round_index
        this.ritual_started_at = started_at
        this.last_round_at = last_round_at
    return first, second


class TestClassifyPair:
    def test_fresh_pair_is_unpaired(self):
        assert classify_pair(unpaired(), unpaired()) == (PairStatus.unpaired, None)

    def test_mutual_link_is_awaiting(self):
        first, second = paired(progress=40, round_index=2)
        status, state = classify_pair(first, second)
        assert status == PairStatus.awaiting
        assert state.progress == 40
        assert state.round_index == 2
        assert state.last_round_at == NOW

    def test_one_sided_link_is_corrupted(self):
        first, second = paired()
        second.partner_instance_id = None
        assert classify_pair(first, second)[0] == PairStatus.corrupted

    def test_progress_without_partner_is_corrupted(self):
        first, second = unpaired(), unpaired()
        first.progress_percent = 30
        assert classify_pair(first, second)[0] == PairStatus.corrupted

    def test_missing_timestamp_is_corrupted(self):
        first, second = paired()
        first.last_round_at = second.last_round_at = None
        assert classify_pair(first, second)[0] == PairStatus.corrupted

    def test_mirrors_that_disagree_are_corrupted(self):
        first, second = paired()
        second.progress_percent = 65
        assert classify_pair(first, second)[0] == PairStatus.corrupted


class TestPlanRitualRound:
    def test_opening_is_free_and_starts_cooldown(self):
        economics = ritual_economics("common", 10)
        step = plan_ritual_round(unpaired(), unpaired(), economics, 0, NOW, StubRandom())
        assert step.kind == RitualStepKind.opened
        assert step.anima_cost == 0
        assert step.state.progress == 50
        assert step.state.round_index == 1
        assert step.wait_remaining == timedelta(minutes=15)
        assert not step.repaired

    def test_within_cooldown_reports_remaining_wait(self):
        economics = ritual_economics("common", 10)
        first, second = paired()
        step = plan_ritual_round(first, second, economics, 0, NOW + timedelta(minutes=4), StubRandom())
        assert step.kind == RitualStepKind.waiting
        assert step.wait_remaining == timedelta(minutes=11)
        assert step.state.progress == 50

    def test_insufficient_anima_after_cooldown(self):
        economics = ritual_economics("rare", 20)
        first, second = paired(progress=25)
        with pytest.raises(InsufficientAnima) as exc_info:
            plan_ritual_round(first, second, economics, 119, NOW + timedelta(hours=1), StubRandom(30))
        assert exc_info.value.required == 120
        assert exc_info.value.available == 119

    def test_paid_round_advances(self):
        economics = ritual_economics("rare", 10)
        first, second = paired(progress=25)
        later = NOW + timedelta(minutes=30)
        step = plan_ritual_round(first, second, economics, 500, later, StubRandom(33))
        assert step.kind == RitualStepKind.advanced
        assert step.state.progress == 58
        assert step.state.round_index == 2
        assert step.state.last_round_at == later
        assert step.state.started_at == NOW
        assert step.anima_cost == 60
        assert step.wait_remaining == timedelta(minutes=30)

    def test_completion_clamps_to_hundred(self):
        economics = ritual_economics("common", 10)
        first, second = paired(progress=50)
        step = plan_ritual_round(first, second, economics, 30, NOW + timedelta(minutes=15), StubRandom(62))
        assert step.kind == RitualStepKind.completed
        assert step.increment == 62
        assert step.state.progress == 100
        assert step.wait_remaining == timedelta(0)
        assert step.ritual_anima_spent == 30

    def test_forced_final_round(self):
        economics = ritual_economics("rare", 10)
        first, second = paired(progress=75, round_index=3)
        step = plan_ritual_round(first, second, economics, 60, NOW + timedelta(minutes=30), StubRandom())
        assert step.kind == RitualStepKind.completed
        assert step.increment == 25
        assert step.ritual_anima_spent == 180

    def test_corrupted_pair_reopens(self):
        economics = ritual_economics("rare", 10)
        first, second = unpaired(), unpaired()
        first.progress_percent = 60
        step = plan_ritual_round(first, second, economics, 0, NOW, StubRandom())
        assert step.kind == RitualStepKind.opened
        assert step.repaired
        assert step.state.progress == 25


def test_stale_partners_are_listed_once():
    first, second, third = unpaired(), unpaired(), unpaired()
    first.partner_instance_id = third.instance_id
    second.partner_instance_id = third.instance_id
    assert stale_partner_ids(first, second) == (third.instance_id,)


def test_ritual_fields_point_at_the_other_side():
    economics = ritual_economics("common", 10)
    first, second = unpaired(), unpaired()
    step = plan_ritual_round(first, second, economics, 0, NOW, StubRandom())
    assert ritual_fields(step.state, first.instance_id)["partner_instance_id"] == second.instance_id
    assert ritual_fields(step.state, second.instance_id)["partner_instance_id"] == first.instance_id
    with pytest.raises(ValueError):
        ritual_fields(step.state, uuid7())
