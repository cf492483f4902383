from types import SimpleNamespace

import pytest
from uuid6 import uuid7

from creature_server.domain.errors import EligibilityError, EligibilityReason, ValidationError
from creature_server.domain.merge_rules import (
    MergeRoute,
    check_eligibility,
    parse_instance_ids,
    require_route,
    same_template,
)

PLAYER_ID = uuid7()
GOBLIN_ID = uuid7()


def creature(level=5, template_id=GOBLIN_ID, template_key="goblin", name="Goblin", player_id=PLAYER_ID):
    return SimpleNamespace(
        instance_id=uuid7(),
        player_id=player_id,
        template_id=template_id,
        template_key=template_key,
        name=name,
        level=level,
    )


class TestParseInstanceIds:
    def test_accepts_strings_and_uuids(self):
        first, second = uuid7(), uuid7()
        assert parse_instance_ids(str(first), second) == (first, second)

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_instance_ids("not-a-uuid", uuid7())

    def test_rejects_same_id_twice(self):
        same = uuid7()
        with pytest.raises(ValidationError):
            parse_instance_ids(same, str(same))


class TestCheckEligibility:
    def test_routes_by_level(self):
        assert check_eligibility(PLAYER_ID, creature(5), creature(5)) == MergeRoute.instant
        assert check_eligibility(PLAYER_ID, creature(39), creature(39)) == MergeRoute.instant
        for level in (10, 20, 30):
            assert check_eligibility(PLAYER_ID, creature(level), creature(level)) == MergeRoute.ritual

    @pytest.mark.parametrize(
        "first, second, reason",
        [
            (None, creature(), EligibilityReason.not_found),
            (creature(player_id=uuid7()), creature(), EligibilityReason.not_found),
            (creature(template_id=uuid7(), template_key="orc"), creature(), EligibilityReason.template_mismatch),
            (creature(5), creature(6), EligibilityReason.level_mismatch),
            (creature(40), creature(40), EligibilityReason.already_max_level),
        ],
    )
    def test_rejections(self, first, second, reason):
        with pytest.raises(EligibilityError) as exc_info:
            check_eligibility(PLAYER_ID, first, second)
        assert exc_info.value.reason == reason

    def test_ownership_is_checked_before_template(self):
        stranger = creature(template_id=uuid7(), player_id=uuid7())
        with pytest.raises(EligibilityError) as exc_info:
            check_eligibility(PLAYER_ID, creature(), stranger)
        assert exc_info.value.reason == EligibilityReason.not_found


def test_same_template_falls_back_to_type_tag_then_name():
    assert same_template(creature(template_id=None), creature())
    assert not same_template(creature(template_id=None), creature(template_key="orc"))
    assert same_template(creature(template_id=None, template_key=None), creature(template_key=None))


def test_require_route():
    require_route(MergeRoute.instant, None, 5)
    require_route(MergeRoute.ritual, MergeRoute.ritual, 10)
    with pytest.raises(EligibilityError) as exc_info:
        require_route(MergeRoute.ritual, MergeRoute.instant, 10)
    assert exc_info.value.reason == EligibilityReason.requires_ritual
    with pytest.raises(EligibilityError) as exc_info:
        require_route(MergeRoute.instant, MergeRoute.ritual, 5)
    assert exc_info.value.reason == EligibilityReason.not_milestone
