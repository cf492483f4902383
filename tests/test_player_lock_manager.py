import asyncio

import pytest
from uuid6 import uuid7

from creature_server.player_lock_manager import PlayerLockManager


@pytest.mark.asyncio
async def test_same_player_requests_run_one_at_a_time():
    manager = PlayerLockManager()
    player_id = uuid7()
    events = []

    async def request(name):
        async with manager.hold(player_id):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(request("a"), request("b"))

    assert events in (["a-start", "a-end", "b-start", "b-end"], ["b-start", "b-end", "a-start", "a-end"])
    assert manager.active_players() == 0


@pytest.mark.asyncio
async def test_different_players_do_not_block_each_other():
    manager = PlayerLockManager()
    first_inside = asyncio.Event()

    async def first():
        async with manager.hold(uuid7()):
            first_inside.set()
            await asyncio.sleep(0.05)

    async def second():
        await first_inside.wait()
        async with manager.hold(uuid7()):
            assert manager.active_players() == 2

    await asyncio.gather(first(), second())


@pytest.mark.asyncio
async def test_lock_is_released_on_error():
    manager = PlayerLockManager()
    player_id = uuid7()

    with pytest.raises(RuntimeError):
        async with manager.hold(player_id):
            raise RuntimeError("boom")

    assert manager.active_players() == 0
    async with manager.hold(player_id):
        assert manager.active_players() == 1
