import logging
from asyncio import Lock
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID


class PlayerLockManager:
    """Serializes merge requests per player inside one server process.

    Requests from other processes are caught by the row lock and version
    check on the player row; this lock keeps same-process requests from
    even reaching that point with the same snapshot.
    """

    def __init__(self):
        self.locks: dict[UUID, Lock] = {}  # player_idごとのLock
        self.waiters: dict[UUID, int] = {}  # player_idごとの利用中リクエスト数
        self.lock = Lock()  # locks/waitersへのアクセスを保護

    async def acquire_lock(self, player_id: UUID) -> Lock:
        """Get the Lock of the specified player_id and register one user of it

        Args:
            player_id (UUID): ID to identify this player

        Returns:
            Lock: Lock of the specified player_id
        """
        async with self.lock:
            if player_id not in self.locks:
                self.locks[player_id] = Lock()
                self.waiters[player_id] = 0
            self.waiters[player_id] += 1
            return self.locks[player_id]

    async def release_lock(self, player_id: UUID):
        """Unregister one user and delete the Lock when nobody uses it

        Args:
            player_id (UUID): ID to identify this player
        """
        async with self.lock:
            if player_id not in self.waiters:
                return
            self.waiters[player_id] -= 1
            if self.waiters[player_id] <= 0:
                del self.locks[player_id]
                del self.waiters[player_id]

    @asynccontextmanager
    async def hold(self, player_id: UUID) -> AsyncIterator[None]:
        """Run the block while holding the player's lock"""
        player_lock = await self.acquire_lock(player_id)
        try:
            async with player_lock:
                logging.debug(f"Holding merge lock for player {player_id}")
                yield
        finally:
            await self.release_lock(player_id)

    def active_players(self) -> int:
        return len(self.locks)


player_locks = PlayerLockManager()
