import os

# The engine module reads DATABASE_URL at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from uuid6 import uuid7  # noqa: E402

from creature_server.authentication import basic_authentication  # noqa: E402
from creature_server.crud import CreateData, ReadData  # noqa: E402
from creature_server.domain.creature_stats import generate_level_table, synthesize_level_stats  # noqa: E402
from creature_server.models.schema_models import (  # noqa: E402
    CreatureInstanceSchema,
    CreatureTemplateSchema,
    PlayerSchema,
)
from creature_server.models.schemas import Base  # noqa: E402
from creature_server.services import catalog_db, merge_db  # noqa: E402

T0 = datetime(2026, 1, 5, 12, 0, 0)


class StubRandom:
    """Returns the queued draws in order, recording the requested ranges."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = []

    def integers(self, low, high=None, size=None, dtype=None, endpoint=False):
        self.calls.append((low, high, endpoint))
        return self.values.pop(0)


class Seeder:
    def __init__(self, session_factory: async_sessionmaker):
        self.Session = session_factory

    async def template(
        self,
        template_key: str = "goblin",
        name: str | None = None,
        rarity: str = "common",
        with_rows: bool = True,
        row_overrides: dict | None = None,
        **fields,
    ) -> CreatureTemplateSchema:
        """Insert a template; ``row_overrides`` maps level -> column values for that row."""
        data = {"base_attack": 20, "base_health": 100, "growth_percent": 10}
        data.update(fields)
        template = CreatureTemplateSchema(
            template_id=uuid7(),
            template_key=template_key,
            name=name or template_key.title(),
            rarity=rarity,
            **data,
        )
        rows = generate_level_table(template) if with_rows else []
        for row in rows:
            row.update((row_overrides or {}).get(row["level"], {}))
        async with self.Session() as session:
            async with session.begin():
                await CreateData.add_template_data(template, rows, session)
        return template

    async def player(self, anima: int = 0) -> UUID:
        player = PlayerSchema(player_id=uuid7(), player_name="tester", anima=anima)
        async with self.Session() as session:
            async with session.begin():
                await CreateData.add_player_data(player, session)
        return player.player_id

    async def creature(
        self,
        player_id: UUID,
        template: CreatureTemplateSchema,
        level: int,
        **fields,
    ) -> UUID:
        data = synthesize_level_stats(template, level)
        data.update(
            instance_id=uuid7(),
            player_id=player_id,
            template_id=template.template_id,
            template_key=template.template_key,
            name=template.name,
            created_at=T0,
        )
        data.update(fields)
        instance = CreatureInstanceSchema(**data)
        async with self.Session() as session:
            async with session.begin():
                await CreateData.add_creature_instance(instance, session)
        return instance.instance_id

    async def creatures(self, player_id: UUID) -> dict:
        async with self.Session() as session:
            rows = await ReadData.read_player_creatures(player_id, session)
            return {row.instance_id: CreatureInstanceSchema.model_validate(row) for row in rows}

    async def player_row(self, player_id: UUID) -> PlayerSchema:
        async with self.Session() as session:
            return PlayerSchema.model_validate(await ReadData.read_player(player_id, session))

    async def history(self, player_id: UUID):
        async with self.Session() as session:
            return await ReadData.read_merge_history(player_id, session)


@pytest_asyncio.fixture
async def session_factory(tmp_path, monkeypatch):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'creatures.sqlite3'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        autocommit=False,
        class_=AsyncSession,
        autoflush=True,
        expire_on_commit=False,
        bind=engine,
    )
    monkeypatch.setattr(merge_db, "Session", factory)
    monkeypatch.setattr(catalog_db, "Session", factory)
    monkeypatch.setattr(basic_authentication, "Session", factory)
    yield factory
    await engine.dispose()


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)
