from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from creature_server.create_postgres_engine import engine

# Centralized session factory to avoid creating it in router modules.
# expire_on_commit=False: schemas are built from rows after the transaction ends.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    expire_on_commit=False,
    bind=engine,
)
