from sqlalchemy.ext.asyncio import create_async_engine
from creature_server.load_secrets import user, password, host, port, db_name, database_url

POSTGRES_DATABASE_URL = (
    f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"
)

if database_url and database_url.startswith("sqlite"):
    # sqlite has no connection pool to size.
    engine = create_async_engine(database_url, echo=False)
else:
    engine = create_async_engine(database_url or POSTGRES_DATABASE_URL, pool_size=20, max_overflow=20)
