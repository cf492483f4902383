import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from creature_server.create_postgres_engine import engine
from creature_server.load_secrets import log_level
from creature_server.models.schemas import Base
from creature_server.routers import catalog, merge
from creature_server.services.catalog_db import seed_default_catalog

logging.basicConfig(level=log_level)


@asynccontextmanager
async def lifespan(app):
    """Create the tables and the default creature catalog.
    This function is called to start the server.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_default_catalog()
    try:
        yield
    finally:
        await merge.redis.aclose()
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(merge.merge_router)
app.include_router(catalog.catalog_router)


# if __name__ == "__main__":
#     uvicorn.run(app, host="0.0.0.0", port=8080, reload=True)
