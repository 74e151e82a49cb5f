from fastapi import FastAPI
from app.api.v1 import v1_router
from app.config.settings import settings
from app.core.db import engine
from app.core.logging_config import setup_logging
from app.infrastructure.db.base import Base

setup_logging()

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)


@app.on_event("startup")
async def startup():
    # Local/dev convenience; production schemas come from alembic
    if settings.ENVIRONMENT in ("dev", "local"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


app.include_router(v1_router)
