"""AxioQuan e-learning - FastAPI app entry point."""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from axioquan.core.config import get_settings
from axioquan.core.guards import AuthRedirect, auth_redirect_handler
from axioquan.core.logging import configure_logging
from axioquan.core.middleware import setup_middleware
from axioquan.db.base import Base
from axioquan.db.session import AsyncSessionLocal, engine
from axioquan.routers import api, auth, web
from axioquan.services.accounts import seed_roles

settings = get_settings()
configure_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        await seed_roles(db)

    logger.info("app_started", environment=settings.environment)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="E-learning platform: accounts, sessions and role-gated dashboards",
    lifespan=lifespan,
)

setup_middleware(app)
app.add_exception_handler(AuthRedirect, auth_redirect_handler)

app.include_router(web.router)
app.include_router(auth.router)
app.include_router(api.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
