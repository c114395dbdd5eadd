import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.core.logging import setup_logging
from app.core.exceptions import api_exception_handler, general_exception_handler, APIError
from app.core.dependencies import build_services
from app.database import DatabasePool
from app.services.gateways import get_team_client
from app.storage.kv_store import MemoryKeyValueStore, PostgresKeyValueStore
import logging

# Initialize logging
setup_logging()

logger = logging.getLogger(__name__)


async def create_store():
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory storage: state is lost on restart")
        return MemoryKeyValueStore()

    store = PostgresKeyValueStore()
    await store.ensure_schema()
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    # Startup: wire services (tests may pre-wire them) and start the auto-kick loop
    if getattr(app.state, "services", None) is None:
        store = await create_store()
        app.state.services = build_services(store, get_team_client())

    from app.tasks.auto_kick import run_auto_kick_loop
    auto_kick_task = asyncio.create_task(run_auto_kick_loop(app.state.services.reconciler))

    yield

    # Shutdown: Cancel background task
    auto_kick_task.cancel()
    try:
        await auto_kick_task
    except asyncio.CancelledError:
        pass

    await app.state.services.client.close()
    await app.state.services.store.close()
    await DatabasePool.close_pool()


app = FastAPI(
    title="SeatPool API",
    description="Pooled team seat allocation with access keys and automatic membership reconciliation",
    version="1.0.0",
    debug=settings.debug,
    docs_url=None if settings.is_production else "/docs",
    lifespan=lifespan
)

# Exception handlers
app.add_exception_handler(APIError, api_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and include routers
from app.routers import join
from app.routers.admin import (
    teams as admin_teams,
    keys as admin_keys,
    invitations as admin_invitations,
    auto_kick as admin_auto_kick,
)

# Public join flow
app.include_router(join.router)

# Administration (authentication is enforced in front of the service)
app.include_router(admin_teams.router)
app.include_router(admin_keys.router)
app.include_router(admin_invitations.router)
app.include_router(admin_auto_kick.router)

@app.get("/")
async def root():
    return {
        "service": "SeatPool API",
        "version": "1.0.0",
        "storage": settings.storage_backend,
        "environment": settings.app_env
    }

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "storage": settings.storage_backend
    }

# Auto-start server if run directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
