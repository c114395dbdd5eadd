"""
Configuración global de pytest y fixtures compartidos.
"""
import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
import sys
import os

# Add app to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.main import app
from app.core.dependencies import Services, build_services
from app.storage.kv_store import MemoryKeyValueStore
from tests.utils.mocks import FakeTeamClient, FrozenClock


# ============================================================================
# Reloj y almacenamiento
# ============================================================================

@pytest.fixture
def clock() -> FrozenClock:
    """Reloj congelado en una hora fija (UTC)."""
    return FrozenClock(datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


# ============================================================================
# Servicio remoto
# ============================================================================

@pytest.fixture
def team_client() -> FakeTeamClient:
    return FakeTeamClient()


# ============================================================================
# Servicios
# ============================================================================

@pytest.fixture
def services(store, team_client, clock) -> Services:
    """Servicios cableados contra el store en memoria y el cliente falso."""
    return build_services(store, team_client, clock=clock, capacity=4, timezone="UTC")


@pytest.fixture
async def enable_auto_kick(services):
    """Auto-kick habilitado todo el día."""
    from app.models.auto_kick import AutoKickConfig
    return await services.auto_kick_config.save(
        AutoKickConfig(enabled=True, check_interval=300, start_hour=0, end_hour=23)
    )


# ============================================================================
# Cliente HTTP Async
# ============================================================================

@pytest.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP async para hacer requests al API."""
    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.services = None
