from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_coordinator
from app.db.session import build_engine, build_session_factory, init_db
from app.main import app
from app.services.privacy_timer import PrivacyTimer
from app.services.session_coordinator import SessionCoordinator


class FakeClock:
    """Relógio controlado: os testes avançam o tempo na mão."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest_asyncio.fixture
async def engine(tmp_path):
    # banco descartável por teste
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'kidwatch_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def privacy_timer():
    # sem task agendada: os ticks são chamados pelo teste
    return PrivacyTimer(tick_interval_seconds=None)


@pytest_asyncio.fixture
async def coordinator(session_factory, privacy_timer, clock):
    coord = SessionCoordinator(
        session_factory,
        privacy_timer=privacy_timer,
        clock=clock,
    )
    yield coord
    await coord.shutdown()


@pytest_asyncio.fixture
async def client(coordinator):
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
