import asyncio
import inspect
import os
import sys
import tempfile
from pathlib import Path

# Environment must be in place before axioquan builds its engine
_test_tmp_dir = tempfile.mkdtemp(prefix="axioquan_test_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_test_tmp_dir}/app.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("ADMIN_REGISTRATION_KEY", "test-admin-key")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from axioquan.core.config import get_settings  # noqa: E402
from axioquan.db.base import Base, Role  # noqa: E402
from axioquan.models.role import DEFAULT_ROLES  # noqa: E402
from axioquan.services.session import CookieJar, SessionManager  # noqa: E402

STRONG_PASSWORD = "Str0ng!pass"


class FakeClock:
    """Settable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(settings, clock):
    return SessionManager(settings, clock=clock)


@pytest.fixture
def jar():
    return CookieJar()


@pytest.fixture
def db_path(tmp_path):
    """Fresh schema with the reference roles, built on the sync driver."""
    path = tmp_path / "store.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    with Session(sync_engine) as session:
        session.add_all([Role(name=name, description=desc) for name, desc in DEFAULT_ROLES.items()])
        session.commit()
    sync_engine.dispose()
    return path


@pytest.fixture
def session_factory(db_path):
    """Async session factory; open sessions inside the test's event loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def count_rows(db_path):
    def _count(table: str) -> int:
        engine = create_engine(f"sqlite:///{db_path}")
        try:
            with engine.connect() as conn:
                return conn.exec_driver_sql(f"SELECT COUNT(*) FROM {table}").scalar_one()
        finally:
            engine.dispose()

    return _count
