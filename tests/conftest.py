"""
Shared pytest fixtures for all tests.

Provides a small clinic network (locations, physicians, weekly schedules)
loaded into either the in-memory store or a SQLite-backed SQL store, plus
scheduler settings isolated from the developer's environment.
"""

import pytest

from scheduler.config import SchedulerSettings
from scheduler.engine import AppointmentScheduler
from storage.database import create_engine_from_settings, create_session_factory, init_db
from storage.memory import InMemoryRepository
from storage.sql import SqlRepository
from tests.helpers import build_clinic

# ============================================================================
# SETTINGS
# ============================================================================


@pytest.fixture
def settings() -> SchedulerSettings:
    """Defaults only; ignores any local .env file."""
    return SchedulerSettings(_env_file=None)


# ============================================================================
# REPOSITORY FIXTURES
# ============================================================================


@pytest.fixture
def memory_repo() -> InMemoryRepository:
    return build_clinic(InMemoryRepository())


@pytest.fixture
def sql_engine(tmp_path, settings):
    engine = create_engine_from_settings(settings, url=f"sqlite:///{tmp_path / 'scheduler_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_repo(sql_engine) -> SqlRepository:
    return build_clinic(SqlRepository(create_session_factory(sql_engine)))


@pytest.fixture(params=["memory", "sql"])
def repo(request):
    """Runs the test once per storage adapter."""
    if request.param == "memory":
        return request.getfixturevalue("memory_repo")
    return request.getfixturevalue("sql_repo")


@pytest.fixture
def scheduler(repo, settings) -> AppointmentScheduler:
    return AppointmentScheduler(repo, settings=settings)


@pytest.fixture
def memory_scheduler(memory_repo, settings) -> AppointmentScheduler:
    return AppointmentScheduler(memory_repo, settings=settings)
