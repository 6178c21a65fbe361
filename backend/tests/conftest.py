"""Shared test fixtures for PrintFleet backend tests."""

import logging
import os
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest

# IMPORTANT: Set environment variables BEFORE any app imports
# This must happen before settings/config are loaded
os.environ["LOG_TO_FILE"] = "false"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from backend.app.core.config import settings  # noqa: E402

settings.log_to_file = False

from backend.app.core.database import Base  # noqa: E402
from backend.app.utils.timeutil import utcnow  # noqa: E402

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine(request, tmp_path):
    """Create a test database engine.

    In-memory SQLite shares one connection across sessions (StaticPool), so
    tests marked ``file_db`` that race independent sessions get a file-backed
    database where each session has its own connection.
    """
    url = TEST_DATABASE_URL
    if request.node.get_closest_marker("file_db") is not None:
        url = f"sqlite+aiosqlite:///{tmp_path / 'race.db'}"
    engine = create_async_engine(url, echo=False)

    # Import all models to register them
    from backend.app.models import maintenance, print_job, printer  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def test_app(session_maker):
    """A fresh application per test so locks and WebSocket state never leak."""
    from backend.app.core.database import get_db
    from backend.app.main import create_app

    app = create_app()

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    # The WebSocket route opens its own sessions
    app.state.session_factory = session_maker

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(test_app, db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


# ============================================================================
# Factory Fixtures for Test Data
# ============================================================================


@pytest.fixture
def printer_factory(db_session):
    """Factory to create test printers."""
    _counter = [0]  # Use list to allow mutation in nested function

    async def _create_printer(**kwargs):
        from backend.app.models.printer import Printer

        _counter[0] += 1
        counter = _counter[0]

        defaults = {
            "name": f"Test Printer {counter}",  # Names are unique
            "status": "Idle",
        }
        defaults.update(kwargs)

        printer = Printer(**defaults)
        db_session.add(printer)
        await db_session.commit()
        await db_session.refresh(printer)
        return printer

    return _create_printer


@pytest.fixture
def job_factory(db_session):
    """Factory to create test print jobs."""

    async def _create_job(**kwargs):
        from backend.app.models.print_job import PrintJob

        defaults = {
            "name": "Test Job",
            "printer": "Any",
            "material": "PLA",
            "estimated_time": "2h 15m",
            "status": "Queued",
            "progress": 0,
        }
        defaults.update(kwargs)

        job = PrintJob(**defaults)
        db_session.add(job)
        await db_session.commit()
        await db_session.refresh(job)
        return job

    return _create_job


@pytest.fixture
def maintenance_record_factory(db_session):
    """Factory to create maintenance records without touching the schedule."""

    async def _create_record(printer_id: int, **kwargs):
        from backend.app.models.maintenance import MaintenanceRecord

        defaults = {
            "printer_id": printer_id,
            "date": utcnow() - timedelta(days=1),
            "type": "Routine",
            "description": "Clean and lubricate rods",
            "technician": "Sam",
            "status": "Pending",
        }
        defaults.update(kwargs)

        record = MaintenanceRecord(**defaults)
        db_session.add(record)
        await db_session.commit()
        await db_session.refresh(record)
        return record

    return _create_record


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_discovery_reply():
    """Sample UDP reply from a printer answering a discovery broadcast."""
    return {
        "type": "PRINTER_DISCOVERY_RESPONSE",
        "id": "prn-0042",
        "name": "Workshop Prusa",
        "port": 80,
        "firmwareVersion": "2.1.0",
    }


# ============================================================================
# Log Capture Fixtures for Error Detection
# ============================================================================


class LogCapture(logging.Handler):
    """Handler that captures log records for testing."""

    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord):
        self.records.append(record)

    def clear(self):
        self.records.clear()

    def get_errors(self) -> list[logging.LogRecord]:
        """Get all ERROR and CRITICAL level records."""
        return [r for r in self.records if r.levelno >= logging.ERROR]

    def get_warnings(self) -> list[logging.LogRecord]:
        """Get all WARNING level records."""
        return [r for r in self.records if r.levelno == logging.WARNING]

    def has_errors(self) -> bool:
        """Check if any errors were logged."""
        return len(self.get_errors()) > 0

    def format_errors(self) -> str:
        """Format all errors as a string for assertion messages."""
        errors = self.get_errors()
        if not errors:
            return "No errors"
        formatter = logging.Formatter("%(name)s - %(levelname)s - %(message)s")
        return "\n".join(formatter.format(r) for r in errors)


@pytest.fixture
def capture_logs():
    """Fixture that captures log output during a test.

    Usage:
        def test_something(capture_logs):
            some_function()
            assert not capture_logs.has_errors(), capture_logs.format_errors()
    """
    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    # Attach to root logger to capture all logs
    root_logger = logging.getLogger()
    previous_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler

    root_logger.removeHandler(handler)
    root_logger.setLevel(previous_level)


@pytest.fixture
def assert_no_log_errors(capture_logs):
    """Fixture that automatically asserts no errors were logged."""
    yield capture_logs

    errors = capture_logs.get_errors()
    if errors:
        pytest.fail(f"Unexpected log errors:\n{capture_logs.format_errors()}")
