import pytest

from deutschlern.config import Settings
from deutschlern.history import HistoryCache
from deutschlern.logger import logger
from deutschlern.orchestrator import ContentOrchestrator
from deutschlern.reports import MemoryReportBackend, ReportStore

from fakes import FakeGateway


@pytest.fixture(autouse=True)
def quiet_logger():
    enabled = logger.enabled
    logger.enabled = False
    yield
    logger.enabled = enabled


@pytest.fixture
def settings():
    return Settings(api_key="sk-or-test-key-1234567890", display_delay=0)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def orchestrator(gateway):
    return ContentOrchestrator(gateway, HistoryCache())


@pytest.fixture
def report_store():
    return ReportStore(MemoryReportBackend())
