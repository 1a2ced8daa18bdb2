from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from jobkeeper.models import TableReference
from jobkeeper.remote.in_memory import InMemoryRemoteJobService
from jobkeeper.settings import CoordinatorConfig, PollPolicy


@pytest.fixture
def table_x() -> TableReference:
    return TableReference(project_id="proj1", dataset_id="sales", table_id="tableX")


@pytest.fixture
def fast_config() -> CoordinatorConfig:
    return CoordinatorConfig(poll=PollPolicy(interval_schedule_seconds=[0.0], max_transient_retries=2))


@pytest.fixture
def service() -> InMemoryRemoteJobService:
    return InMemoryRemoteJobService()
