# tests/conftest.py
import pytest

from portwatch.core.exceptions import AcquisitionError
from portwatch.core.store import SnapshotStore
from tests.helpers import FakeCollector, StepClock


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path / "data")


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def failing_collector():
    return FakeCollector(error=AcquisitionError("ss failed", command=["ss"], exit_code=1, stderr="boom"))
