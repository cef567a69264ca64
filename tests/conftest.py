"""Shared fixtures: in-process item store, seed helpers, meeting provisioner doubles"""
import pytest

from app.services.memory_store import MemoryItemStore
from tests.fakes import FailingMeetingProvisioner, RecordingMeetingProvisioner, Seeder


@pytest.fixture
def store():
    return MemoryItemStore()


@pytest.fixture
def seed(store):
    return Seeder(store)


@pytest.fixture
def meetings():
    return RecordingMeetingProvisioner()


@pytest.fixture
def failing_meetings():
    return FailingMeetingProvisioner()
