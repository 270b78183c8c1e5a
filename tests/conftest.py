"""
Shared fixtures for the test suite.

The test doubles themselves live in tests/fakes.py.
"""

import pytest
from fastapi.testclient import TestClient

from file_gateway.config.settings import Settings
from file_gateway.main import create_app
from tests.fakes import RecordingStore, make_settings


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(settings: Settings, store: RecordingStore) -> TestClient:
    app = create_app(settings=settings, storage=store)
    return TestClient(app)


@pytest.fixture
def unconfigured_client(store: RecordingStore) -> TestClient:
    """Client for an app started without a bucket name."""
    app = create_app(settings=make_settings(aws_s3_bucket_name=None), storage=store)
    return TestClient(app)
