"""Shared fixtures for forum integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
from starlette.testclient import TestClient

from forum.server.app import create_app
from forum.server.settings import ForumServerSettings
from forum.tests.helpers.auth import ADMIN_EMAIL, ADMIN_PASSWORD
from forum.tests.helpers.oauth import FakeGoogle
from shared.auth.settings import AuthSettings

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def client(tmp_path: Path, google: FakeGoogle) -> Iterator[TestClient]:
    """App with a bootstrap admin and only Google configured."""
    app = create_app(
        settings=ForumServerSettings(log_dir=None),
        auth_settings=AuthSettings(
            oauth_state_secret="test-state-secret",
            database_path=str(tmp_path / "forum.db"),
            password_hasher="simple",
            google_client_id="google-id",
            google_client_secret="google-secret",
            admin_email=ADMIN_EMAIL,
            admin_username="admin",
            admin_password=ADMIN_PASSWORD,
        ),
        oauth_transport=httpx.MockTransport(google),
    )
    with TestClient(app) as test_client:
        yield test_client
