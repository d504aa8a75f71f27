"""Tests for user model validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from shared.auth.models import NewUser, Role, User


class TestUserValidation:
    def test_local_with_empty_password_hash_rejected(self):
        with pytest.raises(ValidationError, match="password hash"):
            User(user_id=1, email="a@x.com", username="alice", password_hash="")

    def test_empty_email_rejected(self):
        with pytest.raises(ValidationError, match="Email is required"):
            NewUser(email="", username="alice", password_hash="simple$abc")

    def test_federated_user_has_no_hash(self):
        user = User(user_id=1, email="a@x.com", username="alice_x1y2z")
        assert user.is_federated is True
        assert user.role == Role.USER

    def test_local_user_is_not_federated(self):
        user = User(user_id=1, email="a@x.com", username="alice", password_hash="simple$abc")
        assert user.is_federated is False

    def test_role_parsed_from_string(self):
        user = User(user_id=1, email="a@x.com", username="root", password_hash="h", role="admin")
        assert user.role is Role.ADMIN

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            User(user_id=1, email="a@x.com", username="root", password_hash="h", role="moderator")

    def test_user_is_frozen(self):
        user = User(user_id=1, email="a@x.com", username="alice", password_hash="h")
        with pytest.raises(ValidationError):
            user.role = Role.ADMIN  # type: ignore[misc]
