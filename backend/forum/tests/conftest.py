"""Shared fixtures for forum tests."""

import os

# Auth settings require AUTH_OAUTH_STATE_SECRET. Set a test default
# before any AuthSettings is instantiated.
os.environ.setdefault("AUTH_OAUTH_STATE_SECRET", "test-secret")
