"""Test bearer token verification."""

import uuid
from datetime import timedelta
from pathlib import Path

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from promptcollab.auth.dependencies import get_current_actor
from promptcollab.auth.models import User, display_label
from promptcollab.auth.security import TokenManager
from promptcollab.exceptions import AuthenticationError


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.unit
class TestTokenManager:

    def test_round_trip(self):
        manager = TokenManager(secret_key="s3cret")
        token = manager.create_access_token({"user_id": "abc"})

        payload = manager.verify_token(token)

        assert payload["user_id"] == "abc"
        assert payload["type"] == "access"

    def test_wrong_secret(self):
        token = TokenManager(secret_key="one").create_access_token({"user_id": "abc"})

        assert TokenManager(secret_key="two").verify_token(token) is None

    def test_expired(self):
        manager = TokenManager(secret_key="s3cret")
        token = manager.create_access_token({"user_id": "abc"}, expires_delta=timedelta(seconds=-5))

        assert manager.verify_token(token) is None

    def test_wrong_type(self):
        manager = TokenManager(secret_key="s3cret")
        token = manager.create_access_token({"user_id": "abc"})

        assert manager.verify_token(token, token_type="refresh") is None


@pytest.mark.unit
class TestCurrentActor:

    async def test_valid_token(self, helpers):
        user_id = uuid.uuid4()
        header = helpers.auth_headers(user_id)["Authorization"]

        actor = await get_current_actor(_credentials(header.split(" ", 1)[1]))

        assert actor == user_id

    async def test_missing_credentials(self):
        with pytest.raises(AuthenticationError):
            await get_current_actor(None)

    async def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            await get_current_actor(_credentials("not-a-jwt"))

    async def test_user_id_not_a_uuid(self):
        from promptcollab.auth.security import token_manager

        token = token_manager.create_access_token({"user_id": "alice"})

        with pytest.raises(AuthenticationError):
            await get_current_actor(_credentials(token))


@pytest.mark.unit
@pytest.mark.parametrize("display_name,email,expected", [
    ("Alice", "alice@example.com", "Alice"),
    (None, "alice@example.com", "alice@example.com"),
    ("", None, "Anonymous"),
    (None, None, "Anonymous"),
])
def test_display_label(display_name, email, expected):
    assert display_label(display_name, email) == expected


@pytest.mark.unit
class TestUserSchema:
    """The users table and its migration agree on email uniqueness."""

    MIGRATION = (
        Path(__file__).parent.parent
        / "alembic" / "versions" / "a1c3e5f7b9d2_create_collaboration_tables.py"
    )

    def test_email_has_single_unique_index(self):
        indexes = {index.name: index for index in User.__table__.indexes}

        assert indexes["ix_users_email"].unique is True
        assert not any(
            constraint.name == "uq_users_email" for constraint in User.__table__.constraints
        )

    def test_migration_creates_matching_index(self):
        source = self.MIGRATION.read_text()

        assert "op.create_index('ix_users_email', 'users', ['email'], unique=True)" in source
        assert "uq_users_email" not in source
