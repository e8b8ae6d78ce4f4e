"""Unit tests for UserRepository and UserEmailHistoryRepository."""

import pytest
from gatekeeper.repositories.user import UserEmailHistoryRepository, UserRepository
from tests.factories.user import UserFactory


class TestUserRepository:
    """Ensure ``UserRepository`` performs core persistence operations."""

    @pytest.fixture()
    def repo(self):
        return UserRepository()

    def test_create_and_get_user(self, repo, session):
        """Create a user and fetch it by email to verify retrieval."""
        u = UserFactory(email="alice@example.com", username="alice")
        session.commit()

        fetched = repo.get_by_email("  ALICE@example.com ")
        assert fetched is not None
        assert fetched.id == u.id
        assert repo.get_by_username("alice").id == u.id

    def test_exists_by_email(self, repo, session):
        """Return existence flags for known and unknown email addresses."""
        u = UserFactory(email="bob@example.com")

        assert repo.exists_by_email("bob@example.com")
        assert not repo.exists_by_email("bob@example.com", exclude_id=u.id)
        assert not repo.exists_by_email("nonexistent@example.com")

    def test_exists_by_username(self, repo, session):
        UserFactory(username="carol")

        assert repo.exists_by_username("carol")
        assert not repo.exists_by_username("Carol2")

    def test_exists_by_username_can_skip_the_user_itself(self, repo):
        carol = UserFactory(username="carol")

        assert not repo.exists_by_username("carol", exclude_id=carol.id)
        assert repo.exists_by_username("carol", exclude_id=carol.id + 1)

    def test_unknown_filter_is_rejected(self, repo):
        with pytest.raises(ValueError):
            repo.find_one(password_hash="x")


class TestUserEmailHistoryRepository:
    def test_record_and_list(self, session):
        user = UserFactory()
        repo = UserEmailHistoryRepository(session=session)

        repo.record(user_id=user.id, old_email="a@example.com", new_email="b@example.com")
        repo.record(user_id=user.id, old_email="b@example.com", new_email="c@example.com")

        rows = repo.for_user(user.id)
        assert [(r.old_email, r.new_email) for r in rows] == [
            ("a@example.com", "b@example.com"),
            ("b@example.com", "c@example.com"),
        ]
        assert all(r.changed_at is not None for r in rows)

    def test_delete_for_user_keeps_other_trails(self, session):
        user, other = UserFactory(), UserFactory()
        repo = UserEmailHistoryRepository(session=session)
        repo.record(user_id=user.id, old_email="a@example.com", new_email="b@example.com")
        repo.record(user_id=other.id, old_email="x@example.com", new_email="y@example.com")

        assert repo.delete_for_user(user.id) == 1
        assert repo.for_user(user.id) == []
        assert len(repo.for_user(other.id)) == 1
