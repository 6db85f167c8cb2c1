"""
Unit tests for ProfileRepository owner/admin lookups.
"""

import pytest

from packages.users.repositories.user_repository import ProfileRepository


@pytest.fixture
def profile_repo():
    return ProfileRepository()


@pytest.mark.asyncio
class TestProfileRepository:
    async def test_get_account_owner_by_email_is_case_insensitive(
        self, profile_repo, owner_profile
    ):
        profile = await profile_repo.get_account_owner_by_email(
            "Owner@Sunrise-Garments.TEST"
        )

        assert profile is not None
        assert profile.id == owner_profile.id
        assert profile.factory_id == owner_profile.factory_id

    async def test_admin_counts_as_account_owner(self, profile_repo, admin_profile):
        profile = await profile_repo.get_account_owner_by_email(admin_profile.email)
        assert profile.id == admin_profile.id

    async def test_worker_is_not_account_owner(self, profile_repo, worker_profile):
        profile = await profile_repo.get_account_owner_by_email(worker_profile.email)
        assert profile is None

    async def test_unknown_email(self, profile_repo, owner_profile):
        assert await profile_repo.get_account_owner_by_email("nobody@example.com") is None

    async def test_get_account_owner_emails(
        self, profile_repo, sample_factory, owner_profile, admin_profile, worker_profile
    ):
        emails = await profile_repo.get_account_owner_emails(sample_factory.id)

        assert sorted(emails) == sorted([owner_profile.email, admin_profile.email])
        assert worker_profile.email not in emails

    async def test_get_account_owner_emails_other_factory(
        self, profile_repo, trial_factory, owner_profile
    ):
        assert await profile_repo.get_account_owner_emails(trial_factory.id) == []
