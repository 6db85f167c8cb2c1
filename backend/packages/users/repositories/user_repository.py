from typing import List, Optional
from sqlalchemy import select, func

from common.repositories.base import BaseRepository
from packages.users.models.database.user import ProfileEntity, UserRoleEntity
from packages.users.models.domain.user import Profile, UserRole
from common.core.otel_axiom_exporter import trace_span


class ProfileRepository(BaseRepository[ProfileEntity, Profile]):
    def __init__(self, db_session=None):
        super().__init__(ProfileEntity, Profile, db_session)

    def _account_owner_query(self):
        roles = [role.value for role in UserRole.account_owner_roles()]
        return (
            select(ProfileEntity)
            .join(UserRoleEntity, UserRoleEntity.user_id == ProfileEntity.id)
            .where(UserRoleEntity.role.in_(roles))
        )

    @trace_span
    async def get_account_owner_by_email(self, email: str) -> Optional[Profile]:
        """Find the owner/admin profile with this e-mail (case-insensitive)."""
        query = (
            self._account_owner_query()
            .where(
                func.lower(ProfileEntity.email) == email.lower(),
                ProfileEntity.factory_id.is_not(None),
            )
            .limit(1)
        )
        async with self._get_session(readonly=True) as session:
            result = await session.execute(query)
            profile = result.scalars().first()
            return self._entity_to_domain(profile) if profile else None

    @trace_span
    async def get_account_owner_emails(self, factory_id: str) -> List[str]:
        """E-mail addresses of a factory's owners and admins, deduplicated."""
        query = self._account_owner_query().where(
            ProfileEntity.factory_id == factory_id,
            ProfileEntity.email.is_not(None),
        )
        async with self._get_session(readonly=True) as session:
            result = await session.execute(query)
            emails: List[str] = []
            for profile in result.scalars().all():
                if profile.email not in emails:
                    emails.append(profile.email)
            return emails
