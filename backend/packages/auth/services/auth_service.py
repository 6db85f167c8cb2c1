from typing import Optional

from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.providers.factory import get_auth_provider
from packages.auth.providers.interface import AuthProviderInterface
from packages.users.repositories.user_repository import ProfileRepository
from common.core.otel_axiom_exporter import trace_span, get_logger

logger = get_logger(__name__)


class AuthService:
    """Resolves a bearer token to the user and the factory they belong to."""

    def __init__(
        self,
        provider: Optional[AuthProviderInterface] = None,
        profile_repo: Optional[ProfileRepository] = None,
    ):
        self.provider = provider or get_auth_provider()
        self.profile_repo = profile_repo or ProfileRepository()

    @trace_span
    async def authenticate_user_from_token(self, token: str) -> AuthenticatedUser:
        claims = await self.provider.verify_token(token)

        profile = await self.profile_repo.get(claims.sub)
        if profile is None:
            # Valid token but no profile yet; callers needing a factory reject it
            logger.info(
                "Authenticated user has no profile",
                extra={"user_id": claims.sub},
            )
            return AuthenticatedUser(user_id=claims.sub, email=claims.email)

        return AuthenticatedUser(
            user_id=profile.id,
            email=profile.email or claims.email,
            factory_id=profile.factory_id,
        )
