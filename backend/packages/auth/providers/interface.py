from abc import ABC, abstractmethod

from packages.auth.providers.models import TokenClaims, AuthProvider


class AuthProviderInterface(ABC):
    """Interface for bearer token issuers"""

    @abstractmethod
    async def verify_token(self, token: str) -> TokenClaims:
        """Verify the token signature and claims.

        Raises:
            HTTPException: 401 when the token is invalid or expired
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> AuthProvider:
        """Get the provider name"""
        pass
