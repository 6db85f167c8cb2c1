"""Factory for creating singleton auth provider instances."""

from typing import Dict, Optional
from packages.auth.providers.interface import AuthProviderInterface
from packages.auth.providers.models import AuthProvider
from packages.auth.providers.supabase_provider import SupabaseAuthProvider


class AuthProviderFactory:
    """Factory for creating and managing auth provider singletons."""

    _instances: Dict[AuthProvider, AuthProviderInterface] = {}

    @classmethod
    def get_provider(cls, provider: AuthProvider) -> AuthProviderInterface:
        """Get or create a singleton instance of the specified provider.

        Raises:
            ValueError: If the provider is not supported
        """
        if provider not in cls._instances:
            cls._instances[provider] = cls._create_provider(provider)
        return cls._instances[provider]

    @classmethod
    def _create_provider(cls, provider: AuthProvider) -> AuthProviderInterface:
        if provider == AuthProvider.SUPABASE:
            return SupabaseAuthProvider()
        raise ValueError(f"Unsupported auth provider: {provider}. Supported: SUPABASE.")

    @classmethod
    def clear_cache(cls, provider: Optional[AuthProvider] = None):
        """Clear cached provider instances."""
        if provider:
            cls._instances.pop(provider, None)
        else:
            cls._instances.clear()


def get_auth_provider(
    provider: AuthProvider = AuthProvider.SUPABASE,
) -> AuthProviderInterface:
    """Convenience function to get an auth provider instance."""
    return AuthProviderFactory.get_provider(provider)
