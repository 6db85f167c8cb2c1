import jwt
from fastapi import HTTPException, status
from pydantic import ValidationError

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.core.config import settings
from packages.auth.providers.interface import AuthProviderInterface
from packages.auth.providers.models import TokenClaims, AuthProvider

logger = get_logger(__name__)


class SupabaseAuthProvider(AuthProviderInterface):
    """Verifies access tokens issued by the hosted Supabase auth service.

    Tokens are HS256 JWTs signed with the project's JWT secret.
    """

    def __init__(self, jwt_secret: str = None, audience: str = None):
        self.jwt_secret = jwt_secret or settings.supabase_jwt_secret
        self.audience = audience or settings.supabase_jwt_audience

    @trace_span
    async def verify_token(self, token: str) -> TokenClaims:
        if not self.jwt_secret:
            logger.error("SUPABASE_JWT_SECRET is not configured")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication is not configured",
            )

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_aud": True,
                    "require": ["sub", "exp"],
                },
            )
            return TokenClaims.model_validate(payload)
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            )
        except (jwt.InvalidTokenError, ValidationError) as e:
            logger.warning(f"Token verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )

    def get_provider_name(self) -> AuthProvider:
        return AuthProvider.SUPABASE
