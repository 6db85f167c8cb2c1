from typing import Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict


class AuthProvider(str, Enum):
    """Supported token issuers"""

    SUPABASE = "supabase"


class TokenClaims(BaseModel):
    """Verified JWT claims we rely on"""

    model_config = ConfigDict(extra="ignore")

    sub: str  # Subject (auth user ID)
    email: Optional[str] = None
    role: Optional[str] = None
    aud: Optional[str] = None
    exp: int
