"""Subject authentication for the clearance API.

Tokens are JWTs whose ``sub`` claim is the subject identity. The signing key
is carried by an explicit ``AuthConfig`` handed to the authenticator when the
application is built; nothing here reads process-wide settings.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from clearance.core.config import Settings
from clearance.core.exceptions import UnauthorizedError


@dataclass(frozen=True)
class AuthConfig:
    """Signing configuration for subject tokens."""

    secret_key: str
    algorithm: str = "HS256"
    token_ttl: timedelta = timedelta(minutes=30)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.algorithm,
            token_ttl=timedelta(minutes=settings.access_token_expire_minutes),
        )


class TokenAuthenticator:
    """Resolves bearer tokens to subject identities."""

    def __init__(self, config: AuthConfig):
        self.config = config

    def issue_token(self, subject_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token for a subject."""
        expire = datetime.now(timezone.utc) + (expires_delta or self.config.token_ttl)
        to_encode = {
            "sub": subject_id,
            "exp": expire,
            "type": "access",
        }
        return jwt.encode(to_encode, self.config.secret_key, algorithm=self.config.algorithm)

    def authenticate(self, token: Optional[str]) -> str:
        """Return the subject identity carried by a valid token.

        Raises:
            UnauthorizedError: If the token is missing, malformed, expired or
                signed with another key.
        """
        if not token:
            raise UnauthorizedError("Missing credentials")

        try:
            payload = jwt.decode(token, self.config.secret_key, algorithms=[self.config.algorithm])
        except JWTError as e:
            raise UnauthorizedError("Could not validate credentials", detail=str(e))

        subject_id = payload.get("sub")
        if not subject_id or payload.get("type") != "access":
            raise UnauthorizedError("Could not validate credentials")

        return subject_id
