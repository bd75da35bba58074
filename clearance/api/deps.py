import secrets
from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clearance.core.exceptions import UnauthorizedError
from clearance.core.security import TokenAuthenticator
from clearance.services.clearance import ClearanceService

bearer_scheme = HTTPBearer(auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_db(request: Request) -> Generator:
    """Database session dependency."""
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_clearance_service(request: Request) -> ClearanceService:
    return request.app.state.clearance


def get_authenticator(request: Request) -> TokenAuthenticator:
    return request.app.state.authenticator


def get_current_subject_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
) -> str:
    """Subject identity from the bearer token."""
    try:
        return authenticator.authenticate(credentials.credentials if credentials else None)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_admin(request: Request, api_key: str = Depends(api_key_header)) -> None:
    """Administrative endpoints require the configured API key."""
    expected = request.app.state.settings.admin_api_key
    if not expected or not api_key or not secrets.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
