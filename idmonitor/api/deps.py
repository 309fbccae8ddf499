"""FastAPI dependencies: database session, caller identity, cron trigger auth."""

import hmac
from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlmodel import Session, select

from idmonitor.config import get_settings
from idmonitor.db.session import get_session
from idmonitor.models.user import User

settings = get_settings()
bearer_scheme = HTTPBearer()


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_session()


DBSession = Annotated[Session, Depends(get_db_session)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_identity_token(token: str) -> dict[str, Any]:
    """Verify an identity provider token and return its claims.

    Raises:
        HTTPException: 401 if the signature, expiry or subject is invalid
    """
    try:
        claims = jwt.decode(token, settings.AUTH_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    if not claims.get("sub"):
        raise _unauthorized("Token has no subject")
    return claims


def get_current_user(
    session: DBSession,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> User:
    """Resolve the calling user, creating the local record on first sight.

    Contact details are refreshed from the token claims so reminder emails
    follow address changes made at the identity provider.
    """
    claims = decode_identity_token(credentials.credentials)

    user = session.exec(select(User).where(User.auth_subject == claims["sub"])).first()
    is_new = user is None
    if is_new:
        user = User(auth_subject=claims["sub"])

    email = claims.get("email") or user.email
    phone_number = claims.get("phone_number") or user.phone_number
    if is_new or (email, phone_number) != (user.email, user.phone_number):
        user.email = email
        user.phone_number = phone_number
        session.add(user)
        session.commit()
        session.refresh(user)

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_cron_secret(x_cron_secret: Annotated[str | None, Header()] = None) -> None:
    """Guard for the externally triggered batch endpoint.

    Raises:
        HTTPException: 401 unless X-Cron-Secret matches CRON_SECRET
    """
    expected = get_settings().CRON_SECRET
    if not expected or not x_cron_secret or not hmac.compare_digest(
        x_cron_secret, expected
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
        )
