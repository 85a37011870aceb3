# (c) Copyright Datacraft, 2026
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security.utils import get_authorization_scheme_param
import jwt
from sqlalchemy.orm import Session as SQLAlchemySession

from .services import PasskeyServices
from .tokens import SessionClaims


def from_header(conn: HTTPConnection) -> str | None:
    authorization = conn.headers.get("Authorization")
    scheme, token = get_authorization_scheme_param(authorization)

    if not authorization or scheme.lower() != "bearer":
        return None

    return token


def from_cookie(conn: HTTPConnection, cookie_name: str) -> str | None:
    return conn.cookies.get(cookie_name, None)


def get_token(conn: HTTPConnection, cookie_name: str) -> str | None:
    return from_cookie(conn, cookie_name) or from_header(conn)


def get_services(conn: HTTPConnection) -> PasskeyServices:
    return conn.app.state.services


def decode_session(conn: HTTPConnection, services: PasskeyServices) -> SessionClaims:
    """Claims of the caller's session token; raises 401 without one."""
    token = get_token(conn, services.settings.cookie_name)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return services.tokens.decode(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


async def get_current_session(
    conn: HTTPConnection,
    services: PasskeyServices = Depends(get_services),
) -> SessionClaims:
    return decode_session(conn, services)


def get_db(services: PasskeyServices = Depends(get_services)) -> Generator[SQLAlchemySession, None, None]:
    """FastAPI dependency for database sessions."""
    db = services.session_factory()
    try:
        yield db
    finally:
        db.close()
