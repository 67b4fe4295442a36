import jwt
from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wiki_console.config import settings
from wiki_console.exceptions import UnauthorizedError

_bearer = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired") from None
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token") from None
    if not claims.get("sub"):
        raise UnauthorizedError("Token has no subject")
    return claims


async def verify_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),  # noqa: B008
    access_token: str | None = Query(default=None),  # noqa: B008
) -> dict:
    """Accept a bearer header, or an ``access_token`` query parameter for EventSource clients."""
    if credentials is not None:
        return decode_token(credentials.credentials)
    if access_token:
        return decode_token(access_token)
    raise UnauthorizedError("Not authenticated")
