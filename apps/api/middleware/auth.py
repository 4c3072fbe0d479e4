from typing import TYPE_CHECKING

import msgspec
from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException
from litestar.middleware.authentication import AbstractAuthenticationMiddleware, AuthenticationResult

from repository.auth_repository import AuthRepository
from services.auth_service import AuthService

if TYPE_CHECKING:
    from asyncpg import Pool

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


class AuthUser(msgspec.Struct):
    id: int
    name: str
    email: str


def extract_access_token(connection: ASGIConnection) -> str | None:
    """Read the access token from the cookie, falling back to a Bearer header."""
    token = connection.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    scheme, _, credentials = connection.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


class CustomAuthenticationMiddleware(AbstractAuthenticationMiddleware):
    async def authenticate_request(self, connection: ASGIConnection) -> AuthenticationResult:
        """Authenticate request."""
        pool: Pool = connection.app.state["db_pool"]
        token = extract_access_token(connection)

        if not token:
            raise NotAuthorizedException("Missing access token")

        row = await AuthRepository(pool).fetch_access_token_user(AuthService.hash_token(token))

        if not row:
            raise NotAuthorizedException("Invalid or expired access token")

        user = AuthUser(id=row["id"], name=row["name"], email=row["email"])
        return AuthenticationResult(user=user, auth=token)
