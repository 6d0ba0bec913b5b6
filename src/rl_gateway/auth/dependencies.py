"""FastAPI dependency: get_current_principal.

Usage in any protected router:
    from src.rl_gateway.auth.dependencies import get_current_principal

    @router.get("/protected")
    async def protected(principal: Principal = Depends(get_current_principal)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.rl_common.auth import Principal
from src.rl_common.enums import Role
from src.rl_common.errors import InvalidCredentialsError
from src.rl_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Validate the Bearer token and return the caller's Principal.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    return Principal(user_id=payload["sub"], role=Role(payload["role"]))


def principal_from_header(authorization: str) -> Principal | None:
    """Best-effort Principal for middleware; None when the header is absent or bad.

    Routes still authenticate through get_current_principal.
    """
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        payload = decode_token(token)
    except InvalidCredentialsError:
        return None
    return Principal(user_id=payload["sub"], role=Role(payload["role"]))
