"""JWT verification (and issuing, for tooling and tests).

Tokens are issued by the marketplace auth service and signed with the shared
JWT_SECRET (HS256). The ledger trusts the `sub` and `role` claims; it never
looks the user up.

MVP NOTE: No token revocation. A token stays valid until `exp`.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.rl_common.enums import Role
from src.rl_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_DEFAULT_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_MAX_SUBJECT_LENGTH = 64  # riplimit_accounts.user_id is VARCHAR(64)


def create_access_token(
    user_id: str,
    role: Role | str = Role.USER,
    expires_in: timedelta = _DEFAULT_EXPIRE,
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": Role(role).value,
        "type": "access",
        "iat": now,
        "exp": now + expires_in,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: bad signature, expired, wrong type, or
            missing, over-long or non-string `sub`, or an unknown `role`.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    sub = payload.get("sub")
    if payload.get("type") != "access" or not isinstance(sub, str):
        raise InvalidCredentialsError()
    if not sub or len(sub) > _MAX_SUBJECT_LENGTH:
        raise InvalidCredentialsError()
    try:
        Role(payload.get("role"))
    except ValueError:
        raise InvalidCredentialsError() from None
    return payload
