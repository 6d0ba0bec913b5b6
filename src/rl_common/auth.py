"""Caller identity supplied by the authentication provider.

The ledger trusts `user_id` and `role` as given; it never authenticates.
"""

from dataclasses import dataclass

from src.rl_common.enums import Role
from src.rl_common.errors import AuthorizationError


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_admin(principal: Principal, action: str) -> None:
    """Raise AuthorizationError unless the caller holds the admin role."""
    if not principal.is_admin:
        raise AuthorizationError(action)
