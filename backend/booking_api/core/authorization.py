"""
Capability checks for graph operations.

An operation declares zero or more requirements. `is_allowed` is a pure
function of (requirement, caller); `authorize` raises the matching error for
the first requirement that fails.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from booking_api.core.exceptions import AuthenticationRequiredError, PermissionDeniedError
from booking_api.schemas.caller import CallerIdentity


@dataclass(frozen=True)
class IsAuthenticated:
    """Caller identity must be present."""


@dataclass(frozen=True)
class HasRole:
    """Caller must hold at least one of `roles`. Implies authentication."""

    roles: frozenset

    def __init__(self, roles: Iterable[str]):
        object.__setattr__(self, "roles", frozenset(roles))


Capability = Union[IsAuthenticated, HasRole]


def is_allowed(requirement: Capability, caller: Optional[CallerIdentity]) -> bool:
    if caller is None:
        return False
    if isinstance(requirement, HasRole):
        return bool(requirement.roles & set(caller.permissions))
    return True


def authorize(requirements: Iterable[Capability], caller: Optional[CallerIdentity]) -> None:
    for requirement in requirements:
        if is_allowed(requirement, caller):
            continue
        if caller is None:
            raise AuthenticationRequiredError("Authentication required")
        raise PermissionDeniedError(
            "Missing required role",
            required=sorted(requirement.roles),
        )
