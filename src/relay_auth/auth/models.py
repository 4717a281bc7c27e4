"""
relay_auth.auth.models

Operator identity and role names for the control API.
"""

from __future__ import annotations

from dataclasses import dataclass

VIEWER_ROLE = "relay_auth_viewer"
OPERATOR_ROLE = "relay_auth_operator"
ADMIN_ROLE = "admin"


@dataclass(frozen=True, slots=True)
class Operator:
    """
    Authenticated caller of the control API.
    """

    subject: str
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    def has_roles(self, required: frozenset[str]) -> bool:
        # Operators may also read; admin bypasses role checks entirely.
        if self.is_admin:
            return True
        granted = set(self.roles)
        if OPERATOR_ROLE in granted:
            granted.add(VIEWER_ROLE)
        return required.issubset(granted)
