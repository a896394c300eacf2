"""Caller identity forwarded by the upstream authentication layer.

Authentication happens before requests reach this service. The auth proxy
forwards the resolved identity in headers and ``CallerContextMiddleware``
turns them into a ``CallerContext`` that views pass explicitly to services.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


class Role(str, Enum):
    ANONYMOUS = "anonymous"
    BUYER = "buyer"
    STAFF = "staff"


@dataclass(frozen=True)
class CallerContext:
    """Identity of the caller of a request.

    Attributes:
        user_id: Authenticated user, or None for anonymous callers.
        store_id: Store the caller works for (staff only).
        role: Role resolved by the auth layer.
    """

    user_id: Optional[uuid.UUID] = None
    store_id: Optional[uuid.UUID] = None
    role: Role = Role.ANONYMOUS

    USER_HEADER = "HTTP_X_USER_ID"
    STORE_HEADER = "HTTP_X_STORE_ID"
    ROLE_HEADER = "HTTP_X_USER_ROLE"

    @property
    def is_staff(self) -> bool:
        return self.role == Role.STAFF and self.store_id is not None

    @property
    def is_buyer(self) -> bool:
        return self.user_id is not None and self.role in (Role.BUYER, Role.STAFF)

    @classmethod
    def from_meta(cls, meta: Mapping[str, str]) -> "CallerContext":
        """Build a context from Django ``request.META`` headers.

        Malformed identifiers are treated as absent so a bad header never
        grants more than anonymous access.
        """
        user_id = _parse_uuid(meta.get(cls.USER_HEADER))
        store_id = _parse_uuid(meta.get(cls.STORE_HEADER))
        try:
            role = Role((meta.get(cls.ROLE_HEADER) or "").lower())
        except ValueError:
            role = Role.BUYER if user_id else Role.ANONYMOUS
        if user_id is None:
            role = Role.ANONYMOUS
        if role != Role.STAFF:
            store_id = None
        return cls(user_id=user_id, store_id=store_id, role=role)


ANONYMOUS = CallerContext()


def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None
