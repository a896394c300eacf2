"""DRF permission classes built on the forwarded ``CallerContext``.

Anonymous callers get a 401 (``NotAuthenticated``); authenticated callers
with the wrong role get a 403.
"""

from rest_framework.exceptions import NotAuthenticated
from rest_framework.permissions import BasePermission

from .context import ANONYMOUS


def caller_of(request):
    """Return the ``CallerContext`` attached by the middleware."""
    return getattr(request, "caller", ANONYMOUS)


class _CallerPermission(BasePermission):
    def has_permission(self, request, view):
        caller = caller_of(request)
        if caller.user_id is None:
            raise NotAuthenticated()
        return self.allows(caller)

    def allows(self, caller) -> bool:
        raise NotImplementedError()


class IsBuyer(_CallerPermission):
    def allows(self, caller):
        return caller.is_buyer


class IsStoreStaff(_CallerPermission):
    def allows(self, caller):
        return caller.is_staff


class IsBuyerOrStaff(_CallerPermission):
    def allows(self, caller):
        return caller.is_buyer or caller.is_staff
