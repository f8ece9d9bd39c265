"""
Permission classes backed by the role capability table.

The access context is resolved once per request and cached on it, so
the permission check and the service call see the same capabilities.
"""
from rest_framework.permissions import BasePermission

from records.services.access import VIEW, AccessContext, resolve_access


def request_access(request) -> AccessContext:
    ctx = getattr(request, '_access_ctx', None)
    if ctx is None:
        ctx = resolve_access(getattr(request, 'user', None))
        request._access_ctx = ctx
    return ctx


class HasCapability(BasePermission):
    """Allow access only to employees whose role grants ``capability``."""
    capability = VIEW

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        return request_access(request).has(self.capability)


class CanViewRecords(HasCapability):
    capability = VIEW
