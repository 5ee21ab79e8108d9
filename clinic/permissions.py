"""
Permission classes for admin and feature based access control.

``HasFeature`` consults the access-control matrix: admins always pass,
other users pass when their role or the user itself holds the feature.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

from .services.access_control import has_access


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    message = 'admin only'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.is_admin)


def HasFeature(*features: str) -> type[BasePermission]:
    """Permission class allowing users granted any of ``features``."""

    class _HasFeature(BasePermission):
        message = f"access to {' or '.join(features)} is not granted"

        def has_permission(self, request, view) -> bool:
            user = getattr(request, "user", None)
            if not (user and user.is_authenticated):
                return False
            return any(has_access(user, feature) for feature in features)

    _HasFeature.__name__ = f"HasFeature({','.join(features)})"
    return _HasFeature


def HasFeatureByMethod(read: tuple[str, ...], write: tuple[str, ...]) -> type[BasePermission]:
    """Check ``read`` features on safe methods and ``write`` features otherwise."""
    read_perm, write_perm = HasFeature(*read), HasFeature(*write)

    class _HasFeatureByMethod(BasePermission):
        def has_permission(self, request, view) -> bool:
            perm = read_perm() if request.method in SAFE_METHODS else write_perm()
            self.message = perm.message
            return perm.has_permission(request, view)

    return _HasFeatureByMethod
