# teamhub/deps/security.py
from fastapi import Depends

from teamhub.auth_token import get_current_user
from teamhub.errors import PermissionDenied
from teamhub.models.enums import UserRole


async def require_admin(user=Depends(get_current_user)):
    """403 if the logged-in user is not an admin."""
    if getattr(user, "role", None) == UserRole.admin.value:
        return user
    raise PermissionDenied("Admin only")
