# Authentication module

from studentdesk.modules.auth.dependencies import (
    get_current_user,
    require_roles,
    require_completed_profile,
    student_only,
    admin_only,
)

__all__ = [
    "get_current_user",
    "require_roles",
    "require_completed_profile",
    "student_only",
    "admin_only",
]
