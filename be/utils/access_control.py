"""
Access Control Utilities

Centralized role checks and audit logging shared by the route modules.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from Models.Admin.AuditLog import AuditLog
from Models.Admin.User import User

logger = logging.getLogger(__name__)

ROLES = ["admin", "purchase", "coordinator", "technician", "surveyor"]
ADMIN_ROLE = "admin"


def role_name(user: User) -> Optional[str]:
    return user.role.name if user.role else None


def is_admin(user: User) -> bool:
    return role_name(user) == ADMIN_ROLE


def require_role(current_user: User, *roles: str) -> None:
    """
    Raise 403 unless the user holds one of ``roles``. Admins always pass.

    Args:
        current_user: The current user
        roles: Role names allowed to continue

    Raises:
        HTTPException: If the user's role is not allowed
    """
    if is_admin(current_user) or role_name(current_user) in roles:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"This action requires one of the roles: {', '.join(roles) or ADMIN_ROLE}"
    )


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Args:
        request: FastAPI Request object

    Returns:
        str: Client IP address
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_audit_log(
    db: Session,
    user_id: int,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    resource_name: Optional[str] = None,
    details: Optional[str] = None,
    request: Optional[Request] = None
) -> AuditLog:
    """Add an audit log entry to the session; the caller owns the commit."""
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_name=resource_name,
        details=details,
        ip_address=get_client_ip(request) if request else None,
        user_agent=request.headers.get("User-Agent") if request else None
    )
    db.add(audit_log)
    return audit_log
