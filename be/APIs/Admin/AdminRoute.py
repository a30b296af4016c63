# routes/adminRoute.py
import logging
from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import desc
from sqlalchemy.orm import Session
from APIs.Core import get_current_user, get_db
from Models.Admin.AuditLog import AuditLog
from Models.Admin.User import User, Role
from Schemas.Admin.LogSchema import AuditLogResponse
from utils.access_control import is_admin

logger = logging.getLogger(__name__)

adminRoute = APIRouter(prefix="/audit-logs", tags=["Admin"])


def _require_admin(current_user: User, detail: str):
    if not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@adminRoute.get("", response_model=List[AuditLogResponse])
async def get_audit_logs(
    skip: int = 0,
    limit: int = 100,
    user_id: Optional[int] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get audit logs, newest first. Only admin can access this."""
    _require_admin(current_user, "You do not have permission to view audit logs")

    query = db.query(AuditLog).join(User)

    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id:
        query = query.filter(AuditLog.resource_id == resource_id)

    audit_logs = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).offset(skip).limit(limit).all()

    result = []
    for log in audit_logs:
        result.append({
            "id": log.id,
            "user_id": log.user_id,
            "action": log.action,
            "resource_type": log.resource_type,
            "resource_id": log.resource_id,
            "resource_name": log.resource_name,
            "details": log.details,
            "ip_address": log.ip_address,
            "user_agent": log.user_agent,
            "timestamp": log.timestamp,
            "user": {
                "id": log.user.id,
                "username": log.user.username,
                "email": log.user.email,
                "role": log.user.role.name if log.user.role else None
            }
        })
    return result


@adminRoute.get("/actions")
async def get_available_actions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Distinct actions present in the log, for filtering."""
    _require_admin(current_user, "You do not have permission to view audit logs")
    actions = db.query(AuditLog.action).distinct().order_by(AuditLog.action).all()
    return {"actions": [a[0] for a in actions]}


@adminRoute.get("/roles")
async def get_roles(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _require_admin(current_user, "You do not have permission to view roles")
    roles = db.query(Role).order_by(Role.id).all()
    return [{"id": r.id, "name": r.name} for r in roles]
