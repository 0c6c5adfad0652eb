"""Activity trail: rows written alongside each change, and the admin query."""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import Clock, now
from database.models.audit import ActivityAction, ActivityLog, EntityType
from database.models.users import User

logger = logging.getLogger(__name__)

_AUDIT_ACTIONS = {
    ActivityAction.CREATED: AuditAction.CREATE,
    ActivityAction.STATUS_CHANGED: AuditAction.TRANSITION,
    ActivityAction.ASSIGNED: AuditAction.ASSIGN,
    ActivityAction.VIEWED: AuditAction.VIEW,
}


async def record_activity(
    session: AsyncSession,
    actor: Optional[User],
    action: ActivityAction,
    entity_type: EntityType,
    entity_id: Optional[int],
    *,
    organization_id: Optional[int] = None,
    old_value: Optional[dict[str, Any]] = None,
    new_value: Optional[dict[str, Any]] = None,
    details: Optional[dict[str, Any]] = None,
    clock: Clock = now,
) -> ActivityLog:
    """
    Add an ActivityLog row to the current transaction and emit the audit line.

    The row commits or rolls back together with the change it describes.
    """
    entry = ActivityLog(
        user_id=actor.id if actor else None,
        user_type=actor.user_type.value if actor else None,
        organization_id=organization_id,
        action=action.value,
        entity_type=entity_type.value,
        entity_id=entity_id,
        old_value=old_value,
        new_value=new_value,
        details=details,
        created_at=clock(),
    )
    session.add(entry)

    log_audit_event(
        action=_AUDIT_ACTIONS.get(action, AuditAction.UPDATE),
        resource_type=ResourceType[entity_type.name],
        resource_id=entity_id,
        user_id=actor.id if actor else None,
        organization_id=organization_id,
        details={"activity": action.value, "old": old_value, "new": new_value},
    )
    return entry


async def list_activity_logs(
    session: AsyncSession,
    pagination: PaginationParams,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    organization_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> tuple[list[ActivityLog], int]:
    query = select(ActivityLog)
    if entity_type:
        query = query.where(ActivityLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.where(ActivityLog.entity_id == entity_id)
    if action:
        query = query.where(ActivityLog.action == action)
    if user_id is not None:
        query = query.where(ActivityLog.user_id == user_id)
    if organization_id is not None:
        query = query.where(ActivityLog.organization_id == organization_id)
    if start_date:
        query = query.where(ActivityLog.created_at >= start_date)
    if end_date:
        query = query.where(ActivityLog.created_at <= end_date)

    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await session.execute(
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), total
