"""Audit logging utility for admin moderation actions."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


def log_moderation_action(
    db: Session,
    actor_id: int,
    action: str,
    target_type: str | None = None,
    target_id: int | str | None = None,
    note: str | None = None,
) -> models.AuditLog | None:
    """
    Log a moderation action to the audit log.

    Called after the moderated change has been committed, so a failed write is
    rolled back and logged instead of failing the request.

    Args:
        db: Database session
        actor_id: ID of the admin performing the action
        action: Action name (e.g., "deactivate_user", "delete_post")
        target_type: Type of target (e.g., "user", "post", "comment")
        target_id: ID of the target entity
        note: Additional context about the action

    Returns:
        The created AuditLog entry, or None if the write failed
    """
    audit_entry = models.AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        note=note,
    )
    try:
        db.add(audit_entry)
        db.commit()
        db.refresh(audit_entry)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to record audit entry {action} by user {actor_id}: {e}")
        return None

    logger.info(f"Audit: user {actor_id} {action} {target_type or ''} {target_id or ''}".rstrip())
    return audit_entry
