from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from rankitpro.models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    *,
    company_id: Optional[int],
    user_id: int,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        company_id=company_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=json.dumps(meta, default=str) if meta else None,
    )
    db.add(entry)
    return entry


def list_audit_events(
    db: Session,
    *,
    company_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> list[AuditLog]:
    query = db.query(AuditLog)
    if company_id is not None:
        query = query.filter(AuditLog.company_id == company_id)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
