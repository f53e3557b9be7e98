"""
Audit trail for report exports, downloads and failures.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from imd_reports.extensions import db

logger = logging.getLogger(__name__)


def log_audit(
    entity_type: str,
    action: str,
    actor: Optional[str] = None,
    entity_id=None,
    details: Optional[dict] = None,
) -> None:
    """Record one audit entry; a failed write is logged and rolled back, never raised."""
    from imd_reports.models import AuditLog

    entry = AuditLog(
        entity_type=entity_type,
        entity_id=None if entity_id is None else str(entity_id),
        action=action,
        actor=actor or 'system',
        details=details,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not record audit %s for %s %s: %s", action, entity_type, entity_id, e)


def audit_trail(entity_type: str, entity_id) -> List[dict]:
    """Audit entries of one entity, oldest first."""
    from imd_reports.models import AuditLog

    entries = (
        AuditLog.query
        .filter_by(entity_type=entity_type, entity_id=str(entity_id))
        .order_by(AuditLog.created_at, AuditLog.id)
        .all()
    )
    return [entry.to_dict() for entry in entries]
