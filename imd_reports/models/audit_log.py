from imd_reports.extensions import db
from .base import utcnow


class AuditLog(db.Model):
    """One report export, download or generation failure."""
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(64), nullable=False)  # report
    entity_id = db.Column(db.String(64), nullable=True)
    action = db.Column(db.String(32), nullable=False, index=True)  # export, download, fail
    actor = db.Column(db.String(150), nullable=True)  # free text, defaults to 'system'
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "actor": self.actor,
            "details": self.details or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
