"""
Report Model
Stores metadata for generated PDF reports
"""
from imd_reports.extensions import db
from .base import TimestampMixin


class Report(db.Model, TimestampMixin):
    """
    Report model for storing PDF report metadata
    """
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)

    # Report identification
    report_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    report_kind = db.Column(db.String(20), nullable=False, index=True)  # daily, admin, long-stay

    # Covered range
    period = db.Column(db.String(20), default='custom')
    period_start = db.Column(db.DateTime, nullable=False)
    period_end = db.Column(db.DateTime, nullable=False)

    # File storage
    file_name = db.Column(db.String(255))
    file_path = db.Column(db.String(500), nullable=False, default='')
    file_size = db.Column(db.Integer, default=0)

    # Status: generating, completed, failed
    status = db.Column(db.String(20), default='generating', nullable=False, index=True)
    generation_task_id = db.Column(db.String(100))  # Celery task ID if async
    error_code = db.Column(db.String(50))
    error_message = db.Column(db.Text)

    # Filters used to build the report (JSON)
    filters = db.Column(db.JSON)
    generated_by = db.Column(db.String(150))

    def to_dict(self):
        """Convert report to dictionary"""
        return {
            'id': self.id,
            'report_number': self.report_number,
            'report_kind': self.report_kind,
            'period': self.period,
            'period_start': self.period_start.isoformat() if self.period_start else None,
            'period_end': self.period_end.isoformat() if self.period_end else None,
            'file_name': self.file_name,
            'file_size': self.file_size,
            'status': self.status,
            'generation_task_id': self.generation_task_id,
            'error_code': self.error_code,
            'error_message': self.error_message,
            'filters': self.filters,
            'generated_by': self.generated_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
