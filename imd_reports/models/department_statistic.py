from imd_reports.extensions import db
from .base import utcnow


class DepartmentStatistic(db.Model):
    """Precomputed per-department statistic published to the dashboard."""
    __tablename__ = 'department_statistics'

    id = db.Column(db.Integer, primary_key=True)
    department_name = db.Column(db.String(100), nullable=False, index=True)
    statistic = db.Column(db.JSON, nullable=False, default=dict)
    is_new = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'departmentName': self.department_name,
            'statistic': self.statistic,
        }
