from imd_reports.extensions import db
from .base import TimestampMixin


class Doctor(db.Model, TimestampMixin):
    __tablename__ = 'doctors'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150))
    medical_code = db.Column(db.String(50), index=True)
    role = db.Column(db.String(20), default='doctor')  # doctor, nurse, administrator
    department = db.Column(db.String(100))

    def __repr__(self):
        return f"<Doctor {self.name} ({self.id})>"
