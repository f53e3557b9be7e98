from imd_reports.extensions import db
from .base import TimestampMixin


class Patient(db.Model, TimestampMixin):
    __tablename__ = 'patients'

    id = db.Column(db.Integer, primary_key=True)
    mrn = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(20))
    department = db.Column(db.String(100), index=True)
    doctor_name = db.Column(db.String(150))  # assigned doctor, free text

    # Relationships
    admissions = db.relationship(
        'Admission',
        backref='patient',
        lazy='selectin',
        order_by='Admission.admission_date',
    )

    def __repr__(self):
        return f"<Patient {self.name} ({self.mrn})>"
