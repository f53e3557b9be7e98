from imd_reports.extensions import db
from .base import utcnow


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=True, index=True)

    patient_name = db.Column(db.String(200), nullable=False)
    medical_number = db.Column(db.String(50), nullable=False)
    specialty = db.Column(db.String(100), index=True)
    appointment_type = db.Column(db.String(20), default='routine')  # routine, urgent
    status = db.Column(db.String(30), default='scheduled')

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Appointment {self.id} {self.patient_name} - {self.specialty}>"
