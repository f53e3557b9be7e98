from imd_reports.extensions import db
from .base import TimestampMixin


class Consultation(db.Model, TimestampMixin):
    __tablename__ = 'consultations'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=True, index=True)

    # Denormalized patient details, as captured on the request form
    patient_name = db.Column(db.String(200), nullable=False)
    mrn = db.Column(db.String(50), nullable=False, index=True)

    consultation_specialty = db.Column(db.String(100), index=True)
    urgency = db.Column(db.String(20))  # emergency, urgent, routine
    status = db.Column(db.String(20), default='active', nullable=False, index=True)  # active, completed, discharged

    requesting_department = db.Column(db.String(100))
    patient_location = db.Column(db.String(100))
    shift_type = db.Column(db.String(20))
    reason = db.Column(db.Text)

    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True, index=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    completed_by = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True)
    completion_note = db.Column(db.Text)

    doctor = db.relationship('Doctor', foreign_keys=[doctor_id], lazy='joined')
    completed_by_user = db.relationship('Doctor', foreign_keys=[completed_by], lazy='joined')

    def __repr__(self):
        return f"<Consultation {self.id} {self.consultation_specialty} ({self.status})>"
