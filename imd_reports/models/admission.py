from imd_reports.extensions import db
from .base import TimestampMixin


class Admission(db.Model, TimestampMixin):
    __tablename__ = 'admissions'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)

    # Status: active, discharged
    status = db.Column(db.String(20), default='active', nullable=False, index=True)
    admission_date = db.Column(db.DateTime, nullable=False, index=True)
    discharge_date = db.Column(db.DateTime, nullable=True, index=True)

    department = db.Column(db.String(100), index=True)
    diagnosis = db.Column(db.Text)
    visit_number = db.Column(db.Integer)

    # emergency, observation, short-stay (nullable)
    safety_type = db.Column(db.String(20))
    # morning, evening, night, weekend_morning, weekend_night
    shift_type = db.Column(db.String(20))
    is_weekend = db.Column(db.Boolean, default=False)

    admitting_doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True)
    admitting_doctor = db.relationship('Doctor', lazy='joined')

    def __repr__(self):
        return f"<Admission {self.id} patient={self.patient_id} status={self.status}>"
