"""
Shared fixtures for the reporting test suite.

- ``app`` builds the Flask app from TestingConfig (in-memory SQLite, eager
  Celery) with a fresh schema and a temporary reports directory.
- ``patient`` / ``admission`` / ``consultation`` / ``appointment`` build
  snapshots directly so aggregator tests never touch the database.
"""
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from imd_reports import create_app
from imd_reports.extensions import db
from imd_reports.snapshots import (
    AdmissionSnapshot,
    AppointmentSnapshot,
    ConsultationSnapshot,
    DoctorRef,
    PatientSnapshot,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

_ids = count(1)


@pytest.fixture
def app(tmp_path):
    app = create_app('testing')
    app.config['PDF_REPORTS_PATH'] = str(tmp_path / 'reports')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def admission(admitted, discharged=None, status=None, department='Neurology', safety_type=None, **kwargs):
    return AdmissionSnapshot(
        id=kwargs.pop('id', next(_ids)),
        status=status or ('discharged' if discharged else 'active'),
        admission_date=admitted,
        discharge_date=discharged,
        department=department,
        safety_type=safety_type,
        **kwargs,
    )


def patient(*admissions, name='Test Patient', mrn=None, department=None, doctor_name=None):
    patient_id = next(_ids)
    return PatientSnapshot(
        id=patient_id,
        mrn=mrn or f'MRN{patient_id}',
        name=name,
        department=department,
        doctor_name=doctor_name,
        admissions=tuple(admissions),
    )


def consultation(created_at, status='active', specialty='Neurology', urgency='routine',
                 doctor_id=None, doctor_name='Dr. Test', updated_at=None, completed_at=None,
                 patient_name='Test Patient', mrn='MRN0'):
    return ConsultationSnapshot(
        id=next(_ids),
        patient_id=None,
        patient_name=patient_name,
        mrn=mrn,
        specialty=specialty,
        urgency=urgency,
        status=status,
        created_at=created_at,
        updated_at=updated_at,
        completed_at=completed_at,
        doctor=DoctorRef(id=doctor_id, name=doctor_name) if doctor_id is not None else None,
    )


def appointment(created_at, specialty='Neurology', appointment_type='routine', patient_name='Test Patient'):
    return AppointmentSnapshot(
        id=next(_ids),
        patient_id=None,
        patient_name=patient_name,
        medical_number='MED1',
        specialty=specialty,
        appointment_type=appointment_type,
        status='scheduled',
        created_at=created_at,
    )


def days_ago(days, hours=0):
    return NOW - timedelta(days=days, hours=hours)
