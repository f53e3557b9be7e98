"""
Demo seed data: departments, doctors, patients with admissions,
consultations, appointments and published department statistics.
"""
import logging
from datetime import date, timedelta

from sqlalchemy.exc import SQLAlchemyError

from imd_reports.config import DEFAULT_SPECIALTIES
from imd_reports.extensions import db
from imd_reports.models import (
    Admission,
    Appointment,
    Consultation,
    Department,
    DepartmentStatistic,
    Doctor,
    Patient,
)
from imd_reports.models.base import utcnow

logger = logging.getLogger(__name__)

DEMO_DOCTORS = [
    {"name": "Dr. Sara Haddad", "medical_code": "IM-001", "department": "Internal Medicine"},
    {"name": "Dr. Omar Khalil", "medical_code": "PU-002", "department": "Pulmonology"},
    {"name": "Dr. Lina Nasser", "medical_code": "NE-003", "department": "Neurology"},
    {"name": "Dr. Yousef Amin", "medical_code": "GA-004", "department": "Gastroenterology"},
]

DEMO_PATIENTS = [
    # name, department, days since admission, days in hospital (None = still admitted), safety type
    ("Ahmad Saleh", "Internal Medicine", 12, None, None),
    ("Mona Fares", "Pulmonology", 9, None, "observation"),
    ("Rami Tawil", "Neurology", 2, None, "emergency"),
    ("Huda Karam", "Gastroenterology", 6, 3, "short-stay"),
    ("Nabil Azar", "Internal Medicine", 20, 15, None),
    ("Dina Mansour", "Endocrinology", 1, None, None),
    ("Samir Bitar", "Hematology", 8, 4, "emergency"),
    ("Rana Khoury", "Infectious Disease", 3, None, None),
]

URGENCIES = ["emergency", "urgent", "routine"]
SHIFTS = ["morning", "evening", "night"]


def seed_demo_data():
    """
    Create demo records if the database has no departments yet.

    Returns:
        bool: True when data was created
    """
    if Department.query.count() > 0:
        logger.info("Demo data already present, skipping")
        return False

    now = utcnow()
    try:
        for name in DEFAULT_SPECIALTIES:
            db.session.add(Department(name=name, is_active=True))

        doctors = [Doctor(role="doctor", **fields) for fields in DEMO_DOCTORS]
        db.session.add_all(doctors)
        db.session.flush()

        for index, (name, department, admitted_ago, stay, safety_type) in enumerate(DEMO_PATIENTS):
            doctor = doctors[index % len(doctors)]
            patient = Patient(
                mrn=f"MRN{1000 + index}",
                name=name,
                date_of_birth=date(1950 + index * 5, 1 + index, 10),
                gender='female' if index % 2 else 'male',
                department=department,
                doctor_name=doctor.name,
            )
            db.session.add(patient)
            db.session.flush()

            admitted_at = now - timedelta(days=admitted_ago)
            discharged_at = admitted_at + timedelta(days=stay) if stay is not None else None
            db.session.add(Admission(
                patient_id=patient.id,
                status='discharged' if discharged_at else 'active',
                admission_date=admitted_at,
                discharge_date=discharged_at,
                department=department,
                diagnosis=f"{department} follow-up",
                visit_number=1,
                safety_type=safety_type,
                shift_type=SHIFTS[index % len(SHIFTS)],
                is_weekend=admitted_at.weekday() >= 5,
                admitting_doctor_id=doctor.id,
            ))

            created_at = now - timedelta(hours=2 + index * 5)
            completed = index % 3 == 0
            db.session.add(Consultation(
                patient_id=patient.id,
                patient_name=name,
                mrn=patient.mrn,
                consultation_specialty=DEFAULT_SPECIALTIES[index % len(DEFAULT_SPECIALTIES)],
                urgency=URGENCIES[index % len(URGENCIES)],
                status='completed' if completed else 'active',
                requesting_department=department,
                shift_type=SHIFTS[index % len(SHIFTS)],
                reason="Specialist opinion requested",
                doctor_id=doctor.id if index != len(DEMO_PATIENTS) - 1 else None,
                completed_at=created_at + timedelta(minutes=45) if completed else None,
                completed_by=doctor.id if completed else None,
                created_at=created_at,
                updated_at=created_at + timedelta(minutes=45) if completed else created_at,
            ))

            db.session.add(Appointment(
                patient_id=patient.id,
                patient_name=name,
                medical_number=patient.mrn,
                specialty=department,
                appointment_type='urgent' if safety_type == 'emergency' else 'routine',
                status='scheduled',
                created_at=now - timedelta(hours=index * 3),
            ))

        for name in DEFAULT_SPECIALTIES[:4]:
            db.session.add(DepartmentStatistic(
                department_name=name,
                statistic={'patients': 0, 'consultations': 0, 'occupancy_rate': 0},
                is_new=True,
            ))

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Demo data seeding failed: %s", e, exc_info=True)
        raise

    logger.info("Seeded demo data: %d departments, %d patients", len(DEFAULT_SPECIALTIES), len(DEMO_PATIENTS))
    return True
