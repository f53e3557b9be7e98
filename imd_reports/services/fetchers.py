"""
Data Fetchers
Read patient, admission, consultation and appointment rows and turn them
into immutable snapshots for the aggregators.
"""
import logging
from functools import wraps
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from imd_reports.errors import DataFetchError
from imd_reports.extensions import db
from imd_reports.models import Admission, Appointment, Consultation, Department, Doctor, Patient
from imd_reports.snapshots import (
    AdmissionSnapshot,
    AppointmentSnapshot,
    ConsultationSnapshot,
    DoctorRef,
    PatientSnapshot,
    SnapshotBatch,
)
from imd_reports.utils.date_filters import DateFilter, utc_now

logger = logging.getLogger(__name__)


def _wrap_fetch(entity: str):
    """Turn database failures into DataFetchError for the named entity."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Error fetching {entity}: {e}", exc_info=True)
                db.session.rollback()
                raise DataFetchError(f"Failed to fetch {entity}: {e}") from e
        return wrapper
    return decorator


def _naive(value):
    """Columns store naive UTC; strip the tzinfo from filter bounds."""
    return value.replace(tzinfo=None) if value is not None else None


def _doctor_ref(doctor: Optional[Doctor]) -> Optional[DoctorRef]:
    if doctor is None:
        return None
    return DoctorRef(
        id=doctor.id,
        name=doctor.name,
        medical_code=doctor.medical_code,
        role=doctor.role,
        department=doctor.department,
    )


def admission_snapshot(row: Admission) -> AdmissionSnapshot:
    return AdmissionSnapshot(
        id=row.id,
        status=row.status,
        admission_date=row.admission_date,
        discharge_date=row.discharge_date,
        department=row.department,
        diagnosis=row.diagnosis,
        visit_number=row.visit_number,
        safety_type=row.safety_type,
        shift_type=row.shift_type,
        is_weekend=bool(row.is_weekend),
        admitting_doctor=_doctor_ref(row.admitting_doctor),
    )


def patient_snapshot(row: Patient) -> PatientSnapshot:
    admissions = []
    for admission in row.admissions:
        try:
            admissions.append(admission_snapshot(admission))
        except ValueError as e:
            logger.warning(f"Skipping admission {admission.id} of patient {row.id}: {e}")
    return PatientSnapshot(
        id=row.id,
        mrn=row.mrn,
        name=row.name,
        date_of_birth=row.date_of_birth,
        gender=row.gender,
        department=row.department,
        doctor_name=row.doctor_name,
        admissions=tuple(admissions),
    )


def consultation_snapshot(row: Consultation) -> ConsultationSnapshot:
    return ConsultationSnapshot(
        id=row.id,
        patient_id=row.patient_id,
        patient_name=row.patient_name,
        mrn=row.mrn,
        specialty=row.consultation_specialty,
        urgency=row.urgency,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        completed_at=row.completed_at,
        doctor=_doctor_ref(row.doctor),
        reason=row.reason,
        requesting_department=row.requesting_department,
    )


def appointment_snapshot(row: Appointment) -> AppointmentSnapshot:
    return AppointmentSnapshot(
        id=row.id,
        patient_id=row.patient_id,
        patient_name=row.patient_name,
        medical_number=row.medical_number,
        specialty=row.specialty,
        appointment_type=row.appointment_type,
        status=row.status,
        created_at=row.created_at,
    )


def _snapshots(rows, convert, entity):
    """Convert rows, logging and skipping the ones that break an invariant."""
    result = []
    for row in rows:
        try:
            result.append(convert(row))
        except ValueError as e:
            logger.warning(f"Skipping {entity} {row.id}: {e}")
    return result


@_wrap_fetch('patients')
def fetch_patients(date_filter: Optional[DateFilter] = None, status: Optional[str] = None) -> List[PatientSnapshot]:
    """
    Fetch patients with their admissions.

    Args:
        date_filter: Keep patients with an admission overlapping the range
        status: Keep patients with at least one admission in this status

    Returns:
        list: PatientSnapshot objects ordered by name
    """
    query = Patient.query

    if status:
        query = query.filter(Patient.admissions.any(Admission.status == status))

    if date_filter is not None:
        start, end = _naive(date_filter.start), _naive(date_filter.end)
        query = query.filter(Patient.admissions.any(
            (Admission.admission_date <= end)
            & or_(Admission.discharge_date.is_(None), Admission.discharge_date >= start)
        ))

    rows = query.order_by(Patient.name).all()
    logger.debug(f"Fetched {len(rows)} patients")
    return _snapshots(rows, patient_snapshot, 'patient')


@_wrap_fetch('admissions')
def fetch_admissions(status: Optional[str] = None, date_filter: Optional[DateFilter] = None) -> List[AdmissionSnapshot]:
    """Fetch admissions, optionally by status and admission_date range."""
    query = Admission.query

    if status:
        query = query.filter_by(status=status)

    if date_filter is not None:
        query = query.filter(
            Admission.admission_date >= _naive(date_filter.start),
            Admission.admission_date <= _naive(date_filter.end),
        )

    rows = query.order_by(Admission.admission_date).all()
    return _snapshots(rows, admission_snapshot, 'admission')


@_wrap_fetch('consultations')
def fetch_consultations(date_filter: Optional[DateFilter] = None, status: Optional[str] = None) -> List[ConsultationSnapshot]:
    """Fetch consultations with their doctor, newest first."""
    query = Consultation.query

    if status:
        query = query.filter_by(status=status)

    if date_filter is not None:
        query = query.filter(
            Consultation.created_at >= _naive(date_filter.start),
            Consultation.created_at <= _naive(date_filter.end),
        )

    rows = query.order_by(Consultation.created_at.desc()).all()
    logger.debug(f"Fetched {len(rows)} consultations")
    return _snapshots(rows, consultation_snapshot, 'consultation')


@_wrap_fetch('appointments')
def fetch_appointments(date_filter: Optional[DateFilter] = None, status: Optional[str] = None) -> List[AppointmentSnapshot]:
    query = Appointment.query

    if status:
        query = query.filter_by(status=status)

    if date_filter is not None:
        query = query.filter(
            Appointment.created_at >= _naive(date_filter.start),
            Appointment.created_at <= _naive(date_filter.end),
        )

    rows = query.order_by(Appointment.created_at.desc()).all()
    return _snapshots(rows, appointment_snapshot, 'appointment')


@_wrap_fetch('departments')
def fetch_department_names() -> List[str]:
    """Names of the active departments, alphabetical."""
    rows = Department.query.filter_by(is_active=True).order_by(Department.name).all()
    return [row.name for row in rows]


def fetch_snapshot_batch() -> SnapshotBatch:
    """Fetch patients, consultations and appointments as one unit."""
    fetched_at = utc_now()
    patients = fetch_patients()
    consultations = fetch_consultations()
    appointments = fetch_appointments()
    logger.info(
        f"Snapshot batch fetched: {len(patients)} patients, "
        f"{len(consultations)} consultations, {len(appointments)} appointments"
    )
    return SnapshotBatch(
        patients=tuple(patients),
        consultations=tuple(consultations),
        appointments=tuple(appointments),
        fetched_at=fetched_at,
    )
