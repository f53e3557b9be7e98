"""
Immutable record snapshots handed to the aggregators.

The fetchers build these from ORM rows; tests and callers can build them
directly. Aggregators never see the database.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple

from imd_reports.utils.date_filters import DateFilter, as_utc, utc_now

ADMISSION_STATUSES = ('active', 'discharged')
SAFETY_TYPES = ('emergency', 'observation', 'short-stay')
SHIFT_TYPES = ('morning', 'evening', 'night', 'weekend_morning', 'weekend_night')
URGENCY_LEVELS = ('emergency', 'urgent', 'routine')
CONSULTATION_STATUSES = ('active', 'completed', 'discharged')
APPOINTMENT_TYPES = ('routine', 'urgent')

UNASSIGNED_DOCTOR = 'Not Assigned'
UNKNOWN_DOCTOR = 'Unknown'
UNASSIGNED_DEPARTMENT = 'Unassigned'
UNSPECIFIED_SPECIALTY = 'Unspecified'


@dataclass(frozen=True)
class DoctorRef:
    id: int
    name: Optional[str] = None
    medical_code: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_DOCTOR

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'medical_code': self.medical_code,
            'role': self.role,
            'department': self.department,
        }


@dataclass(frozen=True)
class AdmissionSnapshot:
    id: int
    status: str
    admission_date: datetime
    discharge_date: Optional[datetime] = None
    department: Optional[str] = None
    diagnosis: Optional[str] = None
    visit_number: Optional[int] = None
    safety_type: Optional[str] = None
    shift_type: Optional[str] = None
    is_weekend: bool = False
    admitting_doctor: Optional[DoctorRef] = None

    def __post_init__(self):
        object.__setattr__(self, 'admission_date', as_utc(self.admission_date))
        object.__setattr__(self, 'discharge_date', as_utc(self.discharge_date))
        if self.admission_date is None:
            raise ValueError(f'Admission {self.id} has no admission_date')
        if self.discharge_date is not None and self.discharge_date < self.admission_date:
            raise ValueError(f'Admission {self.id} is discharged before it was admitted')
        if self.safety_type not in SAFETY_TYPES:
            object.__setattr__(self, 'safety_type', None)

    @property
    def is_active(self) -> bool:
        return self.status == 'active' and self.discharge_date is None

    @property
    def department_name(self) -> str:
        return self.department or UNASSIGNED_DEPARTMENT

    def to_dict(self):
        return {
            'id': self.id,
            'status': self.status,
            'admission_date': self.admission_date.isoformat(),
            'discharge_date': self.discharge_date.isoformat() if self.discharge_date else None,
            'department': self.department,
            'diagnosis': self.diagnosis,
            'visit_number': self.visit_number,
            'safety_type': self.safety_type,
            'shift_type': self.shift_type,
            'is_weekend': self.is_weekend,
            'admitting_doctor': self.admitting_doctor.to_dict() if self.admitting_doctor else None,
        }


@dataclass(frozen=True)
class PatientSnapshot:
    id: int
    mrn: str
    name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    department: Optional[str] = None
    doctor_name: Optional[str] = None
    admissions: Tuple[AdmissionSnapshot, ...] = ()

    def __post_init__(self):
        ordered = tuple(sorted(self.admissions, key=lambda a: a.admission_date))
        object.__setattr__(self, 'admissions', ordered)

    @property
    def latest_admission(self) -> Optional[AdmissionSnapshot]:
        return self.admissions[-1] if self.admissions else None

    @property
    def admission_date(self) -> Optional[datetime]:
        latest = self.latest_admission
        return latest.admission_date if latest else None

    @property
    def department_name(self) -> str:
        if self.department:
            return self.department
        latest = self.latest_admission
        return latest.department_name if latest else UNASSIGNED_DEPARTMENT

    @property
    def assigned_doctor(self) -> str:
        return self.doctor_name or UNASSIGNED_DOCTOR

    def to_dict(self, include_admissions=True):
        data = {
            'id': self.id,
            'mrn': self.mrn,
            'name': self.name,
            'date_of_birth': self.date_of_birth.isoformat() if self.date_of_birth else None,
            'gender': self.gender,
            'department': self.department,
            'doctor_name': self.doctor_name,
            'admission_date': self.admission_date.isoformat() if self.admission_date else None,
        }
        if include_admissions:
            data['admissions'] = [a.to_dict() for a in self.admissions]
        return data


@dataclass(frozen=True)
class ConsultationSnapshot:
    id: int
    patient_id: Optional[int]
    patient_name: str
    mrn: str
    specialty: Optional[str]
    urgency: Optional[str]
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    doctor: Optional[DoctorRef] = None
    reason: Optional[str] = None
    requesting_department: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'created_at', as_utc(self.created_at))
        object.__setattr__(self, 'updated_at', as_utc(self.updated_at) or self.created_at)
        object.__setattr__(self, 'completed_at', as_utc(self.completed_at))
        if self.created_at is None:
            raise ValueError(f'Consultation {self.id} has no created_at')
        if self.completed_at is not None and self.status != 'completed':
            raise ValueError(f"Consultation {self.id} has a completion time but status '{self.status}'")

    @property
    def doctor_id(self) -> Optional[int]:
        return self.doctor.id if self.doctor else None

    @property
    def doctor_name(self) -> Optional[str]:
        return self.doctor.name if self.doctor else None

    @property
    def urgency_level(self) -> Optional[str]:
        level = (self.urgency or '').strip().lower()
        return level if level in URGENCY_LEVELS else None

    @property
    def specialty_name(self) -> str:
        return self.specialty or UNSPECIFIED_SPECIALTY

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'patient_name': self.patient_name,
            'mrn': self.mrn,
            'consultation_specialty': self.specialty,
            'urgency': self.urgency,
            'status': self.status,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'doctor': self.doctor.to_dict() if self.doctor else None,
            'reason': self.reason,
            'requesting_department': self.requesting_department,
        }


@dataclass(frozen=True)
class AppointmentSnapshot:
    id: int
    patient_id: Optional[int]
    patient_name: str
    medical_number: str
    specialty: Optional[str]
    appointment_type: str
    status: str
    created_at: datetime

    def __post_init__(self):
        object.__setattr__(self, 'created_at', as_utc(self.created_at))
        if self.appointment_type not in APPOINTMENT_TYPES:
            object.__setattr__(self, 'appointment_type', 'routine')

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'patient_name': self.patient_name,
            'medical_number': self.medical_number,
            'specialty': self.specialty,
            'appointment_type': self.appointment_type,
            'status': self.status,
            'created_at': self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class SnapshotBatch:
    patients: Tuple[PatientSnapshot, ...] = ()
    consultations: Tuple[ConsultationSnapshot, ...] = ()
    appointments: Tuple[AppointmentSnapshot, ...] = ()
    fetched_at: datetime = field(default_factory=utc_now)

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = as_utc(now) if now else utc_now()
        return (now - self.fetched_at).total_seconds()


@dataclass(frozen=True)
class ExportData:
    """Filtered records handed to a PDF exporter, with the range they cover."""
    date_filter: DateFilter
    patients: Tuple[PatientSnapshot, ...] = ()
    consultations: Tuple[ConsultationSnapshot, ...] = ()
    appointments: Tuple[AppointmentSnapshot, ...] = ()
    generated_at: datetime = field(default_factory=utc_now)
    generated_by: str = 'system'
