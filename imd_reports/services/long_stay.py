"""
Long-stay patient detection.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from imd_reports.snapshots import PatientSnapshot
from imd_reports.utils.date_filters import DateFilter, as_utc, utc_now
from imd_reports.utils.rounding import mean, round_half_up

DEFAULT_THRESHOLD_DAYS = 7


@dataclass(frozen=True)
class LongStayPatient:
    id: int
    name: str
    mrn: str
    department: str
    doctor: str
    admission_date: datetime
    days_of_stay: int
    diagnosis: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'mrn': self.mrn,
            'department': self.department,
            'doctor': self.doctor,
            'admission_date': self.admission_date.isoformat(),
            'days_of_stay': self.days_of_stay,
            'diagnosis': self.diagnosis,
        }


@dataclass(frozen=True)
class LongStayReport:
    patients: List[LongStayPatient] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.patients)

    @property
    def average_stay(self) -> int:
        return round_half_up(mean(p.days_of_stay for p in self.patients))

    @property
    def max_stay(self) -> int:
        return max((p.days_of_stay for p in self.patients), default=0)

    def to_dict(self):
        return {
            'patients': [p.to_dict() for p in self.patients],
            'total': self.total,
            'average_stay': self.average_stay,
            'max_stay': self.max_stay,
        }


def detect_long_stay(
    patients: Iterable[PatientSnapshot],
    date_filter: DateFilter,
    now: Optional[datetime] = None,
    threshold_days: int = DEFAULT_THRESHOLD_DAYS,
) -> LongStayReport:
    """
    Patients admitted inside the range who have stayed ``threshold_days`` or more.

    Only open stays count: the latest admission must still be active. The
    stay is counted in calendar days from that admission to ``now``.
    Longest stays come first.
    """
    now = as_utc(now) if now else utc_now()
    selected = []

    for patient in patients:
        latest = patient.latest_admission
        if latest is None or not latest.is_active:
            continue
        admitted = latest.admission_date
        if not date_filter.contains(admitted):
            continue
        days = (now.date() - admitted.date()).days
        if days < threshold_days:
            continue
        selected.append(LongStayPatient(
            id=patient.id,
            name=patient.name,
            mrn=patient.mrn,
            department=patient.department_name,
            doctor=patient.assigned_doctor,
            admission_date=admitted,
            days_of_stay=days,
            diagnosis=latest.diagnosis,
        ))

    selected.sort(key=lambda p: p.days_of_stay, reverse=True)
    return LongStayReport(selected)
