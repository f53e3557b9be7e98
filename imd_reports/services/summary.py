"""
Summary rollup: active patients, occupancy, average stay and the safety
admission panel.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from imd_reports.snapshots import (
    AppointmentSnapshot,
    ConsultationSnapshot,
    PatientSnapshot,
    SAFETY_TYPES,
)
from imd_reports.utils.date_filters import DateFilter, as_utc, days_between_ceil, utc_now
from imd_reports.utils.rounding import mean, percentage, round_half_up

DEFAULT_TOTAL_BEDS = 100


@dataclass(frozen=True)
class ReportSummary:
    active_patients: int = 0
    active_consultations: int = 0
    average_stay: int = 0
    occupancy_rate: int = 0
    total_appointments: int = 0
    total_beds: int = DEFAULT_TOTAL_BEDS

    def to_dict(self):
        return {
            'active_patients': self.active_patients,
            'active_consultations': self.active_consultations,
            'average_stay': self.average_stay,
            'occupancy_rate': self.occupancy_rate,
            'total_appointments': self.total_appointments,
            'total_beds': self.total_beds,
        }


def _active_in_range(patient: PatientSnapshot, date_filter: DateFilter):
    return [
        a for a in patient.admissions
        if a.status == 'active' and date_filter.contains(a.admission_date)
    ]


def report_summary(
    patients: Iterable[PatientSnapshot],
    consultations: Iterable[ConsultationSnapshot],
    date_filter: DateFilter,
    total_beds: int = DEFAULT_TOTAL_BEDS,
    now: Optional[datetime] = None,
    appointments: Iterable[AppointmentSnapshot] = (),
) -> ReportSummary:
    """
    Headline numbers for the reporting screen.

    A patient is active when one of their admissions is active and was
    admitted inside the range. Occupancy is measured against ``total_beds``.
    """
    if total_beds < 1:
        raise ValueError('total_beds must be at least 1')
    now = as_utc(now) if now else utc_now()

    active_patients = 0
    stays = []
    for patient in patients:
        admissions = _active_in_range(patient, date_filter)
        if not admissions:
            continue
        active_patients += 1
        for admission in admissions:
            days = days_between_ceil(now, admission.admission_date)
            if days > 0:
                stays.append(days)

    active_consultations = sum(
        1 for c in consultations
        if c.status == 'active' and date_filter.contains(c.created_at)
    )

    return ReportSummary(
        active_patients=active_patients,
        active_consultations=active_consultations,
        average_stay=round_half_up(mean(stays)),
        occupancy_rate=round_half_up(active_patients / total_beds * 100),
        total_appointments=len(list(appointments)),
        total_beds=total_beds,
    )


@dataclass(frozen=True)
class SafetyStatistics:
    counts: Dict[str, int] = field(default_factory=dict)
    active_admissions: int = 0
    average_stay: int = 0

    @property
    def total_safety_admissions(self) -> int:
        return sum(self.counts.values())

    @property
    def safety_rate(self) -> int:
        return percentage(self.total_safety_admissions, self.active_admissions)

    def to_dict(self):
        return {
            'counts': dict(self.counts),
            'active_admissions': self.active_admissions,
            'total_safety_admissions': self.total_safety_admissions,
            'safety_rate': self.safety_rate,
            'average_stay': self.average_stay,
        }


def safety_statistics(patients: Iterable[PatientSnapshot], date_filter: DateFilter) -> SafetyStatistics:
    """Safety admissions (emergency, observation, short-stay) among active in-range admissions."""
    counts = {safety_type: 0 for safety_type in SAFETY_TYPES}
    active = 0
    discharged_stays = []

    for patient in patients:
        admissions = _active_in_range(patient, date_filter)
        if admissions:
            active += 1
            first = admissions[0]
            if first.safety_type:
                counts[first.safety_type] += 1

        for admission in patient.admissions:
            if (admission.safety_type and admission.status == 'discharged'
                    and admission.discharge_date is not None
                    and date_filter.contains(admission.admission_date)):
                discharged_stays.append(days_between_ceil(admission.discharge_date, admission.admission_date))

    return SafetyStatistics(
        counts=counts,
        active_admissions=active,
        average_stay=round_half_up(mean(discharged_stays)),
    )
