"""
Discharge and length-of-stay aggregation, plus the daily admission timeline.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable

from imd_reports.snapshots import PatientSnapshot
from imd_reports.utils.date_filters import DateFilter, as_utc, days_between_ceil, iter_days
from imd_reports.utils.rounding import round_one_decimal


def empty_timeline(date_filter: DateFilter) -> Dict[str, int]:
    """Zero-filled counters keyed by every ISO date of the range."""
    return {day.isoformat(): 0 for day in iter_days(date_filter.start, date_filter.end)}


@dataclass
class DischargeStatistics:
    total_discharges: int = 0
    total_length_of_stay: int = 0
    department_discharges: Dict[str, int] = field(default_factory=dict)
    timeline: Dict[str, int] = field(default_factory=dict)

    @property
    def avg_length_of_stay(self) -> float:
        if not self.total_discharges:
            return 0
        return round_one_decimal(self.total_length_of_stay / self.total_discharges)

    def to_dict(self):
        return {
            'total_discharges': self.total_discharges,
            'avg_length_of_stay': self.avg_length_of_stay,
            'department_discharges': dict(self.department_discharges),
            'timeline': [{'date': day, 'count': count} for day, count in self.timeline.items()],
        }


def discharge_statistics(patients: Iterable[PatientSnapshot], date_filter: DateFilter) -> DischargeStatistics:
    """
    Count discharges whose discharge_date falls inside the range.

    The range end is stretched to 23:59:59.999 of its day. Length of stay is
    whole days rounded up.
    """
    window = date_filter.through_end_of_day()
    stats = DischargeStatistics(timeline=empty_timeline(window))

    for patient in patients:
        for admission in patient.admissions:
            if admission.discharge_date is None or not window.contains(admission.discharge_date):
                continue
            stats.total_discharges += 1
            stats.total_length_of_stay += days_between_ceil(admission.discharge_date, admission.admission_date)

            department = admission.department_name
            stats.department_discharges[department] = stats.department_discharges.get(department, 0) + 1

            key = as_utc(admission.discharge_date).date().isoformat()
            if key in stats.timeline:
                stats.timeline[key] += 1

    return stats


def admission_trends(patients: Iterable[PatientSnapshot], date_filter: DateFilter) -> Dict[str, int]:
    """Admissions per day by admission_date, zero-filled across the range."""
    window = date_filter.through_end_of_day()
    timeline = empty_timeline(window)
    for patient in patients:
        for admission in patient.admissions:
            if window.contains(admission.admission_date):
                timeline[admission.admission_date.date().isoformat()] += 1
    return timeline
