"""
Department and specialty aggregation: active patients, consultations and
occupancy per group.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from imd_reports.snapshots import (
    AdmissionSnapshot,
    ConsultationSnapshot,
    PatientSnapshot,
)
from imd_reports.utils.rounding import mean, round_half_up

OCCUPANCY_MODES = ('fixed_capacity', 'slack')


@dataclass(frozen=True)
class OccupancyPolicy:
    """
    How a group's active patient count becomes an occupancy percentage.

    ``fixed_capacity`` divides by a nominal bed count per group.
    ``slack`` divides by ``active + slack`` so the rate never reaches 100
    for small wards. Both are capped at 100.
    """
    mode: str = 'fixed_capacity'
    capacity: int = 10
    slack: int = 5

    def __post_init__(self):
        if self.mode not in OCCUPANCY_MODES:
            raise ValueError(f"Invalid occupancy mode '{self.mode}'. Must be one of: {', '.join(OCCUPANCY_MODES)}")
        if self.capacity < 1:
            raise ValueError('capacity must be at least 1')
        if self.slack < 0:
            raise ValueError('slack must not be negative')

    @classmethod
    def from_config(cls, config, mode_key='OCCUPANCY_POLICY') -> 'OccupancyPolicy':
        return cls(
            mode=config.get(mode_key, 'fixed_capacity'),
            capacity=config.get('DEPARTMENT_CAPACITY', 10),
            slack=config.get('OCCUPANCY_SLACK', 5),
        )

    def rate(self, active: int) -> int:
        if active <= 0:
            return 0
        if self.mode == 'slack':
            denominator = active + self.slack
        else:
            denominator = self.capacity
        return min(100, round_half_up(active / denominator * 100))


SLACK_POLICY = OccupancyPolicy(mode='slack')


@dataclass(frozen=True)
class GroupStatistic:
    name: str
    patients: int
    consultations: int
    occupancy_rate: int

    def to_dict(self):
        return {
            'name': self.name,
            'patients': self.patients,
            'consultations': self.consultations,
            'occupancy_rate': self.occupancy_rate,
        }


@dataclass(frozen=True)
class GroupStatistics:
    groups: List[GroupStatistic] = field(default_factory=list)

    @property
    def total_patients(self) -> int:
        return sum(g.patients for g in self.groups)

    @property
    def total_consultations(self) -> int:
        return sum(g.consultations for g in self.groups)

    @property
    def average_occupancy(self) -> int:
        return round_half_up(mean(g.occupancy_rate for g in self.groups))

    def to_dict(self):
        return {
            'groups': [g.to_dict() for g in self.groups],
            'total_patients': self.total_patients,
            'total_consultations': self.total_consultations,
            'average_occupancy': self.average_occupancy,
        }


def _ordered_names(names: Optional[Sequence[str]], encountered: Iterable[str]) -> List[str]:
    if names is not None:
        return list(dict.fromkeys(names))
    return list(dict.fromkeys(encountered))


def department_statistics(
    admissions: Iterable[AdmissionSnapshot],
    consultations: Iterable[ConsultationSnapshot],
    departments: Optional[Sequence[str]] = None,
    policy: OccupancyPolicy = OccupancyPolicy(),
) -> GroupStatistics:
    """
    Per-department active admissions, consultations and occupancy.

    A consultation belongs to a department when its specialty equals the
    department name. When ``departments`` is given it fixes the rows and their
    order, zero rows included; otherwise rows follow first encounter.
    """
    admissions = list(admissions)
    consultations = list(consultations)

    active_counts = {}
    for admission in admissions:
        if admission.is_active:
            name = admission.department_name
            active_counts[name] = active_counts.get(name, 0) + 1

    consultation_counts = {}
    for consultation in consultations:
        name = consultation.specialty_name
        consultation_counts[name] = consultation_counts.get(name, 0) + 1

    encountered = [a.department_name for a in admissions if a.is_active]
    encountered += [c.specialty_name for c in consultations]
    names = _ordered_names(departments, encountered)

    groups = [
        GroupStatistic(
            name=name,
            patients=active_counts.get(name, 0),
            consultations=consultation_counts.get(name, 0),
            occupancy_rate=policy.rate(active_counts.get(name, 0)),
        )
        for name in names
    ]
    return GroupStatistics(groups)


def specialty_statistics(
    patients: Iterable[PatientSnapshot],
    consultations: Iterable[ConsultationSnapshot],
    specialties: Sequence[str],
    policy: OccupancyPolicy = SLACK_POLICY,
) -> GroupStatistics:
    """
    Per-specialty active patients, consultations and occupancy.

    A patient counts for a specialty when any of their admissions is active
    in the department of that name.
    """
    patients = list(patients)
    consultations = list(consultations)

    groups = []
    for specialty in dict.fromkeys(specialties):
        active = sum(
            1 for p in patients
            if any(a.is_active and a.department == specialty for a in p.admissions)
        )
        consults = sum(1 for c in consultations if c.specialty == specialty)
        groups.append(GroupStatistic(
            name=specialty,
            patients=active,
            consultations=consults,
            occupancy_rate=policy.rate(active),
        ))
    return GroupStatistics(groups)


def specialty_distribution(consultations: Iterable[ConsultationSnapshot]) -> List[dict]:
    """Consultation count and share per specialty, largest first."""
    counts = {}
    total = 0
    for consultation in consultations:
        name = consultation.specialty_name
        counts[name] = counts.get(name, 0) + 1
        total += 1

    rows = [
        {
            'specialty': name,
            'count': count,
            'percentage': count / total * 100,
        }
        for name, count in counts.items()
    ]
    rows.sort(key=lambda row: row['count'], reverse=True)
    return rows

