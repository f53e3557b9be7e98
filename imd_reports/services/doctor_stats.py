"""
Doctor performance aggregation over consultations.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, List

from imd_reports.snapshots import ConsultationSnapshot, UNKNOWN_DOCTOR
from imd_reports.utils.date_filters import DateFilter
from imd_reports.utils.rounding import mean, percentage, round_half_up

MINUTE = timedelta(minutes=1)


@dataclass
class DoctorMetrics:
    doctor_id: int
    doctor_name: str = UNKNOWN_DOCTOR
    total_consultations: int = 0
    completed_consultations: int = 0
    emergency_count: int = 0
    urgent_count: int = 0
    routine_count: int = 0
    average_response_time: int = 0  # minutes

    def to_dict(self):
        return {
            'doctor_id': self.doctor_id,
            'doctor_name': self.doctor_name,
            'total_consultations': self.total_consultations,
            'completed_consultations': self.completed_consultations,
            'emergency_count': self.emergency_count,
            'urgent_count': self.urgent_count,
            'routine_count': self.routine_count,
            'average_response_time': self.average_response_time,
        }


@dataclass
class DoctorStatistics:
    doctors: List[DoctorMetrics] = field(default_factory=list)
    unassigned_consultations: int = 0

    @property
    def total_consultations(self) -> int:
        return sum(d.total_consultations for d in self.doctors)

    @property
    def completed_consultations(self) -> int:
        return sum(d.completed_consultations for d in self.doctors)

    @property
    def completion_rate(self) -> int:
        return percentage(self.completed_consultations, self.total_consultations)

    @property
    def average_response_time(self) -> int:
        return round_half_up(mean(d.average_response_time for d in self.doctors))

    @property
    def emergency_cases(self) -> int:
        return sum(d.emergency_count for d in self.doctors)

    def to_dict(self):
        return {
            'doctors': [d.to_dict() for d in self.doctors],
            'total_consultations': self.total_consultations,
            'completed_consultations': self.completed_consultations,
            'completion_rate': self.completion_rate,
            'average_response_time': self.average_response_time,
            'emergency_cases': self.emergency_cases,
            'unassigned_consultations': self.unassigned_consultations,
        }


def doctor_statistics(consultations: Iterable[ConsultationSnapshot], date_filter: DateFilter) -> DoctorStatistics:
    """
    Group consultations created inside the range by doctor.

    Response time is ``updated_at - created_at`` of completed consultations,
    averaged per doctor and reported in whole minutes. Consultations without
    a doctor only count towards ``unassigned_consultations``.
    """
    by_doctor = {}
    durations = {}
    unassigned = 0

    for consultation in consultations:
        if not date_filter.contains(consultation.created_at):
            continue
        if consultation.doctor_id is None:
            unassigned += 1
            continue

        doctor_id = consultation.doctor_id
        metrics = by_doctor.get(doctor_id)
        if metrics is None:
            metrics = DoctorMetrics(
                doctor_id=doctor_id,
                doctor_name=consultation.doctor.display_name,
            )
            by_doctor[doctor_id] = metrics
            durations[doctor_id] = []

        metrics.total_consultations += 1
        if consultation.status == 'completed':
            metrics.completed_consultations += 1
            durations[doctor_id].append(consultation.updated_at - consultation.created_at)

        urgency = consultation.urgency_level
        if urgency == 'emergency':
            metrics.emergency_count += 1
        elif urgency == 'urgent':
            metrics.urgent_count += 1
        elif urgency == 'routine':
            metrics.routine_count += 1

    for doctor_id, metrics in by_doctor.items():
        spans = durations[doctor_id]
        if spans:
            average = sum(spans, timedelta()) / len(spans)
            metrics.average_response_time = round_half_up(average / MINUTE)

    doctors = sorted(by_doctor.values(), key=lambda d: d.total_consultations, reverse=True)
    return DoctorStatistics(doctors=doctors, unassigned_consultations=unassigned)
