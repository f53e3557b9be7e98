from datetime import date, timedelta

import pytest

from conftest import NOW, admission, appointment, consultation, days_ago, patient
from imd_reports.services.department_stats import (
    OccupancyPolicy,
    department_statistics,
    specialty_distribution,
    specialty_statistics,
)
from imd_reports.services.discharge_stats import admission_trends, discharge_statistics
from imd_reports.services.doctor_stats import doctor_statistics
from imd_reports.services.long_stay import detect_long_stay
from imd_reports.services.summary import report_summary, safety_statistics
from imd_reports.utils.date_filters import DateFilter


def last_days(days):
    return DateFilter.from_dates((NOW - timedelta(days=days)).date(), NOW.date())


TODAY = DateFilter.from_dates(NOW.date(), NOW.date())


# Department and specialty statistics

def test_department_statistics_counts_active_admissions():
    admissions = [
        admission(days_ago(3), department='Neurology'),
        admission(days_ago(2), department='Neurology'),
        admission(days_ago(5), days_ago(1), department='Neurology'),
        admission(days_ago(1), department='Hematology'),
    ]
    consultations = [consultation(days_ago(1), specialty='Neurology')]

    result = department_statistics(admissions, consultations)

    groups = {g.name: g for g in result.groups}
    assert groups['Neurology'].patients == 2
    assert groups['Neurology'].consultations == 1
    assert groups['Neurology'].occupancy_rate == 20
    assert groups['Hematology'].occupancy_rate == 10
    assert result.total_patients == 3


def test_department_with_no_admissions_has_zero_occupancy():
    result = department_statistics([], [], departments=['Neurology', 'Hematology'])

    assert [g.name for g in result.groups] == ['Neurology', 'Hematology']
    assert all(g.occupancy_rate == 0 for g in result.groups)
    assert result.average_occupancy == 0


def test_fixed_capacity_occupancy_is_capped_at_100():
    policy = OccupancyPolicy(capacity=2)
    admissions = [admission(days_ago(1), department='ICU') for _ in range(5)]

    result = department_statistics(admissions, [], policy=policy)

    assert result.groups[0].occupancy_rate == 100


def test_slack_occupancy_policy():
    policy = OccupancyPolicy(mode='slack', slack=5)

    assert policy.rate(0) == 0
    assert policy.rate(5) == 50
    assert policy.rate(1) == 17


def test_occupancy_policy_rejects_unknown_mode():
    with pytest.raises(ValueError):
        OccupancyPolicy(mode='beds')


def test_specialty_statistics_counts_patients_by_active_admission():
    patients = [
        patient(admission(days_ago(2), department='Neurology')),
        patient(admission(days_ago(9), days_ago(4), department='Neurology')),
        patient(admission(days_ago(1), department='Pulmonology')),
    ]
    consultations = [
        consultation(days_ago(1), specialty='Neurology'),
        consultation(days_ago(1), specialty='Neurology'),
    ]

    result = specialty_statistics(patients, consultations, ['Neurology', 'Pulmonology', 'Hematology'])

    rows = result.to_dict()['groups']
    assert rows[0] == {'name': 'Neurology', 'patients': 1, 'consultations': 2, 'occupancy_rate': 17}
    assert rows[1]['patients'] == 1
    assert rows[2] == {'name': 'Hematology', 'patients': 0, 'consultations': 0, 'occupancy_rate': 0}


def test_specialty_distribution_is_sorted_with_shares():
    consultations = [
        consultation(NOW, specialty='Neurology'),
        consultation(NOW, specialty='Hematology'),
        consultation(NOW, specialty='Hematology'),
        consultation(NOW, specialty=None),
    ]

    rows = specialty_distribution(consultations)

    assert rows[0] == {'specialty': 'Hematology', 'count': 2, 'percentage': 50.0}
    assert {r['specialty'] for r in rows[1:]} == {'Neurology', 'Unspecified'}
    assert specialty_distribution([]) == []


# Doctor statistics

def test_completed_emergency_consultation_response_time():
    created = NOW - timedelta(hours=2)
    consultations = [
        consultation(
            created,
            status='completed',
            urgency='Emergency',
            doctor_id=1,
            updated_at=created + timedelta(minutes=30),
            completed_at=created + timedelta(minutes=30),
        ),
    ]

    result = doctor_statistics(consultations, TODAY)

    metrics = result.doctors[0]
    assert metrics.emergency_count == 1
    assert metrics.completed_consultations == 1
    assert metrics.average_response_time == 30
    assert result.completion_rate == 100


def test_doctor_statistics_skip_out_of_range_and_count_unassigned():
    consultations = [
        consultation(days_ago(3), doctor_id=1),
        consultation(NOW, doctor_id=1, urgency='urgent'),
        consultation(NOW, doctor_id=2, urgency='routine'),
        consultation(NOW, doctor_id=2),
        consultation(NOW),
    ]

    result = doctor_statistics(consultations, TODAY)

    assert [d.doctor_id for d in result.doctors] == [2, 1]
    assert result.total_consultations == 3
    assert result.unassigned_consultations == 1
    assert result.doctors[1].urgent_count == 1
    assert result.completion_rate == 0


def test_unrecognized_urgency_is_counted_in_total_only():
    consultations = [
        consultation(NOW, doctor_id=1, urgency='STAT'),
        consultation(NOW, doctor_id=1, urgency='urgent'),
    ]

    metrics = doctor_statistics(consultations, TODAY).doctors[0]

    assert metrics.total_consultations == 2
    assert metrics.emergency_count + metrics.urgent_count + metrics.routine_count == 1


def test_doctors_with_equal_totals_keep_first_seen_order():
    consultations = [
        consultation(NOW, doctor_id=5),
        consultation(NOW, doctor_id=3),
        consultation(NOW, doctor_id=9),
        consultation(NOW, doctor_id=9),
    ]

    result = doctor_statistics(consultations, TODAY)

    assert [d.doctor_id for d in result.doctors] == [9, 5, 3]


def test_doctor_without_name_is_unknown():
    stats = doctor_statistics([consultation(NOW, doctor_id=7, doctor_name=None)], TODAY)

    assert stats.doctors[0].doctor_name == 'Unknown'


# Discharges and trends

def test_discharge_statistics_include_end_of_day_boundary():
    date_filter = DateFilter.from_dates(date(2024, 3, 14), date(2024, 3, 15))
    last_instant = date_filter.end
    patients = [
        patient(admission(last_instant - timedelta(days=2), last_instant, department='Neurology')),
        patient(admission(days_ago(5), last_instant + timedelta(milliseconds=1))),
    ]

    stats = discharge_statistics(patients, date_filter)

    assert stats.total_discharges == 1
    assert stats.avg_length_of_stay == 2
    assert stats.department_discharges == {'Neurology': 1}
    assert stats.timeline == {'2024-03-14': 0, '2024-03-15': 1}


def test_average_length_of_stay_keeps_one_decimal():
    discharged = NOW - timedelta(days=1)
    patients = [
        patient(admission(discharged - timedelta(days=stay), discharged))
        for stay in (1, 2, 4)
    ]

    stats = discharge_statistics(patients, last_days(5))

    assert stats.total_discharges == 3
    assert stats.avg_length_of_stay == 2.3
    assert abs(stats.avg_length_of_stay * 3 - stats.total_length_of_stay) <= 0.05 * 3


def test_discharge_just_before_range_end_is_counted():
    date_filter = DateFilter.from_dates(date(2024, 3, 14), date(2024, 3, 15))
    discharged = date_filter.end - timedelta(milliseconds=1)

    stats = discharge_statistics([patient(admission(discharged - timedelta(days=2), discharged))], date_filter)

    assert stats.total_discharges == 1
    assert stats.avg_length_of_stay == 2
    assert stats.timeline['2024-03-15'] == 1


def test_discharge_statistics_empty_range_has_zero_filled_timeline():
    stats = discharge_statistics([], DateFilter.from_dates(date(2024, 3, 1), date(2024, 3, 3)))

    data = stats.to_dict()
    assert data['total_discharges'] == 0
    assert data['avg_length_of_stay'] == 0
    assert [row['date'] for row in data['timeline']] == ['2024-03-01', '2024-03-02', '2024-03-03']


def test_admission_trends_per_day():
    patients = [
        patient(admission(days_ago(1))),
        patient(admission(days_ago(1, hours=1))),
        patient(admission(days_ago(30))),
    ]

    trends = admission_trends(patients, last_days(2))

    assert trends[(NOW - timedelta(days=1)).date().isoformat()] == 2
    assert sum(trends.values()) == 2
    assert len(trends) == 3


# Long stay

def test_long_stay_patient_admitted_ten_days_ago():
    patients = [patient(admission(days_ago(10)))]

    report = detect_long_stay(patients, last_days(14), now=NOW)

    assert report.total == 1
    assert report.patients[0].days_of_stay == 10
    assert report.average_stay == 10
    assert report.max_stay == 10


def test_long_stay_excludes_short_stays_and_sorts_longest_first():
    patients = [
        patient(admission(days_ago(8)), name='Eight'),
        patient(admission(days_ago(3)), name='Three'),
        patient(admission(days_ago(12)), name='Twelve'),
    ]

    report = detect_long_stay(patients, last_days(14), now=NOW)

    assert [p.name for p in report.patients] == ['Twelve', 'Eight']
    assert report.average_stay == 10


def test_long_stay_is_idempotent_and_defaults_missing_doctor():
    patients = [patient(admission(days_ago(9)))]

    first = detect_long_stay(patients, last_days(14), now=NOW)
    second = detect_long_stay(patients, last_days(14), now=NOW)

    assert first == second
    assert first.patients[0].doctor == 'Not Assigned'


def test_discharged_patient_is_not_a_long_stay():
    patients = [
        patient(admission(days_ago(10), days_ago(8)), name='Discharged'),
        patient(admission(days_ago(20), days_ago(15)), admission(days_ago(9)), name='Readmitted'),
    ]

    report = detect_long_stay(patients, last_days(14), now=NOW)

    assert [p.name for p in report.patients] == ['Readmitted']
    assert report.patients[0].days_of_stay == 9


def test_patient_without_admissions_is_skipped():
    report = detect_long_stay([patient()], last_days(14), now=NOW)

    assert report.to_dict() == {'patients': [], 'total': 0, 'average_stay': 0, 'max_stay': 0}


# Summary and safety

def test_report_summary():
    patients = [
        patient(admission(days_ago(2))),
        patient(admission(days_ago(4))),
        patient(admission(days_ago(3), days_ago(1))),
    ]
    consultations = [
        consultation(days_ago(1)),
        consultation(days_ago(1), status='completed', completed_at=days_ago(0)),
    ]

    summary = report_summary(
        patients, consultations, last_days(7), total_beds=50, now=NOW,
        appointments=[appointment(days_ago(1))],
    )

    assert summary.active_patients == 2
    assert summary.active_consultations == 1
    assert summary.average_stay == 3
    assert summary.occupancy_rate == 4
    assert summary.total_appointments == 1


def test_report_summary_rejects_zero_beds():
    with pytest.raises(ValueError):
        report_summary([], [], TODAY, total_beds=0)


def test_safety_statistics():
    patients = [
        patient(admission(days_ago(1), safety_type='emergency')),
        patient(admission(days_ago(2), safety_type='observation')),
        patient(admission(days_ago(2), safety_type='unknown')),
        patient(admission(days_ago(4), days_ago(1), safety_type='short-stay')),
    ]

    stats = safety_statistics(patients, last_days(7))

    assert stats.counts == {'emergency': 1, 'observation': 1, 'short-stay': 0}
    assert stats.active_admissions == 3
    assert stats.safety_rate == 67
    assert stats.average_stay == 3


ZERO_GROUPS = {'groups': [], 'total_patients': 0, 'total_consultations': 0, 'average_occupancy': 0}


@pytest.mark.parametrize('aggregate, expected', [
    (lambda: department_statistics([], []).to_dict(), ZERO_GROUPS),
    (lambda: specialty_statistics([], [], []).to_dict(), ZERO_GROUPS),
    (lambda: doctor_statistics([], TODAY).to_dict(), {
        'doctors': [],
        'total_consultations': 0,
        'completed_consultations': 0,
        'completion_rate': 0,
        'average_response_time': 0,
        'emergency_cases': 0,
        'unassigned_consultations': 0,
    }),
    (lambda: discharge_statistics([], TODAY).to_dict(), {
        'total_discharges': 0,
        'avg_length_of_stay': 0,
        'department_discharges': {},
        'timeline': [{'date': '2024-03-15', 'count': 0}],
    }),
    (lambda: detect_long_stay([], TODAY, now=NOW).to_dict(), {
        'patients': [], 'total': 0, 'average_stay': 0, 'max_stay': 0,
    }),
    (lambda: report_summary([], [], TODAY, now=NOW).to_dict(), {
        'active_patients': 0,
        'active_consultations': 0,
        'average_stay': 0,
        'occupancy_rate': 0,
        'total_appointments': 0,
        'total_beds': 100,
    }),
    (lambda: safety_statistics([], TODAY).to_dict(), {
        'counts': {'emergency': 0, 'observation': 0, 'short-stay': 0},
        'active_admissions': 0,
        'total_safety_admissions': 0,
        'safety_rate': 0,
        'average_stay': 0,
    }),
])
def test_empty_input_gives_zero_results(aggregate, expected):
    assert aggregate() == expected
