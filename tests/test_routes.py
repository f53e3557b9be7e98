import os
from datetime import datetime, timedelta

import pytest

from imd_reports.errors import DataFetchError
from imd_reports.extensions import db
from imd_reports.models import Admission, AuditLog, Consultation, DepartmentStatistic, Patient, Report
from imd_reports.models.base import utcnow
from imd_reports.services import refresh


@pytest.fixture
def seeded(app):
    now = utcnow()
    patient = Patient(mrn='MRN100', name='Nadia Saleh', department='Neurology', doctor_name='Dr. Lina')
    db.session.add(patient)
    db.session.flush()
    db.session.add_all([
        Admission(patient_id=patient.id, status='active', department='Neurology',
                  admission_date=now - timedelta(days=9), safety_type='observation'),
        Consultation(patient_name='Nadia Saleh', mrn='MRN100', consultation_specialty='Neurology',
                     urgency='urgent', status='active', created_at=now - timedelta(hours=1)),
    ])
    db.session.commit()
    return patient


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_readiness_reports_database(client):
    response = client.get('/health/ready')

    assert response.status_code == 200
    assert response.get_json()['database'] == 'connected'


def test_snapshot_health_after_a_statistics_request(client):
    client.get('/api/statistics/safety')

    data = client.get('/health/snapshots').get_json()
    assert data['refresh_count'] == 1
    assert data['fetched_at'] is not None
    assert data['refreshing'] is False


def test_unknown_endpoint_is_json_404(client):
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json()['success'] is False


# Department statistics

def test_department_stats_new_only_by_default(app, client):
    db.session.add_all([
        DepartmentStatistic(department_name='Neurology', statistic={'patients': 3}, is_new=True),
        DepartmentStatistic(department_name='Hematology', statistic={'patients': 1}, is_new=False),
    ])
    db.session.commit()

    response = client.get('/api/department-stats')

    assert response.status_code == 200
    assert response.get_json() == [{'departmentName': 'Neurology', 'statistic': {'patients': 3}}]


def test_department_stats_include_all(app, client):
    db.session.add_all([
        DepartmentStatistic(department_name='Neurology', statistic={}, is_new=True),
        DepartmentStatistic(department_name='Hematology', statistic={}, is_new=False),
    ])
    db.session.commit()

    response = client.get('/api/department-stats?include=all')

    assert [row['departmentName'] for row in response.get_json()] == ['Neurology', 'Hematology']


def test_department_stats_failure_is_500(app, client):
    db.drop_all()

    response = client.get('/api/department-stats')

    assert response.status_code == 500
    assert response.get_json() == {'error': 'Internal Server Error'}
    db.create_all()


# Statistics

def test_summary_endpoint(client, seeded):
    start = (utcnow() - timedelta(days=14)).date().isoformat()
    end = utcnow().date().isoformat()

    response = client.get(f"/api/statistics/summary?start_date={start}&end_date={end}")

    body = response.get_json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['data']['active_patients'] == 1
    assert body['data']['active_consultations'] == 1


def test_long_stay_endpoint(client, seeded):
    start = (utcnow() - timedelta(days=14)).date().isoformat()
    end = utcnow().date().isoformat()

    response = client.get(f"/api/statistics/long-stay?start_date={start}&end_date={end}")

    data = response.get_json()['data']
    assert data['total'] == 1
    assert data['patients'][0]['name'] == 'Nadia Saleh'
    assert data['max_stay'] == 9


def test_departments_endpoint(client, seeded):
    response = client.get('/api/statistics/departments')

    groups = response.get_json()['data']['groups']
    assert groups == [{'name': 'Neurology', 'patients': 1, 'consultations': 1, 'occupancy_rate': 10}]


@pytest.mark.parametrize('path', ['summary', 'doctors', 'discharges', 'safety', 'specialties'])
def test_statistics_endpoints_with_no_data(client, path):
    response = client.get(f'/api/statistics/{path}')

    assert response.status_code == 200
    assert response.get_json()['success'] is True


def test_statistics_bad_date_is_400(client):
    response = client.get('/api/statistics/summary?start_date=31/12/2024')

    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_statistics_fetch_failure_is_503(app, client, monkeypatch):
    def broken():
        raise DataFetchError('Failed to fetch patients: connection refused')

    monkeypatch.setattr(refresh.get_refresher(), '_fetch', broken)

    response = client.get('/api/statistics/doctors')

    assert response.status_code == 503
    assert 'connection refused' in response.get_json()['error']


# Report export

def test_export_daily_report_sends_pdf(app, client, seeded):
    response = client.post('/api/reports/export', json={'kind': 'daily', 'reportType': 'daily'})

    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')
    assert 'daily-report-' in response.headers['Content-Disposition']

    report = Report.query.one()
    assert report.status == 'completed'
    assert report.file_size > 0
    assert os.path.dirname(report.file_path) == os.path.abspath(app.config['PDF_REPORTS_PATH'])
    assert AuditLog.query.filter_by(entity_type='report', action='export').count() == 1


def test_export_rejects_unknown_kind(client):
    response = client.post('/api/reports/export', json={'kind': 'weekly'})

    assert response.status_code == 400


def test_export_rejects_bad_filters(client):
    response = client.post('/api/reports/export', json={'reportType': 'hourly'})

    assert response.status_code == 400
    assert Report.query.count() == 0


def test_export_write_failure_marks_report_failed(app, client, tmp_path):
    blocker = tmp_path / 'blocked'
    blocker.write_text('')
    app.config['PDF_REPORTS_PATH'] = str(blocker)

    response = client.post('/api/reports/export', json={'kind': 'long-stay'})

    body = response.get_json()
    assert response.status_code == 500
    assert body['code'] == 'PDF_EXPORT_ERROR'
    assert body['data']['status'] == 'failed'

    report = db.session.get(Report, body['data']['report_id'])
    assert report.status == 'failed'
    assert report.error_code == 'PDF_EXPORT_ERROR'
    assert AuditLog.query.filter_by(action='fail').count() == 1


def test_export_aggregation_failure_marks_report_failed(app, client, seeded):
    app.config['OCCUPANCY_POLICY'] = 'bogus'

    response = client.post('/api/reports/export', json={'kind': 'admin'})

    body = response.get_json()
    assert response.status_code == 500
    assert body['code'] == 'PDF_GENERATION_ERROR'
    assert body['data']['status'] == 'failed'

    report = db.session.get(Report, body['data']['report_id'])
    assert report.status == 'failed'
    assert report.error_code == 'PDF_GENERATION_ERROR'


def test_async_export_aggregation_failure_marks_report_failed(app, client, seeded):
    app.config['OCCUPANCY_POLICY'] = 'bogus'

    response = client.post('/api/reports/export', json={'kind': 'admin', 'async': True})

    report_id = response.get_json()['data']['report_id']
    status = client.get(f'/api/reports/{report_id}/status').get_json()['data']
    assert status['status'] == 'failed'
    assert status['error_code'] == 'PDF_GENERATION_ERROR'


def test_export_async_runs_task(app, client, seeded):
    response = client.post('/api/reports/export', json={'kind': 'admin', 'async': True})

    body = response.get_json()
    assert response.status_code == 202
    assert body['data']['task_id']

    report_id = body['data']['report_id']
    status = client.get(f'/api/reports/{report_id}/status').get_json()['data']
    assert status['status'] == 'completed'

    download = client.get(f'/api/reports/{report_id}/download')
    assert download.status_code == 200
    assert download.data.startswith(b'%PDF')


def test_list_and_get_reports(client, seeded):
    client.post('/api/reports/export', json={'kind': 'daily'})

    listing = client.get('/api/reports?kind=daily').get_json()['data']
    assert listing['pagination']['total'] == 1

    report_id = listing['reports'][0]['id']
    detail = client.get(f'/api/reports/{report_id}').get_json()['data']
    assert detail['report_kind'] == 'daily'
    assert detail['filters']['specialty'] == 'all'


def test_list_reports_rejects_unknown_status(client):
    response = client.get('/api/reports?status=archived')

    assert response.status_code == 400


def test_download_missing_report(client):
    assert client.get('/api/reports/999/download').status_code == 404


def test_download_not_ready(app, client):
    db.session.add(Report(
        report_number='RPT-1', report_kind='daily', period='today',
        period_start=datetime(2024, 3, 1), period_end=datetime(2024, 3, 1, 23, 59),
        status='generating',
    ))
    db.session.commit()
    report_id = Report.query.one().id

    response = client.get(f'/api/reports/{report_id}/download')

    assert response.status_code == 400


def test_report_audit_trail_lists_export_then_download(client, seeded):
    client.post('/api/reports/export', json={'kind': 'daily'})
    report_id = Report.query.one().id
    client.get(f'/api/reports/{report_id}/download?actor=ward-clerk')

    body = client.get(f'/api/reports/{report_id}/audit').get_json()

    entries = body['data']['entries']
    assert [entry['action'] for entry in entries] == ['export', 'download']
    assert entries[1]['actor'] == 'ward-clerk'


def test_report_audit_trail_unknown_report(client):
    assert client.get('/api/reports/999/audit').status_code == 404
