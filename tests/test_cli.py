from imd_reports.models import Admission, Department, DepartmentStatistic, Patient
from imd_reports.seeds import seed_demo_data


def test_seed_demo_loads_once(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=['seed-demo'])
    second = runner.invoke(args=['seed-demo'])

    assert 'Demo data loaded.' in first.output
    assert 'already present' in second.output
    assert Department.query.count() == 10
    assert Patient.query.count() == 8
    assert Admission.query.filter_by(status='active').count() == 5
    assert DepartmentStatistic.query.filter_by(is_new=True).count() == 4


def test_seeded_data_feeds_the_statistics(app, client):
    assert seed_demo_data() is True

    response = client.get('/api/statistics/departments')

    data = response.get_json()['data']
    assert data['total_patients'] == 5
    assert [g['name'] for g in data['groups']][0] == 'Endocrinology'


def test_create_db_command(app):
    result = app.test_cli_runner().invoke(args=['create-db'])

    assert 'Database tables created.' in result.output
