import io
import sqlite3

from conftest import feedback_count, make_csv
from routes import import_routes
from tracker.models import Feedback, Group


def upload(client, headers, content, filename='feedback.csv'):
    return client.post(
        '/import-feedbacks-csv',
        data={'file': (io.BytesIO(content.encode('utf-8')), filename)},
        headers=headers,
        content_type='multipart/form-data',
    )


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok'}


def test_import_requires_credential(client, users):
    response = upload(client, {}, make_csv('john_doe,,user,2025-02-12,,85,Confidence,'))

    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized'}


def test_import_rejects_forged_credential(client, users, auth_headers):
    headers = auth_headers(users['leader_anna'])
    headers['Authorization'] = headers['Authorization'][:-4] + 'AAAA'

    response = upload(client, headers, make_csv())

    assert response.status_code == 401


def test_import_requires_leader(client, users, auth_headers):
    response = upload(client, auth_headers(users['john_doe']),
                      make_csv('john_doe,,user,2025-02-12,,85,Confidence,'))

    assert response.status_code == 403
    assert feedback_count() == 0


def test_import_requires_file(client, users, auth_headers):
    response = client.post('/import-feedbacks-csv', data={},
                           headers=auth_headers(users['leader_anna']),
                           content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json() == {'error': 'No file provided'}


def test_import_rejects_non_csv_upload(client, users, auth_headers):
    response = upload(client, auth_headers(users['leader_anna']), make_csv(), filename='feedback.xlsx')

    assert response.status_code == 400


def test_import_reports_summary_and_errors(client, users, auth_headers):
    content = make_csv(
        'john_doe,leader_anna,leader,2025-02-12,Sales pitch,85,Confidence,Great call',
        'jane_smith,,user,2025-02-13,,90,Communication,',
        'nobody,,user,2025-02-13,,90,Communication,',
    )

    response = upload(client, auth_headers(users['leader_anna']), content)

    assert response.status_code == 200
    assert response.get_json() == {
        'summary': {'total_rows': 3, 'imported': 2, 'skipped': 1},
        'errors': [{'row': 4, 'reason': 'Unknown user_username: nobody'}],
    }


def test_import_with_no_successes_is_still_200(client, users, auth_headers):
    content = make_csv('nobody,,user,2025-02-13,,90,Communication,')

    response = upload(client, auth_headers(users['leader_anna']), content)

    assert response.status_code == 200
    assert response.get_json()['summary']['imported'] == 0


def test_import_strips_utf8_bom(client, users, auth_headers):
    content = '\ufeff' + make_csv('john_doe,,user,2025-02-12,,85,Confidence,')

    response = upload(client, auth_headers(users['leader_anna']), content)

    assert response.get_json()['summary']['imported'] == 1


def test_empty_upload_is_bad_request(client, users, auth_headers):
    response = upload(client, auth_headers(users['leader_anna']), '')

    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_template_download(client, users, auth_headers):
    response = client.get('/import-feedbacks-csv/template', headers=auth_headers(users['john_doe']))

    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    assert 'feedback_import_template.csv' in response.headers['Content-Disposition']
    first_line = response.get_data(as_text=True).splitlines()[0]
    assert first_line == 'user_username,author_username,author_role,work_date,job_rule,grade,review_subject,notes'


def test_feedback_series_endpoint(client, users, auth_headers):
    john = users['john_doe']
    Feedback.add(john, john, 'user', '2024-01-01', 80, 'Focus')
    Feedback.add(john, users['leader_anna'], 'leader', '2024-01-01', 60, 'Focus')

    response = client.get(
        f'/feedback-series?target_user_id={john}&from=2024-01-01&to=2024-01-31',
        headers=auth_headers(john),
    )

    assert response.status_code == 200
    assert response.get_json() == {
        'self_reviews': [{'date': '2024-01-01', 'avg_grade': 80, 'count': 1}],
        'leader_reviews': [{'date': '2024-01-01', 'avg_grade': 60, 'count': 1}],
    }


def test_merged_series_endpoint(client, users, auth_headers):
    john = users['john_doe']
    Feedback.add(john, john, 'user', '2024-01-02', 100, 'Focus')
    Feedback.add(john, users['leader_anna'], 'leader', '2024-01-01', 60, 'Focus')

    response = client.get(
        f'/feedback-series/merged?target_user_id={john}&from=2024-01-01&to=2024-01-31',
        headers=auth_headers(users['leader_anna']),
    )

    assert response.status_code == 200
    assert response.get_json() == {'series': [
        {'date': '2024-01-01', 'self_avg': None, 'leader_avg': 60, 'count_self': 0, 'count_leader': 1},
        {'date': '2024-01-02', 'self_avg': 100, 'leader_avg': None, 'count_self': 1, 'count_leader': 0},
    ]}


def test_series_requires_target(client, users, auth_headers):
    response = client.get('/feedback-series', headers=auth_headers(users['john_doe']))

    assert response.status_code == 400
    assert response.get_json() == {'error': 'target_user_id is required'}


def test_series_rejects_bad_date(client, users, auth_headers):
    john = users['john_doe']
    response = client.get(f'/feedback-series/merged?target_user_id={john}&from=yesterday',
                          headers=auth_headers(john))

    assert response.status_code == 400


def test_series_requires_credential(client, users):
    response = client.get(f"/feedback-series?target_user_id={users['john_doe']}")

    assert response.status_code == 401


def test_self_series_endpoint(client, users, auth_headers):
    john = users['john_doe']
    Feedback.add(john, john, 'user', '2024-01-01', 70, 'Focus', job_rule='a')
    Feedback.add(john, john, 'user', '2024-01-01', 90, 'Focus', job_rule='b')
    Feedback.add(john, users['leader_anna'], 'leader', '2024-01-01', 10, 'Focus')

    response = client.post(
        '/feedback-self-series',
        json={'target_user_id': john, 'from': '2024-01-01', 'to': '2024-01-31'},
        headers=auth_headers(john),
    )

    assert response.status_code == 200
    assert response.get_json() == {'series': [{'date': '2024-01-01', 'avg_grade': 80, 'count': 2}]}


def test_self_series_without_body(client, users, auth_headers):
    response = client.post('/feedback-self-series', headers=auth_headers(users['john_doe']))

    assert response.status_code == 400


def test_counterpart_endpoint(client, users, auth_headers):
    john = users['john_doe']
    leader_id = Feedback.add(john, users['leader_anna'], 'leader', '2024-01-01', 60, 'Focus')

    response = client.get(
        f'/feedback/counterpart?target_user_id={john}&work_date=2024-01-01&author_role=user',
        headers=auth_headers(john),
    )

    assert response.status_code == 200
    counterpart = response.get_json()['counterpart']
    assert counterpart['id'] == leader_id
    assert counterpart['grade'] == 60


def test_group_grade_buckets_endpoint(client, users, auth_headers):
    john, jane = users['john_doe'], users['jane_smith']
    Group.add('support', [john, jane])
    Feedback.add(john, john, 'user', '2024-01-01', 50, 'Focus')
    Feedback.add(jane, jane, 'user', '2024-01-01', 95, 'Focus')

    response = client.get('/group-grade-buckets?groupname=support', headers=auth_headers(john))

    assert response.status_code == 200
    assert response.get_json()['buckets'] == [
        {'label': 'Below 70', 'count': 1},
        {'label': '70 and above', 'count': 1},
    ]


def test_group_grade_buckets_requires_groupname(client, users, auth_headers):
    response = client.get('/group-grade-buckets', headers=auth_headers(users['john_doe']))

    assert response.status_code == 400


def test_series_store_failure_is_500_with_message(client, users, auth_headers, monkeypatch):
    def failing_read(*args, **kwargs):
        raise sqlite3.OperationalError('database is locked')

    monkeypatch.setattr(Feedback, 'get_for_target', failing_read)
    john = users['john_doe']

    response = client.get(f'/feedback-series?target_user_id={john}', headers=auth_headers(john))

    assert response.status_code == 500
    assert response.get_json() == {'error': 'database is locked'}


def test_unexpected_import_failure_is_500(client, users, auth_headers, monkeypatch):
    def failing_import(csv_text, acting_user_id):
        raise RuntimeError('worker crashed')

    monkeypatch.setattr(import_routes, 'import_feedback_csv', failing_import)

    response = upload(client, auth_headers(users['leader_anna']),
                      make_csv('john_doe,,user,2025-02-12,,85,Confidence,'))

    assert response.status_code == 500
    assert response.get_json() == {'error': 'worker crashed'}


def test_overlong_row_upload_is_bad_request(client, users, auth_headers):
    content = make_csv(
        'john_doe,,user,2025-02-12,,85,Confidence,note',
        'jane_smith,,user,2025-02-13,,90,Communication,note,EXTRA',
    )

    response = upload(client, auth_headers(users['leader_anna']), content)

    assert response.status_code == 400
    assert 'saw 9' in response.get_json()['error']
    assert feedback_count() == 0
