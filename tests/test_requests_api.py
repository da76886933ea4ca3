"""
Tests for textbook requests and their rate limit
"""

from datetime import datetime, timedelta

from englib import db_session
from englib.modules.requests.models import TextbookRequest, TextbookRequestLog

ALICE = {'X-Forwarded-For': '198.51.100.23'}
BOB = {'X-Forwarded-For': '192.0.2.40'}


def ask(client, name, headers=ALICE):
    return client.post('/api/requests', json={'textbookName': name}, headers=headers)


def test_first_request_creates_entry(client):
    response = ask(client, '  Grammar Zone  ')
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['remainingCount'] == 4
    assert body['request']['textbook_name'] == 'Grammar Zone'
    assert body['request']['request_count'] == 1
    assert body['request']['isNew'] is True

    log = TextbookRequestLog.query.one()
    assert log.user_ip == '198.51.100.xxx'


def test_repeat_request_increments_count(client):
    ask(client, 'Grammar Zone')
    body = ask(client, 'Grammar Zone', headers=BOB).get_json()
    assert body['request']['request_count'] == 2
    assert body['request']['isNew'] is False
    assert TextbookRequest.query.count() == 1


def test_short_name_is_rejected(client):
    response = ask(client, ' a ')
    assert response.status_code == 400
    assert TextbookRequestLog.query.count() == 0


def test_rate_limit_per_ip_and_title(client):
    for expected_remaining in (4, 3, 2, 1, 0):
        body = ask(client, 'Reading Master').get_json()
        assert body['remainingCount'] == expected_remaining

    response = ask(client, 'Reading Master')
    assert response.status_code == 429
    assert response.get_json()['remainingCount'] == 0
    assert TextbookRequest.query.one().request_count == 5

    # Other titles and other addresses are counted separately
    assert ask(client, 'Other Title').status_code == 200
    assert ask(client, 'Reading Master', headers=BOB).status_code == 200


def test_rate_limit_window_expires(client):
    old = datetime.utcnow() - timedelta(hours=25)
    for _ in range(5):
        db_session.add(TextbookRequestLog(textbook_name='Old Book', user_ip='198.51.100.xxx', created_at=old))
    db_session.commit()

    assert ask(client, 'Old Book').status_code == 200


def test_list_requests_by_popularity(client):
    ask(client, 'Popular')
    ask(client, 'Popular', headers=BOB)
    ask(client, 'Niche')

    body = client.get('/api/requests?limit=1').get_json()
    assert body['count'] == 1
    assert body['requests'][0]['textbook_name'] == 'Popular'


def test_admin_filters_and_updates_status(client):
    ask(client, 'Popular')
    ask(client, 'Popular', headers=BOB)
    ask(client, 'Niche')
    niche = TextbookRequest.query.filter_by(textbook_name='Niche').one()

    response = client.put(f'/api/admin/requests/{niche.id}', json={'status': 'completed'})
    assert response.status_code == 200
    assert response.get_json()['request']['status'] == 'completed'

    pending = client.get('/api/admin/requests?status=pending').get_json()
    assert [r['textbook_name'] for r in pending['requests']] == ['Popular']

    ascending = client.get('/api/admin/requests?sort=request_count&order=asc').get_json()
    assert [r['textbook_name'] for r in ascending['requests']] == ['Niche', 'Popular']


def test_admin_rejects_unknown_status(client):
    ask(client, 'Popular')
    request_id = TextbookRequest.query.one().id

    assert client.put(f'/api/admin/requests/{request_id}', json={'status': 'done'}).status_code == 400
    assert client.get('/api/admin/requests?status=done').status_code == 400
    assert client.put('/api/admin/requests/9999', json={'status': 'rejected'}).status_code == 404


def test_malformed_request_bodies_are_rejected(client):
    assert client.post('/api/requests', json={'textbookName': 12345}).status_code == 400
    assert client.post('/api/requests', json=['Grammar Zone']).status_code == 400
    assert client.post('/api/requests', data='not json', content_type='application/json').status_code == 400
    assert TextbookRequestLog.query.count() == 0


def test_admin_update_with_list_body_is_rejected(client):
    ask(client, 'Popular')
    request_id = TextbookRequest.query.one().id
    assert client.put(f'/api/admin/requests/{request_id}', json=['completed']).status_code == 400
