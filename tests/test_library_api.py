"""
Tests for the public library endpoints
"""

from sqlalchemy.exc import OperationalError

from englib import db_session
from englib.modules.library.models import File, FileClick


def file_names(node):
    return [f['name'] for f in node['files']]


def folder(node, name):
    for child in node['folders']:
        if child['name'] == name:
            return child
    raise KeyError(name)


def test_tree_end_to_end_scenario(client, library):
    book = library.textbook('BookA', '/BookA/')
    library.file(book, '/BookA/U1/a.pdf')
    library.file(book, '/BookA/U1/b.pdf')
    library.file(book, '/BookA/U2/c.pdf')
    library.file(book, '/BookA/U3/d.pdf', is_active=False)

    response = client.get('/api/files/tree')
    assert response.status_code == 200
    body = response.get_json()

    assert body['success'] is True
    assert body['stats'] == {'totalTextbooks': 1, 'totalFiles': 3}
    [textbook] = body['data']
    assert textbook['name'] == 'BookA'
    assert textbook['fileCount'] == 3
    children = textbook['children']
    assert [f['name'] for f in children['folders']] == ['U1', 'U2']
    assert file_names(folder(children, 'U1')) == ['a.pdf', 'b.pdf']
    assert file_names(folder(children, 'U2')) == ['c.pdf']
    assert children['files'] == []


def test_tree_omits_textbooks_without_active_files(client, library):
    empty = library.textbook('Retired', '/Retired/')
    library.file(empty, '/Retired/U1/old.pdf', is_active=False)
    library.textbook('NoFiles', '/NoFiles/')
    live = library.textbook('Live', '/Live/')
    library.file(live, '/Live/x.pdf')

    body = client.get('/api/files/tree').get_json()
    assert [t['name'] for t in body['data']] == ['Live']


def test_tree_pages_through_all_files(app, client, library):
    app.config['TREE_FETCH_BATCH_SIZE'] = 2
    book = library.textbook('Paged', '/Paged/')
    for i in range(1, 6):
        library.file(book, f'/Paged/Unit {i}/ws{i}.pdf')

    body = client.get('/api/files/tree').get_json()
    [textbook] = body['data']
    assert textbook['fileCount'] == 5
    assert [f['name'] for f in textbook['children']['folders']] == [
        'Unit 1', 'Unit 2', 'Unit 3', 'Unit 4', 'Unit 5'
    ]


def test_tree_orders_by_category_then_display_order(client, library):
    first = library.category('중등', display_order=1)
    second = library.category('고등', display_order=2)
    for name, category, order in [
        ('Uncategorized', None, 0),
        ('High B', second, 2),
        ('High A', second, 1),
        ('Middle', first, 5),
    ]:
        book = library.textbook(name, f'/{name}/', category_id=category, display_order=order)
        library.file(book, f'/{name}/f.pdf')

    body = client.get('/api/files/tree').get_json()
    assert [t['name'] for t in body['data']] == ['Middle', 'High A', 'High B', 'Uncategorized']
    assert body['data'][0]['category']['name'] == '중등'
    assert body['data'][-1]['category'] is None


def test_tree_sort_by_clicks(client, library):
    quiet = library.textbook('Quiet', '/Quiet/', display_order=1)
    library.file(quiet, '/Quiet/a.pdf', click_count=1)
    busy = library.textbook('Busy', '/Busy/', display_order=2)
    library.file(busy, '/Busy/a.pdf', click_count=7)
    library.file(busy, '/Busy/b.pdf', click_count=3)

    body = client.get('/api/files/tree?sort=clicks').get_json()
    assert body['sortBy'] == 'clicks'
    assert [(t['name'], t['totalClicks']) for t in body['data']] == [('Busy', 10), ('Quiet', 1)]


def test_tree_reports_database_failure_without_partial_data(client, monkeypatch):
    def broken(**kwargs):
        raise OperationalError('SELECT', {}, Exception('connection lost'))

    monkeypatch.setattr('englib.modules.library.routes.materialize_library', broken)
    response = client.get('/api/files/tree')
    assert response.status_code == 500
    body = response.get_json()
    assert body['success'] is False
    assert 'data' not in body


def test_click_increments_counter_and_logs_click(client, library):
    book = library.textbook('BookA', '/BookA/')
    file_id = library.file(book, '/BookA/a.pdf', click_count=2)

    response = client.post(f'/api/files/{file_id}/click', headers={'X-Forwarded-For': '203.0.113.7'})
    assert response.status_code == 200
    assert response.get_json()['click_count'] == 3

    click = FileClick.query.filter_by(file_id=file_id).one()
    assert click.user_ip == '203.0.113.xxx'
    assert db_session.get(File, file_id).click_count == 3


def test_click_on_unknown_or_inactive_file_is_404(client, library):
    book = library.textbook('BookA', '/BookA/')
    inactive = library.file(book, '/BookA/gone.pdf', is_active=False)

    assert client.post('/api/files/9999/click').status_code == 404
    assert client.post(f'/api/files/{inactive}/click').status_code == 404


def test_link_returns_temporary_url(client, library, monkeypatch):
    book = library.textbook('BookA', '/BookA/')
    file_id = library.file(book, '/BookA/U1/a.pdf')

    class FakeStorage:
        def temporary_link(self, path, expires_in=None):
            return f'https://files.example.test{path}'

    monkeypatch.setattr('englib.modules.library.routes.get_storage', lambda: FakeStorage())
    body = client.get(f'/api/files/{file_id}/link').get_json()
    assert body['success'] is True
    assert body['url'] == 'https://files.example.test/BookA/U1/a.pdf'
    assert body['click_count'] == 1
