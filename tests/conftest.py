import pytest

from tracker.models import database, get_db, init_db, Profile
from utils import issue_token


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the store at a fresh SQLite file for each test."""
    path = str(tmp_path / 'feedback.db')
    monkeypatch.setattr(database, 'DATABASE_PATH', path)
    init_db()
    return path


@pytest.fixture
def users(db_path):
    """Profiles used by the CSV template plus a plain user and a second leader."""
    return {
        'leader_anna': Profile.add('leader_anna', 'leader'),
        'leader_ben': Profile.add('Leader_Ben', 'leader'),
        'john_doe': Profile.add('john_doe'),
        'jane_smith': Profile.add('jane_smith'),
        'bob_jones': Profile.add('bob_jones'),
    }


@pytest.fixture
def client(db_path):
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def auth_headers():
    def _headers(user_id):
        return {'Authorization': f'Bearer {issue_token(user_id)}'}
    return _headers


def make_csv(*rows):
    """CSV text with the import header followed by the given raw lines."""
    header = 'user_username,author_username,author_role,work_date,job_rule,grade,review_subject,notes'
    return '\n'.join((header,) + rows) + '\n'


def feedback_count():
    with get_db() as conn:
        return conn.execute('SELECT COUNT(*) FROM feedback').fetchone()[0]
