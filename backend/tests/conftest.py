import os
import sys
import time
import pytest

# Ensure the backend root (containing the `quizhub` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizhub import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ADMIN_USERNAMES = ['quizmaster']
    QUIZ_TIMEZONE = 'Europe/London'
    JVQ_SUBMIT_AFTER = '20:30'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizhub.models  # noqa: F401
        db.create_all()
    # Requests push their own app context so Flask-Login state never leaks
    # between test clients
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def register(client, username, password='password', email=None):
    res = client.post('/api/auth/register', json={'username': username, 'password': password, 'email': email})
    assert res.status_code == 201, res.get_json()
    return res.get_json()['user']


@pytest.fixture()
def make_user(flask_app):
    """Returns a factory: ``make_user('alice') -> (test_client, user_dict)``."""
    def _make(username):
        user_client = flask_app.test_client()
        user = register(user_client, username)
        return user_client, user
    return _make


@pytest.fixture()
def admin_client(make_user):
    admin, user = make_user('quizmaster')
    assert user['is_admin'] is True
    return admin


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def expire_stage(flask_app, quiz_id):
    """Move the quiz's stage deadline into the past."""
    from quizhub.models import LiveQuiz
    with flask_app.app_context():
        quiz = db.session.get(LiveQuiz, quiz_id)
        quiz.stage_deadline = time.time() - 1
        db.session.commit()


LIVE_PARTS = [
    {'name': 'Part 1', 'rounds': [{'round_name': 'General', 'num_questions': 2}]},
    {'name': 'Part 2', 'rounds': [{'roundName': 'Music', 'numQuestions': 2}]},
]


def create_live_quiz(admin, parts=None, pubs=1, max_teams=10):
    """Create ``pubs`` venues and a live quiz that uses all of them."""
    pub_ids = []
    for i in range(pubs):
        res = admin.post('/api/admin/pubs', json={'name': f'The Crown {i + 1}', 'max_teams': max_teams})
        assert res.status_code == 201
        pub_ids.append(res.get_json()['id'])
    res = admin.post('/api/admin/quizzes', json={
        'title': 'Thursday Live',
        'parts': parts if parts is not None else LIVE_PARTS,
        'pub_ids': pub_ids,
    })
    assert res.status_code == 201
    return res.get_json()


def quiz_action(admin, quiz_id, name):
    return admin.post(f'/api/admin/quizzes/{quiz_id}/actions/{name}')
