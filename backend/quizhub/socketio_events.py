from flask_socketio import join_room, leave_room, emit
from flask_login import current_user

from quizhub import socketio
from quizhub.errors import ApiError
from quizhub.services.live_quiz import pub_room, quiz_room
from quizhub.services.live_quiz.chat import post_message
from quizhub.services.live_quiz.quizzes import require_member
from quizhub.services.live_quiz.stages import load_quiz


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_quiz(data):
    quiz_id = (data or {}).get('quiz_id')
    if not quiz_id:
        emit('error', {'message': 'quiz_id is required'})
        return
    room = quiz_room(quiz_id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_quiz(data):
    quiz_id = (data or {}).get('quiz_id')
    if not quiz_id:
        emit('error', {'message': 'quiz_id is required'})
        return
    room = quiz_room(quiz_id)
    leave_room(room)
    emit('left', {'room': room})


def _member_pub(data):
    """Resolve ``{quiz_id, pub_id}`` to a pub the current user belongs to."""
    data = data or {}
    if not current_user.is_authenticated:
        raise ApiError('Authentication required', 401)
    try:
        quiz_id = int(data.get('quiz_id'))
        pub_id = int(data.get('pub_id'))
    except (TypeError, ValueError):
        raise ApiError('quiz_id and pub_id are required')
    quiz = load_quiz(quiz_id)
    return require_member(quiz, pub_id, current_user)


def handle_join_pub(data):
    try:
        quiz_pub = _member_pub(data)
    except ApiError as exc:
        emit('error', {'message': exc.message})
        return
    room = pub_room(quiz_pub.id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_pub(data):
    pub_id = (data or {}).get('pub_id')
    if not pub_id:
        emit('error', {'message': 'pub_id is required'})
        return
    room = pub_room(pub_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_chat_message(data):
    try:
        quiz_pub = _member_pub(data)
        post_message(quiz_pub, current_user, (data or {}).get('text'))
    except ApiError as exc:
        emit('error', {'message': exc.message})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_quiz': handle_join_quiz,
        'leave_quiz': handle_leave_quiz,
        'join_pub': handle_join_pub,
        'leave_pub': handle_leave_pub,
        'chat_message': handle_chat_message,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
