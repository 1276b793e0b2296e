from typing import List

from quizhub import db, socketio
from quizhub.errors import ApiError
from quizhub.models import PubChatMessage, QuizPub, User
from . import pub_room

MAX_CHAT_LENGTH = 500
HISTORY_LIMIT = 50


def post_message(quiz_pub: QuizPub, user: User, text) -> PubChatMessage:
    text = (text or '').strip()
    if not text:
        raise ApiError('Message cannot be empty')
    if len(text) > MAX_CHAT_LENGTH:
        raise ApiError(f'Message must be at most {MAX_CHAT_LENGTH} characters')
    msg = PubChatMessage(quiz_pub_id=quiz_pub.id, user_id=user.id, username=user.username, text=text)
    db.session.add(msg)
    db.session.commit()
    socketio.emit('chat_message', msg.to_dict(), to=pub_room(quiz_pub.id), namespace='/ws')
    return msg


def recent_messages(quiz_pub: QuizPub, limit: int = HISTORY_LIMIT) -> List[PubChatMessage]:
    rows = (
        PubChatMessage.query.filter_by(quiz_pub_id=quiz_pub.id)
        .order_by(PubChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(rows))
