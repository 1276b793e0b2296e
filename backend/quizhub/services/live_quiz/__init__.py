"""Live pub quiz services: quizzes and pubs, stage machine, timers,
answer sheets, peer marking and live leaderboards.

Route handlers and socket handlers import from the submodules; the helpers
here only broadcast state changes to connected clients.
"""

from quizhub import socketio


def quiz_room(quiz_id: int) -> str:
    return f"quiz:{quiz_id}"


def pub_room(quiz_pub_id: int) -> str:
    return f"pub:{quiz_pub_id}"


def notify_quiz(quiz) -> None:
    socketio.emit('quiz_state', quiz.to_dict(), to=quiz_room(quiz.id), namespace='/ws')
