from quizhub import create_app, socketio
from quizhub.services.live_quiz.scheduler import resume_stage_timers

app = create_app()

if __name__ == '__main__':
    # Pick up countdowns that were running when the server went down
    resume_stage_timers(app)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
