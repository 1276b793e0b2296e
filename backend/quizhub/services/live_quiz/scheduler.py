import time
from contextlib import contextmanager
from typing import Set, Tuple

from flask import has_app_context

from quizhub import db, socketio
from quizhub.models import LiveQuiz
from .stages import TIMED_STAGES, apply_timed_transition, catch_up


_scheduled_stage_keys: Set[Tuple[int, str, int]] = set()


@contextmanager
def _app_scope(app):
    # Reuse the caller's context so the worker shares its session
    if has_app_context():
        yield
    else:
        with app.app_context():
            yield


def schedule_stage_timer(app, quiz_id: int) -> bool:
    """Arm the expiry timer for the quiz's current timed stage.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set,
      in which case the worker runs synchronously
    - Ensures a single timer per (quiz_id, status, part)
    - The worker re-checks status/part when it fires and aborts on mismatch
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return False

    with _app_scope(app):
        quiz = db.session.get(LiveQuiz, quiz_id)
        if not quiz or quiz.status not in TIMED_STAGES or quiz.stage_deadline is None:
            return False

        status = quiz.status
        part = int(quiz.current_part or 0)
        key = (quiz.id, status, part)
        if key in _scheduled_stage_keys:
            app.logger.info(f"[timer-skip] quiz={quiz.id} status={status} part={part} already scheduled")
            return False
        _scheduled_stage_keys.add(key)

        delay = max(0.0, quiz.stage_deadline - time.time())
        app.logger.info(
            f"[timer-set] quiz={quiz.id} status={status} part={part} delay={delay:.1f}s deadline={quiz.stage_deadline}"
        )

    if app.config.get('TESTING'):
        _worker(app, quiz_id, status, part, delay)
    else:
        socketio.start_background_task(_worker, app, quiz_id, status, part, delay)
    return True


def _worker(app, quiz_id: int, expected_status: str, expected_part: int, delay: float) -> None:
    hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
    if hb > 0:
        slept = 0.0
        while slept < delay:
            step = min(hb, delay - slept)
            socketio.sleep(step)
            slept += step
            app.logger.info(
                f"[timer-heartbeat] quiz={quiz_id} status={expected_status} part={expected_part} remaining={max(0, delay - slept):.0f}s"
            )
    elif delay > 0:
        socketio.sleep(delay)

    with _app_scope(app):
        _scheduled_stage_keys.discard((quiz_id, expected_status, expected_part))
        quiz = db.session.get(LiveQuiz, quiz_id)
        if not quiz:
            return
        app.logger.info(
            f"[timer-fire] quiz={quiz_id} expected={expected_status}/{expected_part} actual={quiz.status}/{quiz.current_part}"
        )
        apply_timed_transition(quiz, expected_status, expected_part)


def resume_stage_timers(app) -> int:
    """Apply overdue transitions and re-arm pending timers after a restart."""
    count = 0
    with _app_scope(app):
        pending = LiveQuiz.query.filter(
            LiveQuiz.status.in_(list(TIMED_STAGES)),
            LiveQuiz.stage_deadline.isnot(None),
        ).all()
        for quiz in pending:
            catch_up(quiz)
            if schedule_stage_timer(app, quiz.id):
                count += 1
    return count
