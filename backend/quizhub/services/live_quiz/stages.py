"""Live quiz stage machine.

    waiting -> countdown -> answering -> locking -> locked -> marking
            -> collecting -> leaderboard -> (countdown of next part | finished)

Countdown, locking and collecting are timed: entering them stores a
``stage_deadline`` on the quiz and arms a timer. Reads go through
:func:`load_quiz`, which applies an overdue transition when a timer was
missed (process restart, worker crash).
"""

import time
from typing import Dict, List, Optional

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, conflict
from quizhub.models import LiveAnswer, LiveQuiz, MarkingAssignment
from . import notify_quiz
from .answers import finalize_sheets
from .leaderboard import leaderboard_for
from .marking import create_marking_tasks, finalize_outstanding, has_assignments
from .quizzes import get_quiz

TIMED_STAGES = {
    'countdown': 'COUNTDOWN_DURATION_SEC',
    'locking': 'LOCKING_DURATION_SEC',
    'collecting': 'COLLECTING_DURATION_SEC',
}

ACTIONS = (
    'start', 'next_part', 'lock', 'assign', 'start_marking',
    'close_marking', 'show_leaderboard', 'end', 'cleanup',
)


def stage_duration(status: str) -> Optional[int]:
    key = TIMED_STAGES.get(status)
    if key is None:
        return None
    return int(current_app.config.get(key, 30))


def enter_stage(quiz: LiveQuiz, status: str, part: Optional[int] = None) -> LiveQuiz:
    previous = quiz.status
    quiz.status = status
    if part is not None:
        quiz.current_part = part
    duration = stage_duration(status)
    quiz.stage_deadline = time.time() + duration if duration is not None else None
    db.session.commit()
    current_app.logger.info(
        f"[stage] quiz={quiz.id} {previous} -> {status} part={quiz.current_part} deadline={quiz.stage_deadline}"
    )
    if status == 'locked':
        finalize_sheets(quiz, quiz.current_part)
    notify_quiz(quiz)
    if duration is not None:
        from .scheduler import schedule_stage_timer
        schedule_stage_timer(current_app._get_current_object(), quiz.id)
    return quiz


def apply_timed_transition(quiz: LiveQuiz, expected_status: str, expected_part: int) -> bool:
    """Run the expiry effect of a timed stage if the quiz is still in it."""
    if (
        quiz.status != expected_status
        or int(quiz.current_part or 0) != expected_part
        or quiz.stage_deadline is None
    ):
        current_app.logger.info(
            f"[timer-abort] quiz={quiz.id} expected={expected_status}/{expected_part} "
            f"actual={quiz.status}/{quiz.current_part}"
        )
        return False

    if expected_status == 'countdown':
        enter_stage(quiz, 'answering')
    elif expected_status == 'locking':
        enter_stage(quiz, 'locked')
    elif expected_status == 'collecting':
        # stays in collecting until the admin shows the leaderboard
        finalize_outstanding(quiz)
        quiz.stage_deadline = None
        db.session.commit()
        current_app.logger.info(f"[stage] quiz={quiz.id} collecting closed part={quiz.current_part}")
        notify_quiz(quiz)
    else:
        return False
    return True


def catch_up(quiz: LiveQuiz, now: Optional[float] = None) -> LiveQuiz:
    if quiz.status in TIMED_STAGES and quiz.stage_deadline is not None:
        if (now if now is not None else time.time()) >= quiz.stage_deadline:
            current_app.logger.info(f"[catch-up] quiz={quiz.id} status={quiz.status} overdue")
            apply_timed_transition(quiz, quiz.status, int(quiz.current_part or 0))
    return quiz


def load_quiz(quiz_id: int) -> LiveQuiz:
    return catch_up(get_quiz(quiz_id))


def _is_last_part(quiz: LiveQuiz) -> bool:
    return quiz.current_part >= quiz.total_parts


def can_perform(quiz: LiveQuiz, action: str) -> bool:
    status = quiz.status
    if action == 'start':
        return status == 'waiting'
    if action == 'next_part':
        return status == 'leaderboard' and not _is_last_part(quiz)
    if action == 'lock':
        return status == 'answering'
    if action in ('assign', 'start_marking'):
        return status == 'locked'
    if action == 'close_marking':
        return status == 'marking'
    if action == 'show_leaderboard':
        return status == 'collecting'
    if action == 'end':
        return status == 'leaderboard' and _is_last_part(quiz)
    if action == 'cleanup':
        return status == 'finished'
    return False


def cleanup_live_data(quiz: LiveQuiz) -> None:
    """Remove answer sheets and marking tasks; live scores are kept."""
    MarkingAssignment.query.filter_by(quiz_id=quiz.id).delete()
    removed = LiveAnswer.query.filter_by(quiz_id=quiz.id).delete()
    db.session.commit()
    current_app.logger.info(f"[cleanup] quiz={quiz.id} removed_sheets={removed}")


def perform_action(quiz: LiveQuiz, action: str) -> LiveQuiz:
    if action not in ACTIONS:
        raise ApiError(f'Unknown action: {action}')
    catch_up(quiz)
    if not can_perform(quiz, action):
        raise conflict(f'Cannot {action} while quiz is {quiz.status}')

    if action == 'start':
        return enter_stage(quiz, 'countdown')
    if action == 'next_part':
        return enter_stage(quiz, 'countdown', part=quiz.current_part + 1)
    if action == 'lock':
        return enter_stage(quiz, 'locking')
    if action == 'assign':
        create_marking_tasks(quiz)
        return quiz
    if action == 'start_marking':
        if not has_assignments(quiz):
            create_marking_tasks(quiz)
        return enter_stage(quiz, 'marking')
    if action == 'close_marking':
        return enter_stage(quiz, 'collecting')
    if action == 'show_leaderboard':
        finalize_outstanding(quiz)
        return enter_stage(quiz, 'leaderboard')
    if action == 'end':
        return enter_stage(quiz, 'finished')
    cleanup_live_data(quiz)
    return quiz


def available_actions(quiz: LiveQuiz) -> List[Dict]:
    """Dashboard buttons for the current status."""
    status = quiz.status
    remaining = quiz.seconds_remaining()
    suffix = f' ({remaining})' if remaining is not None else ''
    buttons = []
    if status == 'waiting':
        label = 'Start Quiz' if quiz.current_part == 1 else f'Start Part {quiz.current_part}'
        buttons.append({'action': 'start', 'label': label, 'enabled': True})
    elif status == 'countdown':
        buttons.append({'action': None, 'label': f'Countdown in progress...{suffix}', 'enabled': False})
    elif status == 'answering':
        buttons.append({'action': 'lock', 'label': 'Lock Answers', 'enabled': True})
    elif status == 'locking':
        buttons.append({'action': None, 'label': f'Locking in progress...{suffix}', 'enabled': False})
    elif status == 'locked':
        buttons.append({'action': 'assign', 'label': 'Assign Sheets For Marking', 'enabled': True})
        buttons.append({'action': 'start_marking', 'label': 'Start Marking', 'enabled': True})
    elif status == 'marking':
        buttons.append({'action': 'close_marking', 'label': 'Close Marking', 'enabled': True})
    elif status == 'collecting':
        if quiz.total_parts > 1 and not _is_last_part(quiz):
            label = 'Show Current Leaderboard'
        else:
            label = 'Show Final Leaderboard'
        buttons.append({'action': 'show_leaderboard', 'label': label, 'enabled': True})
    elif status == 'leaderboard':
        if _is_last_part(quiz):
            buttons.append({'action': 'end', 'label': 'End Quiz', 'enabled': True})
        else:
            buttons.append({
                'action': 'next_part',
                'label': f'Start Next Part ({quiz.current_part + 1})',
                'enabled': True,
            })
    elif status == 'finished':
        buttons.append({'action': 'cleanup', 'label': 'Close Quiz & Remove Data', 'enabled': True})
    return buttons


def dashboard(quiz: LiveQuiz) -> Dict:
    stats = None
    if quiz.status in ('leaderboard', 'finished'):
        board = leaderboard_for(quiz)
        stats = {
            'scope': board['scope'],
            'top_entries': board['all_entries'],
            'top_pubs': board['pub_averages'][:3],
            'overall_average': board['overall_average'],
            'funny_answers': board['funny_answers'],
        }
    return {
        'quiz': quiz.to_dict(),
        'pubs': [p.to_dict(include_members=True) for p in quiz.pubs],
        'actions': available_actions(quiz),
        'rounds': quiz.parts or [],
        'stats': stats,
    }
