from datetime import datetime
from typing import Optional

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, conflict, forbidden, not_found
from quizhub.models import Score, User, utcnow
from .windows import DAY_NAMES, parse_date, parse_hhmm, quiz_now

QUIZ_TYPES = ('JDQ', 'JVQ')
MAX_SCORE = {'JDQ': 5, 'JVQ': 50}


def validate_quiz_type(quiz_type) -> str:
    quiz_type = (quiz_type or '').upper()
    if quiz_type not in QUIZ_TYPES:
        raise ApiError('quiz_type must be JDQ or JVQ')
    return quiz_type


def _parse_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ApiError(f'{field} must be a whole number')
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ApiError(f'{field} must be a whole number')


def _validate_values(quiz_type: str, score, tiebreaker):
    score = _parse_int(score, 'score')
    tiebreaker = _parse_int(tiebreaker, 'tiebreaker')
    max_score = MAX_SCORE[quiz_type]
    if not 0 <= score <= max_score:
        raise ApiError(f'{quiz_type} scores must be between 0 and {max_score}')
    if tiebreaker < 0:
        raise ApiError('tiebreaker cannot be negative')
    return score, tiebreaker


def submit_score(user: User, quiz_type, quiz_date, score, tiebreaker, now: Optional[datetime] = None) -> Score:
    quiz_type = validate_quiz_type(quiz_type)
    quiz_date = parse_date(quiz_date, 'quiz_date')
    score, tiebreaker = _validate_values(quiz_type, score, tiebreaker)
    local_now = quiz_now(now)
    if quiz_date > local_now.date():
        raise ApiError('You cannot submit a score for a future date.')

    existing = Score.query.filter_by(user_id=user.id, quiz_date=quiz_date, quiz_type=quiz_type).first()
    if existing:
        raise conflict("You've already submitted a score for this date and quiz.")

    day_type = None
    if quiz_type == 'JVQ':
        day_type = DAY_NAMES.get(quiz_date.weekday())
        if not day_type:
            raise ApiError('JVQ scores can only be submitted for Thursday or Saturday.')
        if quiz_date == local_now.date():
            hour, minute = parse_hhmm(current_app.config.get('JVQ_SUBMIT_AFTER', '20:30'))
            if (local_now.hour, local_now.minute) < (hour, minute):
                raise ApiError('You can only submit JVQ scores after 8:30 PM on quiz day.')

    row = Score(
        user_id=user.id,
        username=user.username,
        quiz_type=quiz_type,
        quiz_date=quiz_date,
        score=score,
        tiebreaker=tiebreaker,
        day_type=day_type,
    )
    db.session.add(row)
    db.session.commit()
    current_app.logger.info(f"[score] user={user.id} type={quiz_type} date={quiz_date} score={score}")
    return row


def edit_score_once(user: User, score_id: int, score, tiebreaker) -> Score:
    row = db.session.get(Score, score_id)
    if not row:
        raise not_found('Score not found')
    if row.user_id != user.id:
        raise forbidden('You can only edit your own scores')
    if row.edited_at is not None:
        raise conflict('Score already edited once')
    row.score, row.tiebreaker = _validate_values(row.quiz_type, score, tiebreaker)
    row.edited_at = utcnow()
    db.session.commit()
    current_app.logger.info(f"[score] user={user.id} edited score={row.id}")
    return row
