import random
from typing import Dict, List, Optional

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, conflict
from quizhub.models import LiveAnswer, LiveQuiz, QuizPub, User, utcnow

MAX_ANSWER_LENGTH = 200
EDITABLE_STATUSES = ('answering', 'locking')


def shape_answers(rounds: List[Dict], raw) -> Dict[str, List[str]]:
    """Fit submitted answers to the part's rounds: one string per question."""
    raw = raw if isinstance(raw, dict) else {}
    shaped = {}
    for r in rounds:
        given = raw.get(r['round_name']) or []
        if not isinstance(given, list):
            raise ApiError(f"Answers for {r['round_name']} must be a list")
        row = []
        for idx in range(r['num_questions']):
            value = given[idx] if idx < len(given) and given[idx] is not None else ''
            value = str(value).strip()
            if len(value) > MAX_ANSWER_LENGTH:
                raise ApiError(f'Answers must be at most {MAX_ANSWER_LENGTH} characters')
            row.append(value)
        shaped[r['round_name']] = row
    return shaped


def get_sheet(quiz: LiveQuiz, user_id: int, part: Optional[int] = None) -> Optional[LiveAnswer]:
    return LiveAnswer.query.filter_by(quiz_id=quiz.id, user_id=user_id, part=part or quiz.current_part).first()


def save_draft(quiz: LiveQuiz, quiz_pub: QuizPub, user: User, raw) -> LiveAnswer:
    if quiz.status not in EDITABLE_STATUSES:
        raise conflict('Answers can only be saved while the quiz is answering')
    sheet = get_sheet(quiz, user.id)
    if sheet and sheet.submitted_at is not None:
        raise conflict('Answers already submitted')
    answers = shape_answers(quiz.part_rounds(), raw)
    if sheet is None:
        sheet = LiveAnswer(quiz_id=quiz.id, quiz_pub_id=quiz_pub.id, user_id=user.id, part=quiz.current_part)
        db.session.add(sheet)
    sheet.answers = answers
    sheet.updated_at = utcnow()
    db.session.commit()
    return sheet


def finalize_sheets(quiz: LiveQuiz, part: int) -> int:
    """Submit every draft sheet of the part and give it a random sheet number."""
    now = utcnow()
    sheets = LiveAnswer.query.filter_by(quiz_id=quiz.id, part=part, submitted_at=None).all()
    for sheet in sheets:
        sheet.submitted_at = now
        sheet.sheet_number = random.randint(1, 10)
    db.session.commit()
    current_app.logger.info(f"[answers] quiz={quiz.id} part={part} finalised={len(sheets)}")
    return len(sheets)
