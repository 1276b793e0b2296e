import random
from datetime import datetime, timezone
from typing import Dict, List, Optional

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, conflict, forbidden, not_found
from quizhub.models import (
    LiveAnswer, LiveQuiz, LiveScore, MarkingAssignment, Pub, PubChatMessage, PubMember, QuizPub, User,
    normalize_parts,
)
from . import notify_quiz
from .leaderboard import user_stats


def _max_teams(value) -> int:
    if value in (None, ''):
        return int(current_app.config.get('DEFAULT_MAX_TEAMS', 10))
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ApiError('max_teams must be a number')
    if not 1 <= value <= 100:
        raise ApiError('max_teams must be between 1 and 100')
    return value


# ---- Pub venues ----

def create_pub(name, max_teams=None) -> Pub:
    name = (name or '').strip()
    if not name:
        raise ApiError('Pub name is required')
    pub = Pub(name=name, max_teams=_max_teams(max_teams))
    db.session.add(pub)
    db.session.commit()
    return pub


def list_pubs() -> List[Pub]:
    return Pub.query.order_by(Pub.name).all()


def delete_pub(pub_id: int) -> None:
    pub = db.session.get(Pub, pub_id)
    if not pub:
        raise not_found('Pub not found')
    QuizPub.query.filter_by(pub_id=pub.id).update({'pub_id': None})
    db.session.delete(pub)
    db.session.commit()


# ---- Quizzes ----

def _parse_start_time(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ApiError('Invalid start_time, expected ISO 8601')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def create_quiz(data: Dict) -> LiveQuiz:
    title = (data.get('title') or '').strip()
    if not title:
        raise ApiError('Quiz title is required')
    pub_ids = data.get('pub_ids') or []
    if not pub_ids:
        raise ApiError('Please select at least one pub for this quiz.')
    pubs = Pub.query.filter(Pub.id.in_(pub_ids)).order_by(Pub.id).all()
    if len(pubs) != len(set(pub_ids)):
        raise not_found('Pub not found')

    quiz = LiveQuiz(
        title=title,
        start_time=_parse_start_time(data.get('start_time')),
        livestream_url=(data.get('livestream_url') or '').strip() or None,
        parts=normalize_parts(data.get('parts')),
        status='waiting',
        current_part=1,
    )
    for pub in pubs:
        quiz.pubs.append(QuizPub(pub_id=pub.id, name=pub.name, max_teams=pub.max_teams))
    db.session.add(quiz)
    db.session.commit()
    current_app.logger.info(f"[quiz] created id={quiz.id} pubs={len(pubs)} parts={quiz.total_parts}")
    return quiz


def get_quiz(quiz_id: int) -> LiveQuiz:
    quiz = db.session.get(LiveQuiz, quiz_id)
    if not quiz:
        raise not_found('Quiz not found')
    return quiz


def list_quizzes() -> List[LiveQuiz]:
    return LiveQuiz.query.order_by(LiveQuiz.start_time.desc(), LiveQuiz.id.desc()).all()


def delete_quiz(quiz_id: int) -> None:
    quiz = get_quiz(quiz_id)
    pub_ids = [p.id for p in quiz.pubs]
    if pub_ids:
        PubChatMessage.query.filter(PubChatMessage.quiz_pub_id.in_(pub_ids)).delete(synchronize_session=False)
    LiveScore.query.filter_by(quiz_id=quiz.id).delete()
    MarkingAssignment.query.filter_by(quiz_id=quiz.id).delete()
    LiveAnswer.query.filter_by(quiz_id=quiz.id).delete()
    db.session.delete(quiz)
    db.session.commit()
    current_app.logger.info(f"[quiz] deleted id={quiz_id}")


def toggle_lock(quiz: LiveQuiz) -> LiveQuiz:
    quiz.locked = not quiz.locked
    db.session.commit()
    notify_quiz(quiz)
    return quiz


def phase(quiz: LiveQuiz) -> str:
    if quiz.status == 'finished':
        return 'finished'
    if quiz.status == 'waiting':
        return 'upcoming'
    return 'live'


# ---- Players ----

def membership(quiz: LiveQuiz, user_id: int) -> Optional[PubMember]:
    return PubMember.query.filter_by(quiz_id=quiz.id, user_id=user_id).first()


def get_quiz_pub(quiz: LiveQuiz, quiz_pub_id: int) -> QuizPub:
    quiz_pub = QuizPub.query.filter_by(id=quiz_pub_id, quiz_id=quiz.id).first()
    if not quiz_pub:
        raise not_found('Pub not found')
    return quiz_pub


def require_member(quiz: LiveQuiz, quiz_pub_id: int, user: User) -> QuizPub:
    quiz_pub = get_quiz_pub(quiz, quiz_pub_id)
    member = membership(quiz, user.id)
    if not member or member.quiz_pub_id != quiz_pub.id:
        raise forbidden('You are not in this pub')
    return quiz_pub


def _check_joinable(quiz: LiveQuiz, user: User) -> None:
    if quiz.locked:
        raise forbidden('Unable to join the quiz this evening.')
    if quiz.status == 'finished':
        raise ApiError('This quiz has finished')
    existing = membership(quiz, user.id)
    if existing:
        raise conflict('You have already joined a pub for this quiz', pub_id=existing.quiz_pub_id)


def _add_member(quiz: LiveQuiz, quiz_pub: QuizPub, user: User) -> QuizPub:
    quiz_pub.members.append(PubMember(quiz_id=quiz.id, user_id=user.id))
    db.session.commit()
    current_app.logger.info(f"[join] quiz={quiz.id} pub={quiz_pub.id} user={user.id}")
    notify_quiz(quiz)
    return quiz_pub


def _locked_pubs(quiz: LiveQuiz, quiz_pub_id: Optional[int] = None) -> List[QuizPub]:
    """Quiz pub rows locked until commit so concurrent joins queue up."""
    query = QuizPub.query.filter_by(quiz_id=quiz.id)
    if quiz_pub_id is not None:
        query = query.filter_by(id=quiz_pub_id)
    return query.order_by(QuizPub.id).with_for_update().all()


def _has_room(quiz_pub: QuizPub) -> bool:
    taken = PubMember.query.filter_by(quiz_pub_id=quiz_pub.id).count()
    return taken < (quiz_pub.max_teams or 10)


def join_pub(quiz: LiveQuiz, user: User, quiz_pub_id) -> QuizPub:
    _check_joinable(quiz, user)
    try:
        quiz_pub_id = int(quiz_pub_id)
    except (TypeError, ValueError):
        raise ApiError('pub_id is required')
    locked = _locked_pubs(quiz, quiz_pub_id)
    if not locked:
        raise not_found('Pub not found')
    quiz_pub = locked[0]
    if not _has_room(quiz_pub):
        raise conflict('This pub is full')
    return _add_member(quiz, quiz_pub, user)


def join_random(quiz: LiveQuiz, user: User) -> QuizPub:
    _check_joinable(quiz, user)
    open_pubs = [p for p in _locked_pubs(quiz) if _has_room(p)]
    if not open_pubs:
        raise conflict('No available pubs!')
    return _add_member(quiz, random.choice(open_pubs), user)


def player_view(quiz: LiveQuiz, user: User) -> Dict:
    data = quiz.to_dict()
    data['phase'] = phase(quiz)
    data['pubs'] = [p.to_dict() for p in quiz.pubs]
    member = membership(quiz, user.id)
    data['my_pub_id'] = member.quiz_pub_id if member else None
    if data['phase'] == 'finished':
        data['my_stats'] = user_stats(quiz, user)
    return data
