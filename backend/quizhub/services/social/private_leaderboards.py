from datetime import date
from typing import Dict, List, Optional

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, forbidden, not_found
from quizhub.models import LeaderboardMember, PrivateLeaderboard, Score, User, utcnow
from quizhub.services.scores.rules import validate_quiz_type
from quizhub.services.scores.windows import month_window, parse_date, quiz_now, week_window
from .friendships import friend_ids

JDQ_SCOPES = ('weekly', 'monthly', 'all_time')
JVQ_DAYS = ('thursday', 'saturday', 'combined')
JVQ_SCOPES = ('monthly', 'all_time')


def _validate_settings(data: Dict) -> Dict:
    name = (data.get('name') or '').strip()
    if not name:
        raise ApiError('Leaderboard name is required')
    if len(name) > 120:
        raise ApiError('Leaderboard name is too long')
    quiz_type = validate_quiz_type(data.get('quiz_type'))
    settings = {'name': name, 'quiz_type': quiz_type, 'jdq_scope': None, 'jvq_days': None, 'jvq_scope': None}

    if quiz_type == 'JDQ':
        scope = data.get('jdq_scope') or 'weekly'
        if scope not in JDQ_SCOPES:
            raise ApiError('jdq_scope must be weekly, monthly or all_time')
        settings['jdq_scope'] = scope
    else:
        days = data.get('jvq_days') or []
        if isinstance(days, str):
            days = [days]
        days = [str(d).lower() for d in days]
        if len(days) != 1 or days[0] not in JVQ_DAYS:
            raise ApiError('Choose exactly one of thursday, saturday or combined')
        scope = data.get('jvq_scope') or 'all_time'
        if scope not in JVQ_SCOPES:
            raise ApiError('jvq_scope must be monthly or all_time')
        settings['jvq_days'] = days
        settings['jvq_scope'] = scope

    start_date = data.get('start_date')
    settings['start_date'] = parse_date(start_date, 'start_date') if start_date else None
    return settings


def create_leaderboard(owner: User, data: Dict) -> PrivateLeaderboard:
    settings = _validate_settings(data)
    try:
        member_ids = {int(m) for m in (data.get('member_ids') or [])}
    except (TypeError, ValueError):
        raise ApiError('member_ids must be a list of user ids')
    member_ids.discard(owner.id)
    allowed = friend_ids(owner.id)
    strangers = member_ids - allowed
    if strangers:
        raise ApiError('You can only add friends to a private leaderboard')

    board = PrivateLeaderboard(owner_id=owner.id, **settings)
    now = utcnow()
    board.members.append(LeaderboardMember(user_id=owner.id, seen_at=now))
    for uid in sorted(member_ids):
        board.members.append(LeaderboardMember(user_id=uid))
    db.session.add(board)
    db.session.commit()
    current_app.logger.info(f"[private-lb] created id={board.id} owner={owner.id} members={len(board.members)}")
    return board


def list_for_user(user: User) -> List[PrivateLeaderboard]:
    return (
        PrivateLeaderboard.query.join(LeaderboardMember)
        .filter(LeaderboardMember.user_id == user.id)
        .order_by(PrivateLeaderboard.updated_at.desc(), PrivateLeaderboard.id.desc())
        .all()
    )


def get_for_member(user: User, board_id: int) -> PrivateLeaderboard:
    board = db.session.get(PrivateLeaderboard, board_id)
    if not board:
        raise not_found('Leaderboard not found')
    if not any(m.user_id == user.id for m in board.members):
        raise forbidden('You are not a member of this leaderboard')
    return board


def _owned(user: User, board_id: int) -> PrivateLeaderboard:
    board = db.session.get(PrivateLeaderboard, board_id)
    if not board:
        raise not_found('Leaderboard not found')
    if board.owner_id != user.id:
        raise forbidden('Only the owner can do that')
    return board


def delete_leaderboard(user: User, board_id: int) -> None:
    board = _owned(user, board_id)
    db.session.delete(board)
    db.session.commit()


def leave_leaderboard(user: User, board_id: int) -> None:
    board = get_for_member(user, board_id)
    if board.owner_id == user.id:
        raise ApiError('The owner cannot leave; delete the leaderboard instead')
    LeaderboardMember.query.filter_by(leaderboard_id=board.id, user_id=user.id).delete()
    board.updated_at = utcnow()
    db.session.commit()


def remove_member(user: User, board_id: int, member_id: int) -> PrivateLeaderboard:
    board = _owned(user, board_id)
    if member_id == board.owner_id:
        raise ApiError('The owner cannot be removed')
    deleted = LeaderboardMember.query.filter_by(leaderboard_id=board.id, user_id=member_id).delete()
    if not deleted:
        raise not_found('Member not found')
    board.updated_at = utcnow()
    db.session.commit()
    return board


def window_start(board: PrivateLeaderboard, today: date) -> Optional[date]:
    """First date counted by the board, or None for no lower bound."""
    scope = board.jdq_scope if board.quiz_type == 'JDQ' else board.jvq_scope
    start = None
    if scope == 'weekly':
        start = week_window(today)[0]
    elif scope == 'monthly':
        start = month_window(today)[0]
    if board.start_date and (start is None or board.start_date > start):
        start = board.start_date
    return start


def standings(board: PrivateLeaderboard, today: Optional[date] = None) -> List[Dict]:
    """Averages for every member; members without entries show zeros."""
    today = today or quiz_now().date()
    start = window_start(board, today)
    member_ids = [m.user_id for m in board.members]
    query = Score.query.filter(Score.quiz_type == board.quiz_type, Score.user_id.in_(member_ids))
    if start:
        query = query.filter(Score.quiz_date >= start)
    query = query.filter(Score.quiz_date <= today)
    days = board.jvq_days or []
    if board.quiz_type == 'JVQ' and days and days[0] != 'combined':
        query = query.filter(Score.day_type == days[0].capitalize())

    per_user: Dict[int, List[Score]] = {uid: [] for uid in member_ids}
    for s in query.all():
        per_user[s.user_id].append(s)

    rows = []
    for m in board.members:
        items = per_user[m.user_id]
        entries = len(items)
        rows.append({
            'user_id': m.user_id,
            'username': m.user.username,
            'avg': round(sum(s.score for s in items) / entries, 2) if entries else 0,
            'avg_tb': round(sum(s.tiebreaker for s in items) / entries, 1) if entries else 0,
            'entries': entries,
        })
    rows.sort(key=lambda r: (-r['avg'], r['avg_tb'], r['username'].lower()))
    return rows
