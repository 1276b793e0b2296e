"""Leaderboard aggregation over submitted JDQ/JVQ scores."""

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from quizhub import db
from quizhub.errors import ApiError
from quizhub.models import Score
from .rules import validate_quiz_type
from .windows import THURSDAY, SATURDAY, jvq_result_window, month_window, quiz_now, week_window

MIN_ENTRIES_MONTHLY = 5
MIN_ENTRIES_ALL_TIME = 20
MIN_ENTRIES_JVQ = 5

JDQ_VIEWS = ('daily', 'weekly', 'monthly', 'all_time')
JVQ_VIEWS = ('last_thursday', 'last_saturday', 'thursday', 'saturday', 'combined')


def _sort_key(row: Dict):
    tb = row['avg_tiebreaker']
    return (-row['avg_score'], tb is None, tb if tb is not None else 0, row['username'].lower())


def get_leaderboard(
    quiz_type: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    day_types: Optional[Iterable[str]] = None,
    start_date: Optional[date] = None,
    min_entries: int = 0,
) -> List[Dict]:
    """Average score per user over a window.

    Rows are ``{username, avg_score, avg_tiebreaker, entries}`` sorted by
    average desc, average tiebreaker asc, then username.
    """
    query = db.session.query(
        Score.user_id,
        Score.username,
        db.func.avg(Score.score),
        db.func.avg(Score.tiebreaker),
        db.func.count(Score.id),
    ).filter(Score.quiz_type == quiz_type)
    if date_from:
        query = query.filter(Score.quiz_date >= date_from)
    if date_to:
        query = query.filter(Score.quiz_date <= date_to)
    if start_date:
        query = query.filter(Score.quiz_date >= start_date)
    if day_types:
        wanted = [d.capitalize() for d in day_types]
        query = query.filter(Score.day_type.in_(wanted))
    query = query.group_by(Score.user_id, Score.username)

    rows = []
    for user_id, username, avg_score, avg_tb, entries in query.all():
        if entries < min_entries:
            continue
        rows.append({
            'user_id': user_id,
            'username': username,
            'avg_score': round(float(avg_score or 0), 2),
            'avg_tiebreaker': round(float(avg_tb), 2) if avg_tb is not None else None,
            'entries': int(entries),
        })
    rows.sort(key=_sort_key)
    return rows


def daily_rows(quiz_type: str, on_date: date) -> List[Dict]:
    """Each user's best entry on one date, best first."""
    scores = Score.query.filter_by(quiz_type=quiz_type, quiz_date=on_date).all()
    ordered = sorted(scores, key=lambda s: (-s.score, s.tiebreaker, s.username.lower()))
    seen = set()
    rows = []
    for s in ordered:
        if s.user_id in seen:
            continue
        seen.add(s.user_id)
        rows.append({'user_id': s.user_id, 'username': s.username, 'score': s.score, 'tiebreaker': s.tiebreaker})
    return rows


def find_highlight(rows: List[Dict], username: Optional[str]) -> Optional[Dict]:
    if not username:
        return None
    wanted = username.strip().lower()
    for idx, row in enumerate(rows):
        if row['username'].lower() == wanted:
            return {'position': idx + 1, 'row': row}
    return None


def jdq_view(view: str, on_date: Optional[date] = None, now: Optional[datetime] = None) -> Dict:
    if view not in JDQ_VIEWS:
        raise ApiError(f'Unknown JDQ leaderboard view: {view}')
    on_date = on_date or quiz_now(now).date()
    if view == 'daily':
        return {'view': view, 'date_from': on_date, 'date_to': on_date, 'visible': True,
                'rows': daily_rows('JDQ', on_date)}
    if view == 'weekly':
        date_from, date_to = week_window(on_date)
        rows = get_leaderboard('JDQ', date_from, date_to)
    elif view == 'monthly':
        date_from, date_to = month_window(on_date)
        rows = get_leaderboard('JDQ', date_from, date_to, min_entries=MIN_ENTRIES_MONTHLY)
    else:
        date_from = date_to = None
        rows = get_leaderboard('JDQ', min_entries=MIN_ENTRIES_ALL_TIME)
    return {'view': view, 'date_from': date_from, 'date_to': date_to, 'visible': True, 'rows': rows}


def jvq_view(view: str, now: Optional[datetime] = None) -> Dict:
    if view not in JVQ_VIEWS:
        raise ApiError(f'Unknown JVQ leaderboard view: {view}')
    if view in ('last_thursday', 'last_saturday'):
        weekday = THURSDAY if view == 'last_thursday' else SATURDAY
        quiz_date, visible = jvq_result_window(quiz_now(now), weekday)
        rows = daily_rows('JVQ', quiz_date) if visible else []
        return {'view': view, 'date_from': quiz_date, 'date_to': quiz_date, 'visible': visible, 'rows': rows}
    day_types = None if view == 'combined' else [view]
    rows = get_leaderboard('JVQ', day_types=day_types, min_entries=MIN_ENTRIES_JVQ)
    return {'view': view, 'date_from': None, 'date_to': None, 'visible': True, 'rows': rows}


def calculate_averages(scores: List[Score]) -> Dict[str, float]:
    """Weekly/monthly/all-time averages over the last 7/30/all entries."""
    if not scores:
        return {'weekly_average': 0, 'monthly_average': 0, 'all_time_average': 0}
    ordered = sorted(scores, key=lambda s: s.quiz_date)

    def avg(items):
        return round(sum(s.score for s in items) / len(items), 2) if items else 0

    return {
        'weekly_average': avg(ordered[-7:]),
        'monthly_average': avg(ordered[-30:]),
        'all_time_average': avg(ordered),
    }


def user_positions(quiz_type: str, user_id: int) -> Dict[str, int]:
    """Rank of ``user_id`` under each average; 0 when the user has no scores."""
    by_user: Dict[int, List[Score]] = {}
    for s in Score.query.filter_by(quiz_type=quiz_type).all():
        by_user.setdefault(s.user_id, []).append(s)
    if user_id not in by_user:
        return {'weekly_position': 0, 'monthly_position': 0, 'all_time_position': 0}

    table = []
    for uid, items in by_user.items():
        averages = calculate_averages(items)
        averages['user_id'] = uid
        averages['tiebreaker'] = sum(s.tiebreaker for s in items) / len(items)
        table.append(averages)

    positions = {}
    for key in ('weekly_average', 'monthly_average', 'all_time_average'):
        ranked = sorted(table, key=lambda r: (-r[key], r['tiebreaker']))
        idx = next(i for i, r in enumerate(ranked) if r['user_id'] == user_id)
        positions[key.replace('average', 'position')] = idx + 1
    return positions


def score_summary(quiz_type: str, user_id: int) -> Dict:
    quiz_type = validate_quiz_type(quiz_type)
    scores = Score.query.filter_by(quiz_type=quiz_type, user_id=user_id).order_by(Score.quiz_date.desc()).all()
    summary = calculate_averages(scores)
    summary.update(user_positions(quiz_type, user_id))
    summary['entries'] = len(scores)
    return {'quiz_type': quiz_type, 'scores': [s.to_dict() for s in scores], 'summary': summary}
