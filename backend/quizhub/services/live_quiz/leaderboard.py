from collections import OrderedDict
from typing import Dict, List, Optional

from quizhub.models import LiveAnswer, LiveQuiz, LiveScore, User

NO_ANSWER = '(No answer found)'
TOP_N = 10


def _entry(name: str, score: int, pub_name: str) -> Dict:
    return {'name': name, 'score': score, 'pub_name': pub_name}


def _funny_answers(quiz_id: int, scores: List[LiveScore]) -> List[Dict]:
    """Answers flagged as funny by markers, looked up on the target's sheet."""
    funny = []
    sheets: Dict = {}
    for s in scores:
        for round_name, flags in (s.funny_flags or {}).items():
            for idx, flag in enumerate(flags or []):
                if not flag:
                    continue
                key = (s.target_user_id, s.part)
                if key not in sheets:
                    sheets[key] = LiveAnswer.query.filter_by(
                        quiz_id=quiz_id, user_id=s.target_user_id, part=s.part
                    ).first()
                sheet = sheets[key]
                answers = ((sheet.answers or {}).get(round_name) or []) if sheet else []
                answer = answers[idx] if idx < len(answers) and answers[idx] else NO_ANSWER
                funny.append({'round': round_name, 'question': idx, 'answer': answer, 'team': s.target_username})
    return funny


def _project(totals: List[Dict], pub_id: Optional[int]) -> Dict:
    """Shared projections over ``{user_id, name, score, pub_id, pub_name}`` rows."""
    ordered = sorted(totals, key=lambda t: (-t['score'], t['name'].lower()))
    pub_entries = [_entry(t['name'], t['score'], t['pub_name']) for t in ordered if t['pub_id'] == pub_id]
    all_entries = [_entry(t['name'], t['score'], t['pub_name']) for t in ordered[:TOP_N]]

    pubs: Dict[int, Dict] = OrderedDict()
    for t in totals:
        bucket = pubs.setdefault(t['pub_id'], {'name': t['pub_name'], 'total': 0, 'count': 0})
        bucket['total'] += t['score']
        bucket['count'] += 1
    pub_averages = sorted(
        ({'pub_id': pid, 'name': b['name'], 'score': round(b['total'] / b['count'], 2)} for pid, b in pubs.items()),
        key=lambda p: -p['score'],
    )
    overall = round(sum(t['score'] for t in totals) / len(totals), 2) if totals else 0
    return {
        'pub_entries': pub_entries,
        'all_entries': all_entries,
        'pub_averages': pub_averages,
        'overall_average': overall,
    }


def part_leaderboard(quiz: LiveQuiz, part: int, pub_id: Optional[int] = None) -> Dict:
    scores = LiveScore.query.filter_by(quiz_id=quiz.id, part=part).order_by(LiveScore.id).all()
    totals = [
        {
            'user_id': s.target_user_id,
            'name': s.target_username,
            'score': s.score,
            'pub_id': s.quiz_pub_id,
            'pub_name': s.pub_name,
        }
        for s in scores
    ]
    data = _project(totals, pub_id)
    data['funny_answers'] = _funny_answers(quiz.id, scores)
    data['scope'] = 'part'
    data['part'] = part
    return data


def combined_totals(quiz: LiveQuiz) -> List[Dict]:
    per_user: Dict[int, Dict] = OrderedDict()
    for s in LiveScore.query.filter_by(quiz_id=quiz.id).order_by(LiveScore.part, LiveScore.id).all():
        row = per_user.setdefault(s.target_user_id, {
            'user_id': s.target_user_id,
            'name': s.target_username,
            'score': 0,
            'parts': [],
            'pub_id': s.quiz_pub_id,
            'pub_name': s.pub_name,
        })
        row['score'] += s.score
        row['parts'].append(s.score)
    return list(per_user.values())


def combined_leaderboard(quiz: LiveQuiz, pub_id: Optional[int] = None) -> Dict:
    data = _project(combined_totals(quiz), pub_id)
    scores = LiveScore.query.filter_by(quiz_id=quiz.id).order_by(LiveScore.part, LiveScore.id).all()
    data['funny_answers'] = _funny_answers(quiz.id, scores)
    data['scope'] = 'combined'
    data['part'] = None
    return data


def default_scope(quiz: LiveQuiz) -> str:
    if quiz.total_parts > 1 and quiz.current_part >= quiz.total_parts:
        return 'combined'
    return 'part'


def leaderboard_for(quiz: LiveQuiz, pub_id: Optional[int] = None, scope: Optional[str] = None) -> Dict:
    scope = scope or default_scope(quiz)
    if scope == 'combined':
        return combined_leaderboard(quiz, pub_id)
    return part_leaderboard(quiz, quiz.current_part, pub_id)


def user_stats(quiz: LiveQuiz, user: User) -> Dict:
    """Total score and positions after a quiz; zeros when the user has none."""
    totals = sorted(combined_totals(quiz), key=lambda t: (-t['score'], t['name'].lower()))
    mine = next((t for t in totals if t['user_id'] == user.id), None)
    if mine is None:
        return {'total_score': 0, 'pub_position': 0, 'global_position': 0}
    pub_rows = [t for t in totals if t['pub_id'] == mine['pub_id']]
    return {
        'total_score': mine['score'],
        'pub_position': pub_rows.index(mine) + 1,
        'global_position': totals.index(mine) + 1,
    }


def user_results(quiz: LiveQuiz, user_id: int) -> List[Dict]:
    """The user's own marked sheets, one entry per part.

    Reads the snapshot stored with each live score, so results outlive
    the cleanup of answer sheets.
    """
    rows = LiveScore.query.filter_by(quiz_id=quiz.id, target_user_id=user_id).order_by(LiveScore.part).all()
    return [
        {
            'part': s.part,
            'rounds': quiz.part_rounds(s.part),
            'answers': s.answers or {},
            'marks': s.marks or {},
            'score': s.score,
        }
        for s in rows
    ]
