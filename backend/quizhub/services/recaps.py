from typing import Dict, Optional
from urllib.parse import parse_qs, urlparse

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, forbidden, not_found
from quizhub.models import QuizRecap
from quizhub.services.scores.windows import parse_date

PART_KEYS = ('part1', 'part2')
QUIZ_DAYS = ('Thursday', 'Saturday')


def youtube_embed_url(url: Optional[str]) -> Optional[str]:
    """``https://www.youtube.com/embed/<id>`` for a watch or youtu.be link."""
    if not url:
        return None
    parsed = urlparse(url)
    video_id = None
    if parsed.netloc.endswith('youtu.be'):
        video_id = parsed.path.lstrip('/') or None
    else:
        video_id = (parse_qs(parsed.query).get('v') or [None])[0]
    return f'https://www.youtube.com/embed/{video_id}' if video_id else None


def _clean_part(raw) -> Dict:
    raw = raw or {}
    rounds = []
    for idx, r in enumerate(raw.get('rounds') or []):
        questions = [str(q) for q in (r.get('questions') or [])]
        rounds.append({'round': str(r.get('round') or f'Round {idx + 1}'), 'questions': questions})
    images = []
    for img in raw.get('images') or []:
        if img.get('url'):
            images.append({'label': str(img.get('label') or ''), 'url': str(img['url'])})
    return {'rounds': rounds, 'images': images}


def create_recap(data: Dict) -> QuizRecap:
    quiz_day = str(data.get('quiz_day') or '').capitalize()
    if quiz_day not in QUIZ_DAYS:
        raise ApiError('quiz_day must be Thursday or Saturday')
    quiz_date = parse_date(data.get('quiz_date'), 'quiz_date')
    parts = data.get('parts') or {}
    codes = data.get('access_codes') or {}
    recap = QuizRecap(
        quiz_day=quiz_day,
        quiz_date=quiz_date,
        youtube_url=(data.get('youtube_url') or '').strip() or None,
        parts={key: _clean_part(parts.get(key)) for key in PART_KEYS},
        access_codes={key: str(codes.get(key) or '').strip() for key in PART_KEYS},
    )
    db.session.add(recap)
    db.session.commit()
    current_app.logger.info(f"[recap] created id={recap.id} date={quiz_date}")
    return recap


def get_recap(recap_id: int) -> QuizRecap:
    recap = db.session.get(QuizRecap, recap_id)
    if not recap:
        raise not_found('Recap not found')
    return recap


def recap_detail(recap: QuizRecap) -> Dict:
    data = recap.to_dict()
    data['embed_url'] = youtube_embed_url(recap.youtube_url)
    data['parts_available'] = [k for k in PART_KEYS if (recap.parts or {}).get(k, {}).get('rounds')]
    return data


def unlock_part(recap: QuizRecap, part, code) -> Dict:
    if part not in PART_KEYS:
        raise ApiError('part must be part1 or part2')
    expected = (recap.access_codes or {}).get(part) or ''
    if not expected or str(code or '').strip() != expected:
        raise forbidden('Incorrect code.')
    return (recap.parts or {}).get(part) or {'rounds': [], 'images': []}


def delete_recap(recap_id: int) -> None:
    recap = get_recap(recap_id)
    db.session.delete(recap)
    db.session.commit()
