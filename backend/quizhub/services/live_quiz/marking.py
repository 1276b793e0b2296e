import random
from collections import defaultdict
from typing import Dict, List, Optional

from flask import current_app

from quizhub import db, socketio
from quizhub.errors import ApiError, conflict, not_found
from quizhub.models import LiveAnswer, LiveQuiz, LiveScore, MarkingAssignment, QuizPub, User, utcnow
from . import quiz_room

MARKING_STATUSES = ('marking', 'collecting')


def derangement(n: int) -> List[int]:
    """Random permutation with no fixed points (Sattolo's algorithm).

    ``perm[i]`` is the sheet index marked by marker ``i``. Needs ``n >= 2``.
    """
    perm = list(range(n))
    for i in range(n - 1, 0, -1):
        j = random.randrange(i)
        perm[i], perm[j] = perm[j], perm[i]
    return perm


def create_marking_tasks(quiz: LiveQuiz, part: Optional[int] = None) -> List[MarkingAssignment]:
    """Assign every finalised sheet of the part to a marker in the same pub.

    Re-running replaces the previous assignments for the part.
    """
    part = part or quiz.current_part
    MarkingAssignment.query.filter_by(quiz_id=quiz.id, part=part).delete()

    sheets = (
        LiveAnswer.query.filter(
            LiveAnswer.quiz_id == quiz.id,
            LiveAnswer.part == part,
            LiveAnswer.submitted_at.isnot(None),
        )
        .order_by(LiveAnswer.id)
        .all()
    )
    by_pub: Dict[int, List[LiveAnswer]] = defaultdict(list)
    for sheet in sheets:
        by_pub[sheet.quiz_pub_id].append(sheet)

    created = []
    for quiz_pub_id, pub_sheets in by_pub.items():
        if len(pub_sheets) == 1:
            # nobody else to swap with
            order = [0]
        else:
            order = derangement(len(pub_sheets))
        for marker_idx, sheet_idx in enumerate(order):
            marker = pub_sheets[marker_idx]
            target = pub_sheets[sheet_idx]
            assignment = MarkingAssignment(
                quiz_id=quiz.id,
                part=part,
                quiz_pub_id=quiz_pub_id,
                marker_id=marker.user_id,
                answer_id=target.id,
                target_user_id=target.user_id,
            )
            db.session.add(assignment)
            created.append(assignment)
    db.session.commit()

    current_app.logger.info(f"[marking] quiz={quiz.id} part={part} pubs={len(by_pub)} assignments={len(created)}")
    socketio.emit('marking_assigned', {'quiz_id': quiz.id, 'part': part}, to=quiz_room(quiz.id), namespace='/ws')
    return created


def has_assignments(quiz: LiveQuiz, part: Optional[int] = None) -> bool:
    return MarkingAssignment.query.filter_by(quiz_id=quiz.id, part=part or quiz.current_part).first() is not None


def task_for(quiz: LiveQuiz, user_id: int, part: Optional[int] = None) -> Optional[MarkingAssignment]:
    return MarkingAssignment.query.filter_by(quiz_id=quiz.id, part=part or quiz.current_part, marker_id=user_id).first()


def shape_flags(rounds: List[Dict], raw) -> Dict[str, List[bool]]:
    raw = raw if isinstance(raw, dict) else {}
    shaped = {}
    for r in rounds:
        given = raw.get(r['round_name']) or []
        if not isinstance(given, list):
            given = []
        shaped[r['round_name']] = [bool(given[i]) if i < len(given) else False for i in range(r['num_questions'])]
    return shaped


def count_marks(marks: Dict[str, List[bool]]) -> int:
    return sum(1 for flags in (marks or {}).values() for flag in flags if flag)


def task_view(quiz: LiveQuiz, assignment: MarkingAssignment) -> Dict:
    """The marker's view of a task: target sheet plus the draft so far."""
    rounds = quiz.part_rounds(assignment.part)
    data = assignment.to_dict()
    data['rounds'] = rounds
    data['target_answers'] = assignment.answer.answers if assignment.answer else {}
    data['marks'] = assignment.marks or shape_flags(rounds, None)
    data['funny_flags'] = assignment.funny_flags or shape_flags(rounds, None)
    return data


def _open_task(quiz: LiveQuiz, user: User) -> MarkingAssignment:
    if quiz.status not in MARKING_STATUSES:
        raise conflict('Marking is not open')
    assignment = task_for(quiz, user.id)
    if not assignment:
        raise not_found('No marking task assigned')
    if assignment.completed:
        raise conflict('Marking already submitted')
    return assignment


def save_draft(quiz: LiveQuiz, user: User, marks, funny_flags) -> MarkingAssignment:
    assignment = _open_task(quiz, user)
    rounds = quiz.part_rounds(assignment.part)
    assignment.marks = shape_flags(rounds, marks)
    assignment.funny_flags = shape_flags(rounds, funny_flags)
    db.session.commit()
    return assignment


def _complete(quiz: LiveQuiz, assignment: MarkingAssignment, marks, funny_flags) -> LiveScore:
    rounds = quiz.part_rounds(assignment.part)
    assignment.marks = shape_flags(rounds, marks)
    assignment.funny_flags = shape_flags(rounds, funny_flags)
    assignment.score = count_marks(assignment.marks)
    assignment.completed = True

    quiz_pub = db.session.get(QuizPub, assignment.quiz_pub_id)
    row = LiveScore(
        quiz_id=quiz.id,
        part=assignment.part,
        quiz_pub_id=assignment.quiz_pub_id,
        pub_name=quiz_pub.name if quiz_pub else '',
        marker_id=assignment.marker_id,
        target_user_id=assignment.target_user_id,
        target_username=assignment.target.username if assignment.target else '',
        score=assignment.score,
        answers=assignment.answer.answers if assignment.answer else {},
        marks=assignment.marks,
        funny_flags=assignment.funny_flags,
    )
    db.session.add(row)
    return row


def submit_marking(quiz: LiveQuiz, user: User, marks, funny_flags) -> LiveScore:
    assignment = _open_task(quiz, user)
    if marks is None:
        raise ApiError('marks are required')
    row = _complete(quiz, assignment, marks, funny_flags)
    db.session.commit()
    current_app.logger.info(
        f"[marking] quiz={quiz.id} part={assignment.part} marker={user.id} target={assignment.target_user_id} score={row.score}"
    )
    return row


def finalize_outstanding(quiz: LiveQuiz, part: Optional[int] = None) -> int:
    """Submit every incomplete task of the part using its saved draft."""
    part = part or quiz.current_part
    pending = MarkingAssignment.query.filter_by(quiz_id=quiz.id, part=part, completed=False).all()
    for assignment in pending:
        _complete(quiz, assignment, assignment.marks, assignment.funny_flags)
    db.session.commit()
    if pending:
        current_app.logger.info(f"[marking] quiz={quiz.id} part={part} auto-submitted={len(pending)}")
    return len(pending)


def finalize_for_marker(user_id: int) -> int:
    """Submit every open task held by ``user_id`` using its saved draft.

    Used before the marker's account goes away so the sheets they were
    marking still get a score. Commit is left to the caller.
    """
    pending = MarkingAssignment.query.filter(
        MarkingAssignment.marker_id == user_id,
        MarkingAssignment.completed.is_(False),
        MarkingAssignment.target_user_id != user_id,
    ).all()
    for assignment in pending:
        _complete(db.session.get(LiveQuiz, assignment.quiz_id), assignment, assignment.marks, assignment.funny_flags)
    db.session.flush()
    return len(pending)
