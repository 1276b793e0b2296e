from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from quizhub.models import LiveQuiz
from quizhub.services.live_quiz import answers, chat, leaderboard, marking, quizzes
from quizhub.services.live_quiz.stages import catch_up, load_quiz

live = Blueprint('live', __name__)


@live.route('/quizzes', methods=['GET'])
@login_required
def list_quizzes():
    rows = LiveQuiz.query.order_by(LiveQuiz.start_time.desc(), LiveQuiz.id.desc()).all()
    return jsonify([quizzes.player_view(catch_up(q), current_user) for q in rows])


@live.route('/quizzes/<int:quiz_id>/join', methods=['POST'])
@login_required
def join_quiz(quiz_id):
    data = request.get_json(silent=True) or {}
    quiz = load_quiz(quiz_id)
    quiz_pub = quizzes.join_pub(quiz, current_user, data.get('pub_id'))
    return jsonify({'success': True, 'pub_id': quiz_pub.id, 'pub': quiz_pub.to_dict()}), 201


@live.route('/quizzes/<int:quiz_id>/join-random', methods=['POST'])
@login_required
def join_random(quiz_id):
    quiz = load_quiz(quiz_id)
    quiz_pub = quizzes.join_random(quiz, current_user)
    return jsonify({'success': True, 'pub_id': quiz_pub.id, 'pub': quiz_pub.to_dict()}), 201


@live.route('/quizzes/<int:quiz_id>/pubs/<int:pub_id>', methods=['GET'])
@login_required
def pub_room(quiz_id, pub_id):
    quiz = load_quiz(quiz_id)
    quiz_pub = quizzes.require_member(quiz, pub_id, current_user)
    sheet = answers.get_sheet(quiz, current_user.id)

    payload = {
        'quiz': quiz.to_dict(),
        'pub': quiz_pub.to_dict(include_members=True),
        'rounds': quiz.part_rounds(),
        'my_answers': sheet.to_dict() if sheet else None,
        'marking': None,
        'leaderboard': None,
        'my_results': None,
    }
    if quiz.status in marking.MARKING_STATUSES:
        task = marking.task_for(quiz, current_user.id)
        payload['marking'] = marking.task_view(quiz, task) if task else None
    if quiz.status in ('leaderboard', 'finished'):
        payload['leaderboard'] = leaderboard.leaderboard_for(quiz, quiz_pub.id, request.args.get('scope'))
        payload['my_results'] = leaderboard.user_results(quiz, current_user.id)
    return jsonify(payload)


@live.route('/quizzes/<int:quiz_id>/pubs/<int:pub_id>/answers', methods=['PUT'])
@login_required
def save_answers(quiz_id, pub_id):
    data = request.get_json(silent=True) or {}
    quiz = load_quiz(quiz_id)
    quiz_pub = quizzes.require_member(quiz, pub_id, current_user)
    sheet = answers.save_draft(quiz, quiz_pub, current_user, data.get('answers'))
    return jsonify({'success': True, 'sheet': sheet.to_dict()})


@live.route('/quizzes/<int:quiz_id>/pubs/<int:pub_id>/marking', methods=['PUT'])
@login_required
def save_marking(quiz_id, pub_id):
    data = request.get_json(silent=True) or {}
    quiz = load_quiz(quiz_id)
    quizzes.require_member(quiz, pub_id, current_user)
    task = marking.save_draft(quiz, current_user, data.get('marks'), data.get('funny_flags'))
    return jsonify({'success': True, 'task': marking.task_view(quiz, task)})


@live.route('/quizzes/<int:quiz_id>/pubs/<int:pub_id>/marking/submit', methods=['POST'])
@login_required
def submit_marking(quiz_id, pub_id):
    data = request.get_json(silent=True) or {}
    quiz = load_quiz(quiz_id)
    quizzes.require_member(quiz, pub_id, current_user)
    row = marking.submit_marking(quiz, current_user, data.get('marks'), data.get('funny_flags'))
    return jsonify({'success': True, 'score': row.score, 'target_username': row.target_username})


@live.route('/quizzes/<int:quiz_id>/pubs/<int:pub_id>/chat', methods=['GET'])
@login_required
def chat_history(quiz_id, pub_id):
    quiz = load_quiz(quiz_id)
    quiz_pub = quizzes.require_member(quiz, pub_id, current_user)
    return jsonify([m.to_dict() for m in chat.recent_messages(quiz_pub)])
