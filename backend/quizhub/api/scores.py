from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from quizhub.services.scores import rules, standings

scores = Blueprint('scores', __name__)


@scores.route('', methods=['POST'])
@login_required
def submit_score():
    data = request.get_json(silent=True) or {}
    row = rules.submit_score(
        current_user,
        data.get('quiz_type'),
        data.get('quiz_date'),
        data.get('score'),
        data.get('tiebreaker'),
    )
    return jsonify({'success': True, 'score': row.to_dict()}), 201


@scores.route('/mine', methods=['GET'])
@login_required
def my_scores():
    return jsonify(standings.score_summary(request.args.get('quiz_type', 'JDQ'), current_user.id))


@scores.route('/<int:score_id>', methods=['PATCH'])
@login_required
def edit_score(score_id):
    data = request.get_json(silent=True) or {}
    row = rules.edit_score_once(current_user, score_id, data.get('score'), data.get('tiebreaker'))
    return jsonify({'success': True, 'score': row.to_dict()})
