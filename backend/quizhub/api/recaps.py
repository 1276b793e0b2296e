from flask import Blueprint, jsonify, request

from quizhub.models import QuizRecap
from quizhub.services import recaps as recap_service

recaps = Blueprint('recaps', __name__)


@recaps.route('', methods=['GET'])
def list_recaps():
    rows = QuizRecap.query.order_by(QuizRecap.quiz_date.desc(), QuizRecap.id.desc()).all()
    return jsonify([r.to_dict() for r in rows])


@recaps.route('/<int:recap_id>', methods=['GET'])
def get_recap(recap_id):
    return jsonify(recap_service.recap_detail(recap_service.get_recap(recap_id)))


@recaps.route('/<int:recap_id>/unlock', methods=['POST'])
def unlock_recap(recap_id):
    data = request.get_json(silent=True) or {}
    recap = recap_service.get_recap(recap_id)
    part = recap_service.unlock_part(recap, data.get('part'), data.get('code'))
    return jsonify({'part': data.get('part'), 'content': part})
