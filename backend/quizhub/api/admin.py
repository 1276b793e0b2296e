import time

from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user

from quizhub.decorators import admin_required
from quizhub.services import contact as contact_service
from quizhub.services import recaps as recap_service
from quizhub.services.live_quiz import quizzes
from quizhub.services.live_quiz.stages import dashboard, load_quiz, perform_action

admin = Blueprint('admin', __name__)

_last_controller_action: dict[str, float] = {}


# ---- Pubs ----

@admin.route('/pubs', methods=['GET'])
@admin_required
def list_pubs():
    return jsonify([p.to_dict() for p in quizzes.list_pubs()])


@admin.route('/pubs', methods=['POST'])
@admin_required
def create_pub():
    data = request.get_json(silent=True) or {}
    pub = quizzes.create_pub(data.get('name'), data.get('max_teams'))
    return jsonify(pub.to_dict()), 201


@admin.route('/pubs/<int:pub_id>', methods=['DELETE'])
@admin_required
def delete_pub(pub_id):
    quizzes.delete_pub(pub_id)
    return jsonify({'success': True})


# ---- Live quizzes ----

@admin.route('/quizzes', methods=['GET'])
@admin_required
def list_quizzes():
    return jsonify([dict(q.to_dict(), phase=quizzes.phase(q)) for q in quizzes.list_quizzes()])


@admin.route('/quizzes', methods=['POST'])
@admin_required
def create_quiz():
    quiz = quizzes.create_quiz(request.get_json(silent=True) or {})
    data = quiz.to_dict()
    data['pubs'] = [p.to_dict() for p in quiz.pubs]
    return jsonify(data), 201


@admin.route('/quizzes/<int:quiz_id>', methods=['DELETE'])
@admin_required
def delete_quiz(quiz_id):
    quizzes.delete_quiz(quiz_id)
    return jsonify({'success': True})


@admin.route('/quizzes/<int:quiz_id>/lock', methods=['POST'])
@admin_required
def toggle_lock(quiz_id):
    quiz = quizzes.toggle_lock(quizzes.get_quiz(quiz_id))
    return jsonify(quiz.to_dict())


@admin.route('/quizzes/<int:quiz_id>/dashboard', methods=['GET'])
@admin_required
def quiz_dashboard(quiz_id):
    return jsonify(dashboard(load_quiz(quiz_id)))


@admin.route('/quizzes/<int:quiz_id>/actions/<string:action>', methods=['POST'])
@admin_required
def quiz_action(quiz_id, action):
    # Debounce repeated clicks
    debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    if debounce_ms > 0:
        key = f"{action}:{quiz_id}:{current_user.id}"
        now = time.time() * 1000.0
        last = _last_controller_action.get(key, 0)
        if now - last < debounce_ms:
            return jsonify({'message': 'debounced'}), 202
        for stale in [k for k, at in _last_controller_action.items() if now - at >= debounce_ms]:
            del _last_controller_action[stale]
        _last_controller_action[key] = now

    quiz = perform_action(quizzes.get_quiz(quiz_id), action)
    return jsonify(dashboard(quiz))


# ---- Contact inbox ----

@admin.route('/messages', methods=['GET'])
@admin_required
def list_messages():
    return jsonify(contact_service.all_threads())


@admin.route('/messages/<int:thread_id>/reply', methods=['POST'])
@admin_required
def reply(thread_id):
    data = request.get_json(silent=True) or {}
    msg = contact_service.admin_reply(current_user, thread_id, data.get('message'))
    return jsonify({'success': True, 'message': msg.to_dict()}), 201


# ---- Recaps ----

@admin.route('/recaps', methods=['POST'])
@admin_required
def create_recap():
    recap = recap_service.create_recap(request.get_json(silent=True) or {})
    return jsonify(recap_service.recap_detail(recap)), 201


@admin.route('/recaps/<int:recap_id>', methods=['DELETE'])
@admin_required
def delete_recap(recap_id):
    recap_service.delete_recap(recap_id)
    return jsonify({'success': True})
