from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from quizhub.services import contact as contact_service

contact = Blueprint('contact', __name__)


@contact.route('/threads', methods=['POST'])
@login_required
def open_thread():
    data = request.get_json(silent=True) or {}
    thread = contact_service.open_thread(current_user, data.get('message'), data.get('subject'))
    return jsonify({'success': True, 'thread': thread.to_dict()}), 201


@contact.route('/threads', methods=['GET'])
@login_required
def my_threads():
    threads = contact_service.threads_for_user(current_user)
    return jsonify([t.to_dict() for t in threads])


@contact.route('/threads/<int:thread_id>/messages', methods=['POST'])
@login_required
def add_message(thread_id):
    data = request.get_json(silent=True) or {}
    msg = contact_service.add_user_message(current_user, thread_id, data.get('message'))
    return jsonify({'success': True, 'message': msg.to_dict()}), 201


@contact.route('/messages/<int:message_id>', methods=['DELETE'])
@login_required
def delete_message(message_id):
    contact_service.delete_message(current_user, message_id)
    return jsonify({'success': True})
