from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from quizhub.models import utcnow
from quizhub import db
from quizhub.services.social import friendships, notifications, private_leaderboards

social = Blueprint('social', __name__)


# ---- Friends ----

@social.route('/friends', methods=['GET'])
@login_required
def list_friends():
    return jsonify(friendships.overview(current_user))


@social.route('/friends/requests', methods=['POST'])
@login_required
def send_friend_request():
    data = request.get_json(silent=True) or {}
    friendship, outcome = friendships.send_request(current_user, data.get('username'))
    status_code = 201 if outcome == 'sent' else 200
    return jsonify({
        'success': True,
        'outcome': outcome,
        'status': friendship.status,
        'friendship': friendship.to_dict(viewer_id=current_user.id),
    }), status_code


@social.route('/friends/requests/<int:friendship_id>/accept', methods=['POST'])
@login_required
def accept_friend_request(friendship_id):
    row = friendships.respond(current_user, friendship_id, accept=True)
    return jsonify({'success': True, 'friendship': row.to_dict(viewer_id=current_user.id)})


@social.route('/friends/requests/<int:friendship_id>/decline', methods=['POST'])
@login_required
def decline_friend_request(friendship_id):
    row = friendships.respond(current_user, friendship_id, accept=False)
    return jsonify({'success': True, 'friendship': row.to_dict(viewer_id=current_user.id)})


@social.route('/friends/<int:friendship_id>', methods=['DELETE'])
@login_required
def remove_friend(friendship_id):
    friendships.remove(current_user, friendship_id)
    return jsonify({'success': True})


# ---- Private leaderboards ----

@social.route('/private-leaderboards', methods=['POST'])
@login_required
def create_private_leaderboard():
    board = private_leaderboards.create_leaderboard(current_user, request.get_json(silent=True) or {})
    return jsonify({'success': True, 'leaderboard': board.to_dict()}), 201


@social.route('/private-leaderboards', methods=['GET'])
@login_required
def list_private_leaderboards():
    boards = private_leaderboards.list_for_user(current_user)
    return jsonify([b.to_dict() for b in boards])


@social.route('/private-leaderboards/<int:board_id>', methods=['GET'])
@login_required
def get_private_leaderboard(board_id):
    board = private_leaderboards.get_for_member(current_user, board_id)
    # Opening a board counts as seeing the invite
    for m in board.members:
        if m.user_id == current_user.id and m.seen_at is None:
            m.seen_at = utcnow()
            db.session.commit()
    data = board.to_dict()
    data['standings'] = private_leaderboards.standings(board)
    return jsonify(data)


@social.route('/private-leaderboards/<int:board_id>', methods=['DELETE'])
@login_required
def delete_private_leaderboard(board_id):
    private_leaderboards.delete_leaderboard(current_user, board_id)
    return jsonify({'success': True})


@social.route('/private-leaderboards/<int:board_id>/leave', methods=['POST'])
@login_required
def leave_private_leaderboard(board_id):
    private_leaderboards.leave_leaderboard(current_user, board_id)
    return jsonify({'success': True})


@social.route('/private-leaderboards/<int:board_id>/members/<int:user_id>', methods=['DELETE'])
@login_required
def remove_private_leaderboard_member(board_id, user_id):
    board = private_leaderboards.remove_member(current_user, board_id, user_id)
    return jsonify({'success': True, 'leaderboard': board.to_dict()})


# ---- Notifications ----

@social.route('/notifications', methods=['GET'])
@login_required
def notification_counts():
    return jsonify(notifications.counts(current_user))


@social.route('/notifications/clear', methods=['POST'])
@login_required
def clear_notifications():
    data = request.get_json(silent=True) or {}
    return jsonify(notifications.clear(current_user, data.get('kind')))
