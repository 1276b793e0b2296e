from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from quizhub.services import accounts

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the quiz hub server!'})

@main.route('/api/auth/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    if not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing username or password'}), 400
    user = accounts.register_user(data['username'], data['password'], data.get('email'))
    login_user(user, remember=True)
    return jsonify({'success': True, 'user': user.to_dict()}), 201

@main.route('/api/auth/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = accounts.find_user_by_username(data.get('username'))
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'success': True, 'user': user.to_dict()})
    return jsonify({'error': 'Invalid username or password'}), 401

@main.route('/api/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})

@main.route('/api/auth/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})

@main.route('/api/auth/me', methods=['PATCH'])
@login_required
def update_me():
    data = request.get_json(silent=True) or {}
    user = accounts.update_profile(
        current_user,
        username=data.get('username'),
        email=data.get('email'),
        password=data.get('password'),
        current_password=data.get('current_password'),
    )
    return jsonify({'success': True, 'user': user.to_dict()})

@main.route('/api/auth/me', methods=['DELETE'])
@login_required
def delete_me():
    user = current_user._get_current_object()
    logout_user()
    accounts.delete_account(user)
    return jsonify({'ok': True})

@main.route('/api/auth/username-available', methods=['GET'])
def username_available():
    username = (request.args.get('username') or '').strip()
    return jsonify({'username': username, 'available': accounts.username_available(username)})
