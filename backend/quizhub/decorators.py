from functools import wraps

from flask import jsonify
from flask_login import current_user, login_required


def admin_required(view):
    """Like ``login_required`` but also requires ``User.is_admin``."""

    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({'error': 'Admin access required'}), 403
        return view(*args, **kwargs)

    return wrapped
