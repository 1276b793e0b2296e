"""Account lifecycle: registration rules, profile edits and deletion."""

import re
from typing import Optional

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, conflict, forbidden
from quizhub.models import (
    User, Score, Friendship, PrivateLeaderboard, LeaderboardMember,
    ContactThread, ContactMessage, PubMember, LiveAnswer, MarkingAssignment,
    PubChatMessage, LiveScore,
)
from quizhub.services.live_quiz.marking import finalize_for_marker

USERNAME_RE = re.compile(r'^[A-Za-z0-9_]{3,20}$')
MIN_PASSWORD_LENGTH = 6


def find_user_by_username(username: str) -> Optional[User]:
    if not username:
        return None
    return User.query.filter(db.func.lower(User.username) == username.strip().lower()).first()


def username_available(username: str, exclude_user_id: Optional[int] = None) -> bool:
    if not username or not USERNAME_RE.match(username):
        return False
    existing = find_user_by_username(username)
    return existing is None or existing.id == exclude_user_id


def _validate_username(username, exclude_user_id=None):
    if not username or not USERNAME_RE.match(username):
        raise ApiError('Username must be 3-20 letters, numbers or underscores')
    if not username_available(username, exclude_user_id):
        raise conflict('Username already exists')


def _validate_email(email, exclude_user_id=None):
    if email is None:
        return None
    email = email.strip().lower()
    if not email:
        return None
    if '@' not in email:
        raise ApiError('Invalid email address')
    existing = User.query.filter_by(email=email).first()
    if existing and existing.id != exclude_user_id:
        raise conflict('Email already registered')
    return email


def register_user(username: str, password: str, email: Optional[str] = None) -> User:
    username = (username or '').strip()
    _validate_username(username)
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ApiError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    user = User(username=username, email=_validate_email(email))
    user.set_password(password)
    user.is_admin = username.lower() in (current_app.config.get('ADMIN_USERNAMES') or [])
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"[account] registered user={user.id} admin={user.is_admin}")
    return user


def change_password(user: User, current_password, new_password) -> None:
    if not current_password or not user.check_password(current_password):
        raise forbidden('Current password is incorrect')
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ApiError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    user.set_password(new_password)


def update_profile(
    user: User,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
    current_password: Optional[str] = None,
) -> User:
    if password is not None:
        change_password(user, current_password, password)
    if username is not None and username.strip() != user.username:
        username = username.strip()
        _validate_username(username, exclude_user_id=user.id)
        user.username = username
        # Scores carry a denormalised username for leaderboards
        Score.query.filter_by(user_id=user.id).update({'username': username})
    if email is not None:
        user.email = _validate_email(email, exclude_user_id=user.id)
    db.session.commit()
    if password is not None:
        current_app.logger.info(f"[account] password changed user={user.id}")
    return user


def delete_account(user: User) -> None:
    """Delete the user and every row that belongs to them.

    Results the user gave other players survive: open marking tasks are
    submitted from their drafts and the marker reference is cleared.
    """
    uid = user.id
    Friendship.query.filter(
        (Friendship.requester_id == uid) | (Friendship.addressee_id == uid)
    ).delete(synchronize_session=False)
    LeaderboardMember.query.filter_by(user_id=uid).delete()
    for board in PrivateLeaderboard.query.filter_by(owner_id=uid).all():
        db.session.delete(board)
    Score.query.filter_by(user_id=uid).delete()

    thread_ids = [t.id for t in ContactThread.query.filter_by(user_id=uid).all()]
    if thread_ids:
        ContactMessage.query.filter(ContactMessage.thread_id.in_(thread_ids)).delete(synchronize_session=False)
    # admin replies in other people's threads stay, unattributed
    ContactMessage.query.filter_by(sender_id=uid).update({'sender_id': None})
    ContactThread.query.filter_by(user_id=uid).delete()

    finalize_for_marker(uid)
    MarkingAssignment.query.filter_by(target_user_id=uid).delete()
    MarkingAssignment.query.filter_by(marker_id=uid).update({'marker_id': None})
    LiveScore.query.filter_by(target_user_id=uid).delete()
    LiveScore.query.filter_by(marker_id=uid).update({'marker_id': None})
    LiveAnswer.query.filter_by(user_id=uid).delete()
    PubChatMessage.query.filter_by(user_id=uid).delete()
    PubMember.query.filter_by(user_id=uid).delete()
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info(f"[account] deleted user={uid}")
