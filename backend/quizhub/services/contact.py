"""Contact threads between members and the admins."""

from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, forbidden, not_found
from quizhub.models import ContactMessage, ContactThread, User, utcnow
from quizhub.services.social.notifications import mark_admin_messages_read

MAX_MESSAGE_LENGTH = 2000
SUBJECT_LENGTH = 80


def _clean_message(message) -> str:
    message = (message or '').strip()
    if not message:
        raise ApiError('Message cannot be empty')
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ApiError(f'Message must be at most {MAX_MESSAGE_LENGTH} characters')
    return message


def open_thread(user: User, message, subject=None) -> ContactThread:
    message = _clean_message(message)
    subject = (subject or '').strip() or message[:SUBJECT_LENGTH]
    thread = ContactThread(user_id=user.id, subject=subject[:120])
    thread.messages.append(ContactMessage(sender='user', sender_id=user.id, message=message))
    db.session.add(thread)
    db.session.commit()
    current_app.logger.info(f"[contact] thread={thread.id} opened by user={user.id}")
    return thread


def threads_for_user(user: User):
    """Own threads, newest activity first. Reading marks admin replies read."""
    threads = (
        ContactThread.query.filter_by(user_id=user.id)
        .order_by(ContactThread.updated_at.desc(), ContactThread.id.desc())
        .all()
    )
    mark_admin_messages_read(user)
    return threads


def add_user_message(user: User, thread_id: int, message) -> ContactMessage:
    thread = db.session.get(ContactThread, thread_id)
    if not thread:
        raise not_found('Thread not found')
    if thread.user_id != user.id:
        raise forbidden('Not your thread')
    msg = ContactMessage(sender='user', sender_id=user.id, message=_clean_message(message))
    thread.messages.append(msg)
    thread.updated_at = utcnow()
    db.session.commit()
    return msg


def admin_reply(admin: User, thread_id: int, message) -> ContactMessage:
    thread = db.session.get(ContactThread, thread_id)
    if not thread:
        raise not_found('Thread not found')
    msg = ContactMessage(sender='admin', sender_id=admin.id, message=_clean_message(message))
    thread.messages.append(msg)
    thread.updated_at = utcnow()
    db.session.commit()
    current_app.logger.info(f"[contact] admin={admin.id} replied thread={thread.id}")
    return msg


def delete_message(user: User, message_id: int) -> None:
    msg = db.session.get(ContactMessage, message_id)
    if not msg:
        raise not_found('Message not found')
    if not user.is_admin and msg.sender_id != user.id:
        raise forbidden('You can only delete your own messages')
    thread = msg.thread
    thread.messages.remove(msg)
    if not thread.messages:
        db.session.delete(thread)
    db.session.commit()


def all_threads():
    threads = ContactThread.query.order_by(ContactThread.updated_at.desc(), ContactThread.id.desc()).all()
    rows = []
    for t in threads:
        data = t.to_dict()
        data['username'] = t.user.username if t.user else None
        data['email'] = t.user.email if t.user else None
        rows.append(data)
    return rows
