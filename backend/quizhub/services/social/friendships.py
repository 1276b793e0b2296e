from flask import current_app

from quizhub import db
from quizhub.errors import ApiError, conflict, forbidden, not_found
from quizhub.models import Friendship, User, utcnow
from quizhub.services.accounts import find_user_by_username


def _pair_query(a_id: int, b_id: int):
    return Friendship.query.filter(db.or_(
        db.and_(Friendship.requester_id == a_id, Friendship.addressee_id == b_id),
        db.and_(Friendship.requester_id == b_id, Friendship.addressee_id == a_id),
    ))


def are_friends(a_id: int, b_id: int) -> bool:
    return _pair_query(a_id, b_id).filter(Friendship.status == 'accepted').first() is not None


def friend_ids(user_id: int):
    rows = Friendship.query.filter(
        Friendship.status == 'accepted',
        db.or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
    ).all()
    return {r.addressee_id if r.requester_id == user_id else r.requester_id for r in rows}


def send_request(user: User, username: str):
    """Send a friend request, returning ``(friendship, outcome)``.

    ``outcome`` is ``'sent'`` for a new pending request or ``'matched'``
    when the target had already asked us and the request is accepted.
    """
    target = find_user_by_username(username)
    if not target:
        raise not_found('User not found')
    if target.id == user.id:
        raise ApiError("You can't add yourself as a friend")

    rows = _pair_query(user.id, target.id).order_by(Friendship.id.desc()).all()
    for row in rows:
        if row.status == 'accepted':
            raise conflict('You are already friends')
        if row.status == 'pending' and row.requester_id == user.id:
            raise conflict('Friend request already sent')
        if row.status == 'pending' and row.requester_id == target.id:
            row.status = 'accepted'
            row.responded_at = utcnow()
            db.session.commit()
            current_app.logger.info(f"[friends] matched {user.id}<->{target.id}")
            return row, 'matched'

    # Declined pairs are reopened as a fresh request from the sender
    for row in rows:
        db.session.delete(row)
    friendship = Friendship(requester_id=user.id, addressee_id=target.id, status='pending')
    db.session.add(friendship)
    db.session.commit()
    current_app.logger.info(f"[friends] request {user.id}->{target.id}")
    return friendship, 'sent'


def _incoming(user: User, friendship_id: int) -> Friendship:
    row = db.session.get(Friendship, friendship_id)
    if not row:
        raise not_found('Friend request not found')
    if row.addressee_id != user.id:
        raise forbidden('Only the recipient can respond to this request')
    if row.status != 'pending':
        raise conflict('This request has already been answered')
    return row


def respond(user: User, friendship_id: int, accept: bool) -> Friendship:
    row = _incoming(user, friendship_id)
    row.status = 'accepted' if accept else 'declined'
    row.responded_at = utcnow()
    db.session.commit()
    return row


def remove(user: User, friendship_id: int) -> None:
    """Cancel an outgoing request, dismiss an incoming one, or unfriend."""
    row = db.session.get(Friendship, friendship_id)
    if not row:
        raise not_found('Friendship not found')
    if user.id not in (row.requester_id, row.addressee_id):
        raise forbidden('Not your friendship')
    db.session.delete(row)
    db.session.commit()


def overview(user: User):
    rows = Friendship.query.filter(
        db.or_(Friendship.requester_id == user.id, Friendship.addressee_id == user.id)
    ).order_by(Friendship.created_at.desc()).all()
    incoming, outgoing, friends = [], [], []
    for row in rows:
        data = row.to_dict(viewer_id=user.id)
        if row.status == 'accepted':
            friends.append(data)
        elif row.status == 'pending' and row.addressee_id == user.id:
            incoming.append(data)
        elif row.status == 'pending':
            outgoing.append(data)
    friends.sort(key=lambda d: (d['other'] or {}).get('username', '').lower())
    return {'incoming': incoming, 'outgoing': outgoing, 'friends': friends}
