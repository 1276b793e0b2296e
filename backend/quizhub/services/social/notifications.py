from quizhub import db
from quizhub.errors import ApiError
from quizhub.models import ContactMessage, ContactThread, Friendship, LeaderboardMember, PrivateLeaderboard, User, utcnow

KINDS = ('leaderboard_invites', 'admin_messages')


def _unseen_invites(user: User):
    return (
        LeaderboardMember.query.join(PrivateLeaderboard)
        .filter(
            LeaderboardMember.user_id == user.id,
            LeaderboardMember.seen_at.is_(None),
            PrivateLeaderboard.owner_id != user.id,
        )
    )


def _unread_admin_messages(user: User):
    return (
        ContactMessage.query.join(ContactThread)
        .filter(
            ContactThread.user_id == user.id,
            ContactMessage.sender == 'admin',
            ContactMessage.read_at.is_(None),
        )
    )


def counts(user: User):
    friend_requests = Friendship.query.filter_by(addressee_id=user.id, status='pending').count()
    invites = _unseen_invites(user).count()
    admin_messages = _unread_admin_messages(user).count()
    return {
        'friend_requests': friend_requests,
        'leaderboard_invites': invites,
        'admin_messages': admin_messages,
        'total': friend_requests + invites + admin_messages,
    }


def mark_admin_messages_read(user: User) -> int:
    now = utcnow()
    rows = _unread_admin_messages(user).all()
    for m in rows:
        m.read_at = now
    db.session.commit()
    return len(rows)


def clear(user: User, kind: str):
    if kind not in KINDS:
        raise ApiError('kind must be leaderboard_invites or admin_messages')
    if kind == 'admin_messages':
        mark_admin_messages_read(user)
    else:
        now = utcnow()
        for m in _unseen_invites(user).all():
            m.seen_at = now
        db.session.commit()
    return counts(user)
