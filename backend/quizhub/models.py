from quizhub import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import time


def utcnow():
    """Naive UTC timestamp (SQLite drops tzinfo, Postgres columns are naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'is_admin': self.is_admin,
        }


class Score(db.Model):
    __tablename__ = 'score'
    __table_args__ = (db.UniqueConstraint('user_id', 'quiz_date', 'quiz_type', name='uq_score_user_date_type'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    quiz_type = db.Column(db.String(8), nullable=False, index=True)  # JDQ, JVQ
    quiz_date = db.Column(db.Date, nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    tiebreaker = db.Column(db.Integer, nullable=False)
    day_type = db.Column(db.String(16), nullable=True)  # Thursday, Saturday (JVQ only)
    created_at = db.Column(db.DateTime, default=utcnow)
    edited_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.username,
            'quiz_type': self.quiz_type,
            'quiz_date': self.quiz_date.isoformat(),
            'score': self.score,
            'tiebreaker': self.tiebreaker,
            'day_type': self.day_type,
            'created_at': _iso(self.created_at),
            'edited_at': _iso(self.edited_at),
        }


class Friendship(db.Model):
    __tablename__ = 'friendship'
    id = db.Column(db.Integer, primary_key=True)
    requester_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    addressee_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    status = db.Column(db.String(16), default='pending', nullable=False)  # pending, accepted, declined
    created_at = db.Column(db.DateTime, default=utcnow)
    responded_at = db.Column(db.DateTime, nullable=True)

    requester = db.relationship('User', foreign_keys=[requester_id])
    addressee = db.relationship('User', foreign_keys=[addressee_id])

    def other_user(self, user_id):
        return self.addressee if self.requester_id == user_id else self.requester

    def to_dict(self, viewer_id=None):
        data = {
            'id': self.id,
            'requester_id': self.requester_id,
            'addressee_id': self.addressee_id,
            'status': self.status,
            'created_at': _iso(self.created_at),
            'responded_at': _iso(self.responded_at),
        }
        if viewer_id is not None:
            other = self.other_user(viewer_id)
            data['other'] = {'id': other.id, 'username': other.username} if other else None
        return data


class PrivateLeaderboard(db.Model):
    __tablename__ = 'private_leaderboard'
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    quiz_type = db.Column(db.String(8), nullable=False)
    jdq_scope = db.Column(db.String(16), nullable=True)  # weekly, monthly, all_time
    jvq_days = db.Column(db.JSON, nullable=True)  # ["thursday"] | ["saturday"] | ["combined"]
    jvq_scope = db.Column(db.String(16), nullable=True)  # monthly, all_time
    start_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    owner = db.relationship('User')
    members = db.relationship('LeaderboardMember', back_populates='leaderboard', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'name': self.name,
            'quiz_type': self.quiz_type,
            'jdq_scope': self.jdq_scope,
            'jvq_days': self.jvq_days,
            'jvq_scope': self.jvq_scope,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'updated_at': _iso(self.updated_at),
            'members': [{'user_id': m.user_id, 'username': m.user.username} for m in self.members],
        }


class LeaderboardMember(db.Model):
    __tablename__ = 'leaderboard_member'
    __table_args__ = (db.UniqueConstraint('leaderboard_id', 'user_id', name='uq_leaderboard_member'),)
    id = db.Column(db.Integer, primary_key=True)
    leaderboard_id = db.Column(db.Integer, db.ForeignKey('private_leaderboard.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=utcnow)
    seen_at = db.Column(db.DateTime, nullable=True)

    leaderboard = db.relationship('PrivateLeaderboard', back_populates='members')
    user = db.relationship('User')


class ContactThread(db.Model):
    __tablename__ = 'contact_thread'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    subject = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User')
    messages = db.relationship(
        'ContactMessage', back_populates='thread', cascade='all, delete-orphan',
        order_by='ContactMessage.created_at'
    )

    def to_dict(self, include_messages=True):
        last = self.messages[-1] if self.messages else None
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'subject': self.subject,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'awaiting_reply': bool(last and last.sender == 'user'),
        }
        if include_messages:
            data['messages'] = [m.to_dict() for m in self.messages]
        return data


class ContactMessage(db.Model):
    __tablename__ = 'contact_message'
    id = db.Column(db.Integer, primary_key=True)
    thread_id = db.Column(db.Integer, db.ForeignKey('contact_thread.id'), nullable=False, index=True)
    sender = db.Column(db.String(8), nullable=False)  # user, admin
    sender_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    read_at = db.Column(db.DateTime, nullable=True)

    thread = db.relationship('ContactThread', back_populates='messages')

    def to_dict(self):
        return {
            'id': self.id,
            'thread_id': self.thread_id,
            'sender': self.sender,
            'sender_id': self.sender_id,
            'message': self.message,
            'created_at': _iso(self.created_at),
            'read_at': _iso(self.read_at),
        }


class QuizRecap(db.Model):
    __tablename__ = 'quiz_recap'
    id = db.Column(db.Integer, primary_key=True)
    quiz_day = db.Column(db.String(16), nullable=False)
    quiz_date = db.Column(db.Date, nullable=False, index=True)
    youtube_url = db.Column(db.String(512), nullable=True)
    parts = db.Column(db.JSON, nullable=False, default=dict)
    access_codes = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'quiz_day': self.quiz_day,
            'quiz_date': self.quiz_date.isoformat(),
            'youtube_url': self.youtube_url,
        }


def normalize_parts(raw):
    """Return parts as ``[{name, rounds: [{round_name, num_questions}]}]``.

    A flat list of rounds (older quizzes) becomes a single "All Rounds" part.
    """
    if not isinstance(raw, list) or not raw:
        return []
    if isinstance(raw[0], dict) and 'rounds' in raw[0]:
        parts = raw
    else:
        parts = [{'name': 'All Rounds', 'rounds': raw}]
    normalized = []
    for idx, part in enumerate(parts):
        rounds = []
        for r_idx, r in enumerate(part.get('rounds') or []):
            rounds.append({
                'round_name': str(r.get('round_name') or r.get('roundName') or f'Round {r_idx + 1}'),
                'num_questions': int(r.get('num_questions') or r.get('numQuestions') or 0),
            })
        normalized.append({'name': str(part.get('name') or f'Part {idx + 1}'), 'rounds': rounds})
    return normalized


class Pub(db.Model):
    __tablename__ = 'pub'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    max_teams = db.Column(db.Integer, default=10, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'max_teams': self.max_teams}


class LiveQuiz(db.Model):
    __tablename__ = 'live_quiz'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    start_time = db.Column(db.DateTime, nullable=True)
    livestream_url = db.Column(db.String(512), nullable=True)
    parts = db.Column(db.JSON, nullable=False, default=list)
    # waiting, countdown, answering, locking, locked, marking, collecting, leaderboard, finished
    status = db.Column(db.String(32), default='waiting', nullable=False)
    current_part = db.Column(db.Integer, default=1, nullable=False)
    locked = db.Column(db.Boolean, default=False, nullable=False)
    stage_deadline = db.Column(db.Float, nullable=True)  # epoch seconds
    created_at = db.Column(db.DateTime, default=utcnow)

    pubs = db.relationship('QuizPub', back_populates='quiz', cascade='all, delete-orphan', order_by='QuizPub.id')

    @property
    def total_parts(self):
        return len(self.parts or []) or 1

    def part_rounds(self, part=None):
        parts = self.parts or []
        idx = (part or self.current_part or 1) - 1
        if 0 <= idx < len(parts):
            return parts[idx]['rounds']
        return parts[0]['rounds'] if parts else []

    def seconds_remaining(self, now=None):
        if self.stage_deadline is None:
            return None
        return max(0, int(round(self.stage_deadline - (now if now is not None else time.time()))))

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'start_time': _iso(self.start_time),
            'livestream_url': self.livestream_url,
            'parts': self.parts or [],
            'status': self.status,
            'current_part': self.current_part,
            'total_parts': self.total_parts,
            'locked': self.locked,
            'stage_deadline': self.stage_deadline,
            'seconds_remaining': self.seconds_remaining(),
        }


class QuizPub(db.Model):
    """A pub room inside one live quiz."""
    __tablename__ = 'quiz_pub'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('live_quiz.id'), nullable=False, index=True)
    pub_id = db.Column(db.Integer, db.ForeignKey('pub.id', ondelete='SET NULL'), nullable=True)
    name = db.Column(db.String(120), nullable=False)
    max_teams = db.Column(db.Integer, default=10, nullable=False)

    quiz = db.relationship('LiveQuiz', back_populates='pubs')
    members = db.relationship('PubMember', back_populates='quiz_pub', cascade='all, delete-orphan', order_by='PubMember.id')

    @property
    def is_full(self):
        return len(self.members) >= (self.max_teams or 10)

    def to_dict(self, include_members=False):
        data = {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'pub_id': self.pub_id,
            'name': self.name,
            'max_teams': self.max_teams,
            'member_count': len(self.members),
            'is_full': self.is_full,
        }
        if include_members:
            data['members'] = [{'user_id': m.user_id, 'username': m.user.username} for m in self.members]
        return data


class PubMember(db.Model):
    __tablename__ = 'pub_member'
    __table_args__ = (db.UniqueConstraint('quiz_id', 'user_id', name='uq_pub_member_quiz_user'),)
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('live_quiz.id'), nullable=False, index=True)
    quiz_pub_id = db.Column(db.Integer, db.ForeignKey('quiz_pub.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=utcnow)

    quiz_pub = db.relationship('QuizPub', back_populates='members')
    user = db.relationship('User')


class LiveAnswer(db.Model):
    """One player's answer sheet for one part."""
    __tablename__ = 'live_answer'
    __table_args__ = (db.UniqueConstraint('quiz_id', 'user_id', 'part', name='uq_live_answer_sheet'),)
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('live_quiz.id'), nullable=False, index=True)
    quiz_pub_id = db.Column(db.Integer, db.ForeignKey('quiz_pub.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    part = db.Column(db.Integer, nullable=False)
    answers = db.Column(db.JSON, nullable=False, default=dict)
    sheet_number = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    submitted_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'pub_id': self.quiz_pub_id,
            'user_id': self.user_id,
            'part': self.part,
            'answers': self.answers or {},
            'sheet_number': self.sheet_number,
            'submitted': self.submitted_at is not None,
            'submitted_at': _iso(self.submitted_at),
        }


class MarkingAssignment(db.Model):
    __tablename__ = 'marking_assignment'
    __table_args__ = (db.UniqueConstraint('quiz_id', 'part', 'marker_id', name='uq_marking_marker'),)
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('live_quiz.id'), nullable=False, index=True)
    part = db.Column(db.Integer, nullable=False)
    quiz_pub_id = db.Column(db.Integer, db.ForeignKey('quiz_pub.id'), nullable=False)
    marker_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    answer_id = db.Column(db.Integer, db.ForeignKey('live_answer.id'), nullable=False)
    target_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    marks = db.Column(db.JSON, nullable=True)
    funny_flags = db.Column(db.JSON, nullable=True)
    completed = db.Column(db.Boolean, default=False, nullable=False)
    score = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    answer = db.relationship('LiveAnswer')
    target = db.relationship('User', foreign_keys=[target_user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'part': self.part,
            'pub_id': self.quiz_pub_id,
            'marker_id': self.marker_id,
            'target_user_id': self.target_user_id,
            'target_username': self.target.username if self.target else None,
            'sheet_number': self.answer.sheet_number if self.answer else None,
            'marks': self.marks,
            'funny_flags': self.funny_flags,
            'completed': self.completed,
            'score': self.score,
        }


class LiveScore(db.Model):
    """Marked result for one sheet; kept after live data cleanup."""
    __tablename__ = 'live_score'
    __table_args__ = (db.UniqueConstraint('quiz_id', 'part', 'target_user_id', name='uq_live_score_target'),)
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('live_quiz.id'), nullable=False, index=True)
    part = db.Column(db.Integer, nullable=False)
    quiz_pub_id = db.Column(db.Integer, db.ForeignKey('quiz_pub.id'), nullable=False)
    pub_name = db.Column(db.String(120), nullable=False, default='')
    marker_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)  # NULL once the marker deletes their account
    target_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    target_username = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    answers = db.Column(db.JSON, nullable=True)  # snapshot of the marked sheet
    marks = db.Column(db.JSON, nullable=True)
    funny_flags = db.Column(db.JSON, nullable=True)
    submitted_at = db.Column(db.DateTime, default=utcnow)


class PubChatMessage(db.Model):
    __tablename__ = 'pub_chat_message'
    id = db.Column(db.Integer, primary_key=True)
    quiz_pub_id = db.Column(db.Integer, db.ForeignKey('quiz_pub.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    text = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'pub_id': self.quiz_pub_id,
            'user_id': self.user_id,
            'username': self.username,
            'text': self.text,
            'created_at': _iso(self.created_at),
        }
