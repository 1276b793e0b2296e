"""initial quiz hub schema

Revision ID: 5c2a9e7d1b40
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e7d1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index(op.f('ix_user_username'), 'user', ['username'], unique=True)

    op.create_table(
        'score',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('quiz_type', sa.String(length=8), nullable=False),
        sa.Column('quiz_date', sa.Date(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('tiebreaker', sa.Integer(), nullable=False),
        sa.Column('day_type', sa.String(length=16), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'quiz_date', 'quiz_type', name='uq_score_user_date_type'),
    )
    op.create_index(op.f('ix_score_user_id'), 'score', ['user_id'], unique=False)
    op.create_index(op.f('ix_score_quiz_type'), 'score', ['quiz_type'], unique=False)
    op.create_index(op.f('ix_score_quiz_date'), 'score', ['quiz_date'], unique=False)

    op.create_table(
        'friendship',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requester_id', sa.Integer(), nullable=False),
        sa.Column('addressee_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['requester_id'], ['user.id']),
        sa.ForeignKeyConstraint(['addressee_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_friendship_requester_id'), 'friendship', ['requester_id'], unique=False)
    op.create_index(op.f('ix_friendship_addressee_id'), 'friendship', ['addressee_id'], unique=False)

    op.create_table(
        'private_leaderboard',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('quiz_type', sa.String(length=8), nullable=False),
        sa.Column('jdq_scope', sa.String(length=16), nullable=True),
        sa.Column('jvq_days', sa.JSON(), nullable=True),
        sa.Column('jvq_scope', sa.String(length=16), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_private_leaderboard_owner_id'), 'private_leaderboard', ['owner_id'], unique=False)

    op.create_table(
        'leaderboard_member',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('leaderboard_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.Column('seen_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['leaderboard_id'], ['private_leaderboard.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('leaderboard_id', 'user_id', name='uq_leaderboard_member'),
    )
    op.create_index(op.f('ix_leaderboard_member_user_id'), 'leaderboard_member', ['user_id'], unique=False)

    op.create_table(
        'contact_thread',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_contact_thread_user_id'), 'contact_thread', ['user_id'], unique=False)

    op.create_table(
        'contact_message',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('thread_id', sa.Integer(), nullable=False),
        sa.Column('sender', sa.String(length=8), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['thread_id'], ['contact_thread.id']),
        sa.ForeignKeyConstraint(['sender_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_contact_message_thread_id'), 'contact_message', ['thread_id'], unique=False)

    op.create_table(
        'quiz_recap',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_day', sa.String(length=16), nullable=False),
        sa.Column('quiz_date', sa.Date(), nullable=False),
        sa.Column('youtube_url', sa.String(length=512), nullable=True),
        sa.Column('parts', sa.JSON(), nullable=False),
        sa.Column('access_codes', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_quiz_recap_quiz_date'), 'quiz_recap', ['quiz_date'], unique=False)

    op.create_table(
        'pub',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('max_teams', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'live_quiz',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('livestream_url', sa.String(length=512), nullable=True),
        sa.Column('parts', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('current_part', sa.Integer(), nullable=False),
        sa.Column('locked', sa.Boolean(), nullable=False),
        sa.Column('stage_deadline', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'quiz_pub',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), nullable=False),
        sa.Column('pub_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('max_teams', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['live_quiz.id']),
        sa.ForeignKeyConstraint(['pub_id'], ['pub.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_quiz_pub_quiz_id'), 'quiz_pub', ['quiz_id'], unique=False)

    op.create_table(
        'pub_member',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), nullable=False),
        sa.Column('quiz_pub_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['quiz_id'], ['live_quiz.id']),
        sa.ForeignKeyConstraint(['quiz_pub_id'], ['quiz_pub.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'user_id', name='uq_pub_member_quiz_user'),
    )
    op.create_index(op.f('ix_pub_member_quiz_id'), 'pub_member', ['quiz_id'], unique=False)
    op.create_index(op.f('ix_pub_member_quiz_pub_id'), 'pub_member', ['quiz_pub_id'], unique=False)
    op.create_index(op.f('ix_pub_member_user_id'), 'pub_member', ['user_id'], unique=False)

    op.create_table(
        'live_answer',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), nullable=False),
        sa.Column('quiz_pub_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('part', sa.Integer(), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('sheet_number', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['quiz_id'], ['live_quiz.id']),
        sa.ForeignKeyConstraint(['quiz_pub_id'], ['quiz_pub.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'user_id', 'part', name='uq_live_answer_sheet'),
    )
    op.create_index(op.f('ix_live_answer_quiz_id'), 'live_answer', ['quiz_id'], unique=False)
    op.create_index(op.f('ix_live_answer_quiz_pub_id'), 'live_answer', ['quiz_pub_id'], unique=False)

    op.create_table(
        'marking_assignment',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), nullable=False),
        sa.Column('part', sa.Integer(), nullable=False),
        sa.Column('quiz_pub_id', sa.Integer(), nullable=False),
        sa.Column('marker_id', sa.Integer(), nullable=False),
        sa.Column('answer_id', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.Integer(), nullable=False),
        sa.Column('marks', sa.JSON(), nullable=True),
        sa.Column('funny_flags', sa.JSON(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['quiz_id'], ['live_quiz.id']),
        sa.ForeignKeyConstraint(['quiz_pub_id'], ['quiz_pub.id']),
        sa.ForeignKeyConstraint(['marker_id'], ['user.id']),
        sa.ForeignKeyConstraint(['answer_id'], ['live_answer.id']),
        sa.ForeignKeyConstraint(['target_user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'part', 'marker_id', name='uq_marking_marker'),
    )
    op.create_index(op.f('ix_marking_assignment_quiz_id'), 'marking_assignment', ['quiz_id'], unique=False)

    op.create_table(
        'live_score',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), nullable=False),
        sa.Column('part', sa.Integer(), nullable=False),
        sa.Column('quiz_pub_id', sa.Integer(), nullable=False),
        sa.Column('pub_name', sa.String(length=120), nullable=False),
        sa.Column('marker_id', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.Integer(), nullable=False),
        sa.Column('target_username', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('funny_flags', sa.JSON(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['quiz_id'], ['live_quiz.id']),
        sa.ForeignKeyConstraint(['quiz_pub_id'], ['quiz_pub.id']),
        sa.ForeignKeyConstraint(['marker_id'], ['user.id']),
        sa.ForeignKeyConstraint(['target_user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'part', 'marker_id', name='uq_live_score_marker'),
    )
    op.create_index(op.f('ix_live_score_quiz_id'), 'live_score', ['quiz_id'], unique=False)

    op.create_table(
        'pub_chat_message',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_pub_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('text', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['quiz_pub_id'], ['quiz_pub.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_pub_chat_message_quiz_pub_id'), 'pub_chat_message', ['quiz_pub_id'], unique=False)


def downgrade():
    op.drop_table('pub_chat_message')
    op.drop_table('live_score')
    op.drop_table('marking_assignment')
    op.drop_table('live_answer')
    op.drop_table('pub_member')
    op.drop_table('quiz_pub')
    op.drop_table('live_quiz')
    op.drop_table('pub')
    op.drop_table('quiz_recap')
    op.drop_table('contact_message')
    op.drop_table('contact_thread')
    op.drop_table('leaderboard_member')
    op.drop_table('private_leaderboard')
    op.drop_table('friendship')
    op.drop_table('score')
    op.drop_table('user')
