"""keep live scores when a marker deletes their account; store marked sheets

Revision ID: a71d3e9c2f58
Revises: 5c2a9e7d1b40
Create Date: 2026-10-20 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a71d3e9c2f58'
down_revision = '5c2a9e7d1b40'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('live_score')}

    with op.batch_alter_table('marking_assignment') as batch_op:
        batch_op.alter_column('marker_id', existing_type=sa.Integer(), nullable=True)

    with op.batch_alter_table('live_score') as batch_op:
        batch_op.alter_column('marker_id', existing_type=sa.Integer(), nullable=True)
        if 'answers' not in cols:
            batch_op.add_column(sa.Column('answers', sa.JSON(), nullable=True))
        if 'marks' not in cols:
            batch_op.add_column(sa.Column('marks', sa.JSON(), nullable=True))
        # one score per marked sheet; markers may be NULL after account deletion
        batch_op.drop_constraint('uq_live_score_marker', type_='unique')
        batch_op.create_unique_constraint('uq_live_score_target', ['quiz_id', 'part', 'target_user_id'])


def downgrade():
    with op.batch_alter_table('live_score') as batch_op:
        batch_op.drop_constraint('uq_live_score_target', type_='unique')
        batch_op.create_unique_constraint('uq_live_score_marker', ['quiz_id', 'part', 'marker_id'])
        batch_op.drop_column('marks')
        batch_op.drop_column('answers')
        batch_op.alter_column('marker_id', existing_type=sa.Integer(), nullable=False)

    with op.batch_alter_table('marking_assignment') as batch_op:
        batch_op.alter_column('marker_id', existing_type=sa.Integer(), nullable=False)
