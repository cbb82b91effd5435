"""create quiz and question tables

Revision ID: 5a7c1e9d2b40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c1e9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'quiz',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=8), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('admin_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('quiz') as batch_op:
        batch_op.create_index(batch_op.f('ix_quiz_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_quiz_admin_id'), ['admin_id'], unique=False)

    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('options', sa.Text(), nullable=False),
        sa.Column('correct_answer', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('time_limit', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['quiz.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('question') as batch_op:
        batch_op.create_index(batch_op.f('ix_question_quiz_id'), ['quiz_id'], unique=False)


def downgrade():
    with op.batch_alter_table('question') as batch_op:
        batch_op.drop_index(batch_op.f('ix_question_quiz_id'))
    op.drop_table('question')
    with op.batch_alter_table('quiz') as batch_op:
        batch_op.drop_index(batch_op.f('ix_quiz_admin_id'))
        batch_op.drop_index(batch_op.f('ix_quiz_code'))
    op.drop_table('quiz')
