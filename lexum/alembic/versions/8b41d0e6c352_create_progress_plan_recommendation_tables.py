"""create progress, plan and recommendation tables

Revision ID: 8b41d0e6c352
Revises: 1c2f7a9d4e10
Create Date: 2026-09-02 10:31:05.904771

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b41d0e6c352'
down_revision: Union[str, None] = '1c2f7a9d4e10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('user_word_progress',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('word_id', sa.Integer(), nullable=False),
                    sa.Column('ease_factor', sa.Float(), nullable=False, server_default='2.5'),
                    sa.Column('interval_days', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('repetitions', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('next_review', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('last_result', sa.String(length=10), nullable=True),
                    sa.Column('wrong_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('correct_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('personal_score', sa.Integer(), nullable=True),
                    sa.Column('word_state', sa.String(length=12), nullable=False, server_default='new'),
                    sa.Column('trend_direction', sa.String(length=8), nullable=False, server_default='stable'),
                    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['word_id'], ['words.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'word_id', name='uq_user_word_progress_user_word')
                    )
    op.create_index(op.f('ix_user_word_progress_user_id'), 'user_word_progress', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_word_progress_word_id'), 'user_word_progress', ['word_id'], unique=False)
    op.create_index(op.f('ix_user_word_progress_next_review'), 'user_word_progress', ['next_review'], unique=False)

    op.create_table('practice_events',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('word_id', sa.Integer(), nullable=False),
                    sa.Column('quality', sa.String(length=10), nullable=False),
                    sa.Column('is_correct', sa.Boolean(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['word_id'], ['words.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_practice_events_user_id'), 'practice_events', ['user_id'], unique=False)
    op.create_index(op.f('ix_practice_events_word_id'), 'practice_events', ['word_id'], unique=False)
    op.create_index(op.f('ix_practice_events_created_at'), 'practice_events', ['created_at'], unique=False)

    op.create_table('user_skill_profile',
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('frequency_score', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('polysemy_score', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('morph_score', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('idiom_score', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('total_updates', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('user_id')
                    )

    op.create_table('daily_plans',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('date', sa.Date(), nullable=False),
                    sa.Column('target_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('completed_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('generated_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'date', name='uq_daily_plans_user_date')
                    )
    op.create_index(op.f('ix_daily_plans_user_id'), 'daily_plans', ['user_id'], unique=False)

    op.create_table('daily_plan_items',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('plan_id', sa.Integer(), nullable=False),
                    sa.Column('word_id', sa.Integer(), nullable=False),
                    sa.Column('list_id', sa.Integer(), nullable=True),
                    sa.Column('slot_type', sa.String(length=8), nullable=False),
                    sa.Column('order_index', sa.Integer(), nullable=False),
                    sa.Column('status', sa.String(length=10), nullable=False, server_default='pending'),
                    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['plan_id'], ['daily_plans.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['word_id'], ['words.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['list_id'], ['lists.id'], ondelete='SET NULL'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('plan_id', 'word_id', name='uq_daily_plan_items_plan_word')
                    )
    op.create_index(op.f('ix_daily_plan_items_plan_id'), 'daily_plan_items', ['plan_id'], unique=False)

    op.create_table('recommendation_runs',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('source_lang', sa.String(length=8), nullable=False),
                    sa.Column('target_lang', sa.String(length=8), nullable=False),
                    sa.Column('mode', sa.String(length=12), nullable=False, server_default='auto'),
                    sa.Column('intent', sa.String(length=12), nullable=True),
                    sa.Column('difficulty', sa.String(length=12), nullable=True),
                    sa.Column('topic', sa.String(length=100), nullable=True),
                    sa.Column('format', sa.String(length=12), nullable=True),
                    sa.Column('requested_count', sa.Integer(), nullable=False),
                    sa.Column('strategy', sa.String(length=8), nullable=False),
                    sa.Column('pool_size', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('sql_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('llm_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_recommendation_runs_user_id'), 'recommendation_runs', ['user_id'], unique=False)

    op.create_table('recommendation_words',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('source_lang', sa.String(length=8), nullable=False),
                    sa.Column('target_lang', sa.String(length=8), nullable=False),
                    sa.Column('original', sa.String(length=255), nullable=False),
                    sa.Column('translation', sa.String(length=255), nullable=False),
                    sa.Column('transcription', sa.String(length=255), nullable=True),
                    sa.Column('cefr_level', sa.String(length=2), nullable=True),
                    sa.Column('part_of_speech', sa.String(length=30), nullable=True),
                    sa.Column('phrase_flag', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('example_sentence_target', sa.Text(), nullable=True),
                    sa.Column('definition', sa.Text(), nullable=True),
                    sa.Column('definition_uk', sa.Text(), nullable=True),
                    sa.Column('trust_level', sa.String(length=12), nullable=False, server_default='provisional'),
                    sa.Column('add_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('source_lang', 'target_lang', 'original',
                                        name='uq_recommendation_words_langs_original')
                    )

    op.create_table('recommendation_items',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('run_id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('word_id', sa.Integer(), nullable=True),
                    sa.Column('rec_word_id', sa.Integer(), nullable=True),
                    sa.Column('source_lang', sa.String(length=8), nullable=False),
                    sa.Column('target_lang', sa.String(length=8), nullable=False),
                    sa.Column('original', sa.String(length=255), nullable=False),
                    sa.Column('translation', sa.String(length=255), nullable=False),
                    sa.Column('transcription', sa.String(length=255), nullable=True),
                    sa.Column('cefr_level', sa.String(length=2), nullable=True),
                    sa.Column('part_of_speech', sa.String(length=30), nullable=True),
                    sa.Column('phrase_flag', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('example_sentence_target', sa.Text(), nullable=True),
                    sa.Column('definition', sa.Text(), nullable=True),
                    sa.Column('definition_uk', sa.Text(), nullable=True),
                    sa.Column('reason_code', sa.String(length=20), nullable=False, server_default='cefr_fit'),
                    sa.Column('score', sa.Integer(), nullable=False, server_default='50'),
                    sa.Column('rank_position', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('user_action', sa.String(length=10), nullable=False, server_default='pending'),
                    sa.Column('actioned_at', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('added_to_list_id', sa.Integer(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['run_id'], ['recommendation_runs.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['word_id'], ['words.id'], ondelete='SET NULL'),
                    sa.ForeignKeyConstraint(['rec_word_id'], ['recommendation_words.id'], ondelete='SET NULL'),
                    sa.ForeignKeyConstraint(['added_to_list_id'], ['lists.id'], ondelete='SET NULL'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_recommendation_items_run_id'), 'recommendation_items', ['run_id'], unique=False)
    op.create_index(op.f('ix_recommendation_items_user_id'), 'recommendation_items', ['user_id'], unique=False)
    op.create_index(op.f('ix_recommendation_items_word_id'), 'recommendation_items', ['word_id'], unique=False)
    op.create_index(op.f('ix_recommendation_items_created_at'), 'recommendation_items', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_recommendation_items_created_at'), table_name='recommendation_items')
    op.drop_index(op.f('ix_recommendation_items_word_id'), table_name='recommendation_items')
    op.drop_index(op.f('ix_recommendation_items_user_id'), table_name='recommendation_items')
    op.drop_index(op.f('ix_recommendation_items_run_id'), table_name='recommendation_items')
    op.drop_table('recommendation_items')
    op.drop_table('recommendation_words')

    op.drop_index(op.f('ix_recommendation_runs_user_id'), table_name='recommendation_runs')
    op.drop_table('recommendation_runs')

    op.drop_index(op.f('ix_daily_plan_items_plan_id'), table_name='daily_plan_items')
    op.drop_table('daily_plan_items')
    op.drop_index(op.f('ix_daily_plans_user_id'), table_name='daily_plans')
    op.drop_table('daily_plans')

    op.drop_table('user_skill_profile')

    op.drop_index(op.f('ix_practice_events_created_at'), table_name='practice_events')
    op.drop_index(op.f('ix_practice_events_word_id'), table_name='practice_events')
    op.drop_index(op.f('ix_practice_events_user_id'), table_name='practice_events')
    op.drop_table('practice_events')

    op.drop_index(op.f('ix_user_word_progress_next_review'), table_name='user_word_progress')
    op.drop_index(op.f('ix_user_word_progress_word_id'), table_name='user_word_progress')
    op.drop_index(op.f('ix_user_word_progress_user_id'), table_name='user_word_progress')
    op.drop_table('user_word_progress')
