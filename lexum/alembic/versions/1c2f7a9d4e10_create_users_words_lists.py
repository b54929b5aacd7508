"""create users, words and lists

Revision ID: 1c2f7a9d4e10
Revises: 
Create Date: 2026-09-02 10:14:32.511204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1c2f7a9d4e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('username', sa.String(), nullable=True),
                    sa.Column('email', sa.String(length=100), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.Column('subscription_plan', sa.String(length=20), nullable=False, server_default='free'),
                    sa.Column('rec_requests_today', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('rec_reset_date', sa.Date(), nullable=True),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('email'),
                    sa.UniqueConstraint('username')
                    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    op.create_table('words',
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
                    sa.Column('frequency_band', sa.Integer(), nullable=True),
                    sa.Column('polysemy_level', sa.Integer(), nullable=True),
                    sa.Column('morph_complexity', sa.Integer(), nullable=True),
                    sa.Column('translation_kind', sa.String(length=30), nullable=True),
                    sa.Column('difficulty_score', sa.Float(), nullable=True),
                    sa.Column('base_score', sa.Float(), nullable=True),
                    sa.Column('confidence_score', sa.Integer(), nullable=True),
                    sa.Column('source', sa.String(length=20), nullable=False, server_default='translated'),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('original', 'source_lang', 'target_lang', 'translation',
                                        name='uq_words_original_langs_translation')
                    )
    op.create_index(op.f('ix_words_source_lang'), 'words', ['source_lang'], unique=False)
    op.create_index(op.f('ix_words_target_lang'), 'words', ['target_lang'], unique=False)
    op.create_index(op.f('ix_words_original'), 'words', ['original'], unique=False)
    op.create_index(op.f('ix_words_cefr_level'), 'words', ['cefr_level'], unique=False)

    op.create_table('lists',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('name', sa.String(length=100), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_lists_user_id'), 'lists', ['user_id'], unique=False)

    op.create_table('list_words',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('list_id', sa.Integer(), nullable=False),
                    sa.Column('word_id', sa.Integer(), nullable=False),
                    sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text("now()")),
                    sa.ForeignKeyConstraint(['list_id'], ['lists.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['word_id'], ['words.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('list_id', 'word_id', name='uq_list_words_list_word')
                    )
    op.create_index(op.f('ix_list_words_list_id'), 'list_words', ['list_id'], unique=False)
    op.create_index(op.f('ix_list_words_word_id'), 'list_words', ['word_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_list_words_word_id'), table_name='list_words')
    op.drop_index(op.f('ix_list_words_list_id'), table_name='list_words')
    op.drop_table('list_words')

    op.drop_index(op.f('ix_lists_user_id'), table_name='lists')
    op.drop_table('lists')

    op.drop_index(op.f('ix_words_cefr_level'), table_name='words')
    op.drop_index(op.f('ix_words_original'), table_name='words')
    op.drop_index(op.f('ix_words_target_lang'), table_name='words')
    op.drop_index(op.f('ix_words_source_lang'), table_name='words')
    op.drop_table('words')

    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
