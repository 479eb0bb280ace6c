"""create_matchmaking_tables

Revision ID: a0b1c2d3e4f5
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a0b1c2d3e4f5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TRAIT_SCORE_COLUMNS = (
    'openness',
    'conscientiousness',
    'extraversion',
    'agreeableness',
    'neuroticism',
    'secure_score',
    'anxious_score',
    'avoidant_score',
)


def upgrade() -> None:
    """Upgrade schema - users, trait profiles, swipe ledger, matches and weekly events."""

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_premium', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('premium_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    # Create trait_profiles table
    op.create_table(
        'trait_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('openness', sa.Float(), nullable=False),
        sa.Column('conscientiousness', sa.Float(), nullable=False),
        sa.Column('extraversion', sa.Float(), nullable=False),
        sa.Column('agreeableness', sa.Float(), nullable=False),
        sa.Column('neuroticism', sa.Float(), nullable=False),
        sa.Column('attachment_style', sa.String(length=16), nullable=False),
        sa.Column('secure_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('anxious_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avoidant_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('compatibility_keywords', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('profile_strength', sa.Float(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('algorithm_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.CheckConstraint(
            "attachment_style IN ('secure', 'anxious', 'avoidant', 'mixed')",
            name='attachmentstyle'
        ),
        sa.CheckConstraint(
            'profile_strength >= 0 AND profile_strength <= 1',
            name='ck_trait_profiles_profile_strength_range'
        ),
        *[
            sa.CheckConstraint(f'{name} >= 0 AND {name} <= 100', name=f'ck_trait_profiles_{name}_range')
            for name in TRAIT_SCORE_COLUMNS
        ]
    )
    op.create_index('ix_trait_profiles_id', 'trait_profiles', ['id'])
    op.create_index('ix_trait_profiles_user_id', 'trait_profiles', ['user_id'])
    op.create_index('ix_trait_profiles_is_active', 'trait_profiles', ['is_active'])

    # Create interactions table (swipe ledger)
    op.create_table(
        'interactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('is_mutual', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('is_undone', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('undone_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('context', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.ForeignKeyConstraint(['target_id'], ['users.id']),
        sa.CheckConstraint(
            "kind IN ('like', 'pass', 'super_like', 'block', 'report')",
            name='interactionkind'
        )
    )
    op.create_index('ix_interactions_id', 'interactions', ['id'])
    op.create_index('ix_interactions_actor_id', 'interactions', ['actor_id'])
    op.create_index('ix_interactions_target_id', 'interactions', ['target_id'])
    op.create_index(
        'ix_interactions_actor_kind_created',
        'interactions',
        ['actor_id', 'kind', 'created_at']
    )
    # At most one live (not undone) interaction per ordered pair
    op.create_index(
        'uq_interactions_live_pair',
        'interactions',
        ['actor_id', 'target_id'],
        unique=True,
        postgresql_where=sa.text('NOT is_undone')
    )

    # Create matches table
    op.create_table(
        'matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_a_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_b_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('compatibility_score', sa.Float(), nullable=False),
        sa.Column('match_context', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('matched_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('unmatched_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_a_id'], ['users.id']),
        sa.ForeignKeyConstraint(['user_b_id'], ['users.id']),
        sa.UniqueConstraint('user_a_id', 'user_b_id', name='uq_matches_pair'),
        sa.CheckConstraint('user_a_id < user_b_id', name='ck_matches_canonical_order'),
        sa.CheckConstraint(
            'compatibility_score >= 1 AND compatibility_score <= 99',
            name='ck_matches_score_range'
        )
    )
    op.create_index('ix_matches_id', 'matches', ['id'])
    op.create_index('ix_matches_user_a_id', 'matches', ['user_a_id'])
    op.create_index('ix_matches_user_b_id', 'matches', ['user_b_id'])
    op.create_index('ix_matches_is_active', 'matches', ['is_active'])

    # Create weekly_events table
    op.create_table(
        'weekly_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='scheduled'),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('max_participants', sa.Integer(), nullable=True),
        sa.Column('event_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('scheduled', 'active', 'processing', 'completed', 'cancelled')",
            name='eventstatus'
        )
    )
    op.create_index('ix_weekly_events_id', 'weekly_events', ['id'])
    op.create_index('ix_weekly_events_event_type', 'weekly_events', ['event_type'])
    op.create_index('ix_weekly_events_status', 'weekly_events', ['status'])
    op.create_index('ix_weekly_events_ends_at', 'weekly_events', ['ends_at'])

    # Create event_questions table
    op.create_table(
        'event_questions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('question_type', sa.String(length=20), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('options', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('psychological_weights', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('scale_max', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['weekly_events.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "question_type IN ('multiple_choice', 'scale', 'text', 'image_choice')",
            name='questiontype'
        )
    )
    op.create_index('ix_event_questions_id', 'event_questions', ['id'])
    op.create_index('ix_event_questions_event_id', 'event_questions', ['event_id'])

    # Create event_participations table
    op.create_table(
        'event_participations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='joined'),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['weekly_events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_participations_event_user'),
        sa.CheckConstraint(
            "status IN ('joined', 'completed', 'matched', 'abandoned')",
            name='participationstatus'
        )
    )
    op.create_index('ix_event_participations_id', 'event_participations', ['id'])
    op.create_index('ix_event_participations_event_id', 'event_participations', ['event_id'])
    op.create_index('ix_event_participations_user_id', 'event_participations', ['user_id'])
    op.create_index('ix_event_participations_status', 'event_participations', ['status'])

    # Create event_responses table
    op.create_table(
        'event_responses',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('participation_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('question_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('response_value', sa.Text(), nullable=False),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['participation_id'], ['event_participations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['event_questions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint(
            'participation_id',
            'question_id',
            name='uq_event_responses_participation_question'
        )
    )
    op.create_index('ix_event_responses_id', 'event_responses', ['id'])
    op.create_index('ix_event_responses_participation_id', 'event_responses', ['participation_id'])
    op.create_index('ix_event_responses_question_id', 'event_responses', ['question_id'])

    # Create event_matches table
    op.create_table(
        'event_matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_a_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_b_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('compatibility_score', sa.Float(), nullable=False),
        sa.Column('match_reasons', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('user_a_accepted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('user_b_accepted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('user_a_declined', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('user_b_declined', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('is_notified', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('match_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['weekly_events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_a_id'], ['users.id']),
        sa.ForeignKeyConstraint(['user_b_id'], ['users.id']),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('event_id', 'user_a_id', 'user_b_id', name='uq_event_matches_event_pair'),
        sa.CheckConstraint('user_a_id < user_b_id', name='ck_event_matches_canonical_order')
    )
    op.create_index('ix_event_matches_id', 'event_matches', ['id'])
    op.create_index('ix_event_matches_event_id', 'event_matches', ['event_id'])
    op.create_index('ix_event_matches_user_a_id', 'event_matches', ['user_a_id'])
    op.create_index('ix_event_matches_user_b_id', 'event_matches', ['user_b_id'])


def downgrade() -> None:
    """Downgrade schema - drop all matchmaking tables."""
    op.drop_table('event_matches')
    op.drop_table('event_responses')
    op.drop_table('event_participations')
    op.drop_table('event_questions')
    op.drop_table('weekly_events')
    op.drop_table('matches')
    op.drop_index('uq_interactions_live_pair', table_name='interactions')
    op.drop_table('interactions')
    op.drop_table('trait_profiles')
    op.drop_table('users')
