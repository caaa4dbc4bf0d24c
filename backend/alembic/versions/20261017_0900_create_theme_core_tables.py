"""Create theme core tables

Revision ID: 20261017_theme_core
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261017_theme_core'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create settings, status, mapping, setting value, event and automation tables."""
    op.create_table(
        'project_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False, server_default='Changelog'),
        sa.Column('current_theme_id', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('current_theme_version', sa.String(length=100), nullable=False, server_default=''),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_project_settings_id'), 'project_settings', ['id'], unique=False)

    op.create_table(
        'event_status_definitions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_reserved', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_event_status_definitions_id'), 'event_status_definitions', ['id'], unique=False)
    op.create_index(op.f('ix_event_status_definitions_display_name'), 'event_status_definitions', ['display_name'], unique=True)
    op.create_index(op.f('ix_event_status_definitions_slug'), 'event_status_definitions', ['slug'], unique=True)

    op.create_table(
        'status_category_mappings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('status_definition_id', sa.Integer(), nullable=False),
        sa.Column('theme_id', sa.String(length=255), nullable=False),
        sa.Column('category_id', sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('status_definition_id', 'theme_id', name='uq_status_mapping_status_theme')
    )
    op.create_index(op.f('ix_status_category_mappings_id'), 'status_category_mappings', ['id'], unique=False)
    op.create_index(op.f('ix_status_category_mappings_status_definition_id'), 'status_category_mappings', ['status_definition_id'], unique=False)
    op.create_index(op.f('ix_status_category_mappings_theme_id'), 'status_category_mappings', ['theme_id'], unique=False)

    op.create_table(
        'theme_setting_values',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('theme_id', sa.String(length=255), nullable=False),
        sa.Column('setting_id', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('theme_id', 'setting_id', name='uq_theme_setting_value')
    )
    op.create_index(op.f('ix_theme_setting_values_id'), 'theme_setting_values', ['id'], unique=False)
    op.create_index(op.f('ix_theme_setting_values_theme_id'), 'theme_setting_values', ['theme_id'], unique=False)

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('date', sa.String(length=50), nullable=True),
        sa.Column('votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=100), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('has_public_url', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_events_id'), 'events', ['id'], unique=False)
    op.create_index(op.f('ix_events_status'), 'events', ['status'], unique=False)
    op.create_index(op.f('ix_events_created_at'), 'events', ['created_at'], unique=False)

    op.create_table(
        'newsletter_automation_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('trigger_statuses', sa.Text(), nullable=False, server_default='[]'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_newsletter_automation_settings_id'), 'newsletter_automation_settings', ['id'], unique=False)


def downgrade() -> None:
    """Drop theme core tables."""
    op.drop_index(op.f('ix_newsletter_automation_settings_id'), table_name='newsletter_automation_settings')
    op.drop_table('newsletter_automation_settings')

    op.drop_index(op.f('ix_events_created_at'), table_name='events')
    op.drop_index(op.f('ix_events_status'), table_name='events')
    op.drop_index(op.f('ix_events_id'), table_name='events')
    op.drop_table('events')

    op.drop_index(op.f('ix_theme_setting_values_theme_id'), table_name='theme_setting_values')
    op.drop_index(op.f('ix_theme_setting_values_id'), table_name='theme_setting_values')
    op.drop_table('theme_setting_values')

    op.drop_index(op.f('ix_status_category_mappings_theme_id'), table_name='status_category_mappings')
    op.drop_index(op.f('ix_status_category_mappings_status_definition_id'), table_name='status_category_mappings')
    op.drop_index(op.f('ix_status_category_mappings_id'), table_name='status_category_mappings')
    op.drop_table('status_category_mappings')

    op.drop_index(op.f('ix_event_status_definitions_slug'), table_name='event_status_definitions')
    op.drop_index(op.f('ix_event_status_definitions_display_name'), table_name='event_status_definitions')
    op.drop_index(op.f('ix_event_status_definitions_id'), table_name='event_status_definitions')
    op.drop_table('event_status_definitions')

    op.drop_index(op.f('ix_project_settings_id'), table_name='project_settings')
    op.drop_table('project_settings')
