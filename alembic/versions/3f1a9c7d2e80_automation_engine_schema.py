"""Automation engine schema: leads, lead_events, automations, site_surveys

Revision ID: 3f1a9c7d2e80
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c7d2e80'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'leads',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('tenant_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        sa.Column('stage', sa.Text(), nullable=False, server_default='NEW'),
        sa.Column('intent', sa.Text(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('sentiment', sa.Text(), nullable=True),
        sa.Column('site_suitability', sa.Text(), nullable=True),
        sa.Column('max_panels_count', sa.Integer(), nullable=True),
        sa.Column('max_sunshine_hours_year', sa.Float(), nullable=True),
        sa.Column('annual_kwh_production', sa.Float(), nullable=True),
        sa.Column('roof_pitch', sa.Float(), nullable=True),
        sa.Column('carbon_offset_kg', sa.Float(), nullable=True),
        sa.Column('solar_enriched', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('solar_enriched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('solar_enrichment_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_leads_tenant_id', 'leads', ['tenant_id'])

    op.create_table(
        'lead_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('lead_id', sa.Text(), sa.ForeignKey('leads.id'), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), server_default=''),
        sa.Column('metadata', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_lead_events_lead_id_created_at', 'lead_events', ['lead_id', 'created_at'])

    op.create_table(
        'automations',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('tenant_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('trigger', sa.Text(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('template', sa.Text(), nullable=False, server_default=''),
        sa.Column('config', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_automations_tenant_trigger', 'automations', ['tenant_id', 'trigger'])

    op.create_table(
        'site_surveys',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('lead_id', sa.Text(), sa.ForeignKey('leads.id'), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('imagery_date', sa.Date(), nullable=True),
        sa.Column('imagery_quality', sa.Text(), nullable=True),
        sa.Column('roof_segment_count', sa.Integer(), server_default='0'),
        sa.Column('total_roof_area_sqm', sa.Float(), nullable=True),
        sa.Column('usable_roof_area_sqm', sa.Float(), nullable=True),
        sa.Column('azimuth_degrees', sa.Float(), nullable=True),
        sa.Column('system_size_kw', sa.Float(), nullable=True),
        sa.Column('panel_capacity_w', sa.Integer(), nullable=True),
        sa.Column('recommended_panels', sa.Integer(), nullable=True),
        sa.Column('estimated_cost_usd', sa.Float(), nullable=True),
        sa.Column('estimated_savings_year', sa.Float(), nullable=True),
        sa.Column('payback_years', sa.Float(), nullable=True),
        sa.Column('building_insights_json', sa.JSON(), nullable=True),
        sa.Column('module_layout_json', sa.JSON(), nullable=True),
        sa.Column('financial_analysis_json', sa.JSON(), nullable=True),
        sa.Column('api_version', sa.Text(), server_default='v1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_site_surveys_lead_id', 'site_surveys', ['lead_id'])


def downgrade() -> None:
    op.drop_index('ix_site_surveys_lead_id', 'site_surveys')
    op.drop_table('site_surveys')
    op.drop_index('ix_automations_tenant_trigger', 'automations')
    op.drop_table('automations')
    op.drop_index('ix_lead_events_lead_id_created_at', 'lead_events')
    op.drop_table('lead_events')
    op.drop_index('ix_leads_tenant_id', 'leads')
    op.drop_table('leads')
