"""
Lead model — one row per prospective customer, scoped to a tenant.

The automation engine reads a snapshot of this row and writes back only the
solar enrichment columns.
"""
import uuid

from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime, Index
from sqlalchemy.sql import func

from leadengine.database import Base


def _new_id():
    return str(uuid.uuid4())


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Text, primary_key=True, default=_new_id)
    tenant_id = Column(Text, nullable=False)
    name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    source = Column(Text, nullable=True)          # business / source label
    stage = Column(Text, nullable=False, default='NEW')

    # AI-derived, most-recent-wins
    intent = Column(Text, nullable=True)
    score = Column(Integer, nullable=True)
    sentiment = Column(Text, nullable=True)

    # Solar site suitability
    site_suitability = Column(Text, nullable=True)  # VIABLE / CHALLENGING / NOT_VIABLE
    max_panels_count = Column(Integer, nullable=True)
    max_sunshine_hours_year = Column(Float, nullable=True)
    annual_kwh_production = Column(Float, nullable=True)
    roof_pitch = Column(Float, nullable=True)
    carbon_offset_kg = Column(Float, nullable=True)
    solar_enriched = Column(Boolean, nullable=False, default=False)
    solar_enriched_at = Column(DateTime(timezone=True), nullable=True)
    solar_enrichment_error = Column(Text, nullable=True)  # terminal failure marker

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_leads_tenant_id', 'tenant_id'),
    )
