"""
SiteSurvey model — one row per successful solar enrichment call.

Never updated: a repeat enrichment inserts a new row.
"""
from sqlalchemy import Column, Integer, Float, Text, Date, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func

from leadengine.database import Base


class SiteSurvey(Base):
    __tablename__ = 'site_surveys'

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=False, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    imagery_date = Column(Date, nullable=True)
    imagery_quality = Column(Text, nullable=True)
    roof_segment_count = Column(Integer, default=0)
    total_roof_area_sqm = Column(Float, nullable=True)
    usable_roof_area_sqm = Column(Float, nullable=True)
    azimuth_degrees = Column(Float, nullable=True)
    system_size_kw = Column(Float, nullable=True)
    panel_capacity_w = Column(Integer, nullable=True)
    recommended_panels = Column(Integer, nullable=True)
    estimated_cost_usd = Column(Float, nullable=True)
    estimated_savings_year = Column(Float, nullable=True)
    payback_years = Column(Float, nullable=True)
    building_insights_json = Column(JSON, nullable=True)
    module_layout_json = Column(JSON, nullable=True)
    financial_analysis_json = Column(JSON, nullable=True)
    api_version = Column(Text, default='v1')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
