"""
Append-only audit trail per lead.

Rows are inserted by the engine or its collaborators and never updated.
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, ForeignKey, Index
from sqlalchemy.sql import func

from leadengine.database import Base


class LeadEvent(Base):
    __tablename__ = 'lead_events'

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=False)
    type = Column(Text, nullable=False)        # EMAIL_RECEIVED / SMS_RECEIVED / FORM_SUBMIT / SOLAR_ANALYSIS / NOTE_ADDED
    content = Column(Text, default='')
    # "metadata" is reserved on declarative classes
    event_metadata = Column('metadata', JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_lead_events_lead_id_created_at', 'lead_id', 'created_at'),
    )
