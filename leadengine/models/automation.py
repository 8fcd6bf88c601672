"""
A tenant-configured workflow rule.

Edited by tenant configuration; read-only to the automation engine.
"""
import uuid

from sqlalchemy import Column, Text, Boolean, DateTime, JSON, Index
from sqlalchemy.sql import func

from leadengine.database import Base


class Automation(Base):
    __tablename__ = 'automations'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    trigger = Column(Text, nullable=False)     # e.g. lead.created, solar.analyzed
    enabled = Column(Boolean, nullable=False, default=True)
    template = Column(Text, nullable=False, default='')
    config = Column(JSON, default=dict)        # {channel, delay, conditions, actions}
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_automations_tenant_trigger', 'tenant_id', 'trigger'),
    )
