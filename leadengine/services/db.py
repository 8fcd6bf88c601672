"""
SQLAlchemy-backed LeadStore — the automation engine's persistence collaborator.

Each method runs in its own short session (row-level atomicity per call).
Write failures are rolled back, logged and re-raised so the dispatcher's
top-level guard records them.
"""
import logging
from dataclasses import asdict
from datetime import datetime, timezone

from leadengine.automations.base import (
    LeadStore, LeadSnapshot, LeadEventRecord, Workflow, WorkflowConfig,
)
from leadengine.config import LEAD_EVENT_TYPES, NOT_VIABLE, SITE_SUITABILITY_VALUES
from leadengine.database import get_session
from leadengine.models.automation import Automation
from leadengine.models.lead import Lead
from leadengine.models.lead_event import LeadEvent
from leadengine.models.site_survey import SiteSurvey

logger = logging.getLogger('services.db')

# Columns the engine is allowed to write back on a lead
ENRICHMENT_FIELDS = (
    'site_suitability',
    'max_panels_count',
    'max_sunshine_hours_year',
    'annual_kwh_production',
    'roof_pitch',
    'carbon_offset_kg',
)


class SqlAlchemyLeadStore(LeadStore):

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session

    # ── Reads ─────────────────────────────────────────────────────────

    def get_lead(self, lead_id, recent_events=5):
        session = self._session_factory()
        try:
            lead = session.get(Lead, lead_id)
            if lead is None:
                return None
            events = (
                session.query(LeadEvent)
                .filter(LeadEvent.lead_id == lead_id)
                .order_by(LeadEvent.created_at.desc(), LeadEvent.id.desc())
                .limit(recent_events)
                .all()
            )
            return _to_snapshot(lead, events)
        finally:
            session.close()

    def list_enabled_workflows(self, tenant_id, trigger):
        session = self._session_factory()
        try:
            rows = (
                session.query(Automation)
                .filter(
                    Automation.tenant_id == tenant_id,
                    Automation.trigger == trigger,
                    Automation.enabled.is_(True),
                )
                .order_by(Automation.created_at, Automation.id)
                .all()
            )
            return [
                Workflow(
                    id=row.id,
                    tenant_id=row.tenant_id,
                    name=row.name,
                    trigger=row.trigger,
                    template=row.template or '',
                    enabled=bool(row.enabled),
                    config=WorkflowConfig.from_dict(row.config),
                )
                for row in rows
            ]
        finally:
            session.close()

    # ── Writes ────────────────────────────────────────────────────────

    def update_lead_enrichment(self, lead_id, fields):
        if fields.get('site_suitability') not in SITE_SUITABILITY_VALUES:
            raise ValueError(f"site_suitability must be one of {SITE_SUITABILITY_VALUES}")

        def _apply(lead):
            for name in ENRICHMENT_FIELDS:
                if name in fields:
                    setattr(lead, name, fields[name])
            lead.solar_enriched = True
            lead.solar_enriched_at = datetime.now(timezone.utc)
            lead.solar_enrichment_error = None

        self._update_lead(lead_id, _apply, 'update enrichment for')

    def mark_enrichment_failed(self, lead_id, error):
        def _apply(lead):
            lead.site_suitability = NOT_VIABLE
            lead.solar_enriched = False
            lead.solar_enrichment_error = (error or 'Unknown error')[:500]

        self._update_lead(lead_id, _apply, 'mark enrichment failed for')

    def rearm_solar_enrichment(self, lead_id):
        def _apply(lead):
            lead.solar_enrichment_error = None
            if not lead.solar_enriched:
                lead.site_suitability = None

        return self._update_lead(lead_id, _apply, 're-arm enrichment for')

    def create_site_survey(self, lead_id, survey):
        self._insert(SiteSurvey(lead_id=lead_id, **asdict(survey)), f"site survey for lead {lead_id}")

    def create_lead_event(self, lead_id, event_type, content, metadata=None):
        if event_type not in LEAD_EVENT_TYPES:
            raise ValueError(f"event type must be one of {LEAD_EVENT_TYPES}")
        event = LeadEvent(
            lead_id=lead_id,
            type=event_type,
            content=content or '',
            event_metadata=metadata or {},
        )
        self._insert(event, f"{event_type} event for lead {lead_id}")

    # ── Private helpers ───────────────────────────────────────────────

    def _update_lead(self, lead_id, apply, action):
        """Load, mutate, commit. Returns False if the lead no longer exists."""
        session = self._session_factory()
        try:
            lead = session.get(Lead, lead_id)
            if lead is None:
                logger.warning("Cannot %s lead %s: not found", action, lead_id)
                return False
            apply(lead)
            session.commit()
            return True
        except Exception:
            session.rollback()
            logger.error("Failed to %s lead %s", action, lead_id, exc_info=True)
            raise
        finally:
            session.close()

    def _insert(self, row, description):
        session = self._session_factory()
        try:
            session.add(row)
            session.commit()
        except Exception:
            session.rollback()
            logger.error("Failed to insert %s", description, exc_info=True)
            raise
        finally:
            session.close()


def _to_snapshot(lead, events):
    return LeadSnapshot(
        id=lead.id,
        tenant_id=lead.tenant_id,
        name=lead.name,
        email=lead.email,
        phone=lead.phone,
        address=lead.address,
        source=lead.source,
        stage=lead.stage,
        intent=lead.intent,
        score=lead.score,
        sentiment=lead.sentiment,
        site_suitability=lead.site_suitability,
        max_panels_count=lead.max_panels_count,
        max_sunshine_hours_year=lead.max_sunshine_hours_year,
        annual_kwh_production=lead.annual_kwh_production,
        roof_pitch=lead.roof_pitch,
        carbon_offset_kg=lead.carbon_offset_kg,
        solar_enriched=bool(lead.solar_enriched),
        solar_enriched_at=lead.solar_enriched_at,
        solar_enrichment_error=lead.solar_enrichment_error,
        recent_events=tuple(
            LeadEventRecord(
                type=e.type,
                content=e.content or '',
                metadata=dict(e.event_metadata or {}),
                created_at=e.created_at,
            )
            for e in events
        ),
    )
