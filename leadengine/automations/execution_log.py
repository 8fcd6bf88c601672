"""
Automation execution log — the audit trail of every automation firing.

Successful sends and completed enrichments become LeadEvents; failures and
skips go to the application log. Every outcome also bumps a counter in the
Redis hash `automations:stats` (best effort, never blocks a dispatch).
"""
import logging
from typing import Any, Dict, Optional

from leadengine.automations.base import LeadStore, LeadSnapshot, Workflow
from leadengine.logging_config import automation_context

logger = logging.getLogger('automations.execution_log')

STATS_KEY = 'automations:stats'

SENT = 'sent'
SEND_FAILED = 'send_failed'
SKIPPED = 'skipped'
ENRICHED = 'enriched'
ENRICHMENT_FAILED = 'enrichment_failed'
OUTCOMES = (SENT, SEND_FAILED, SKIPPED, ENRICHED, ENRICHMENT_FAILED)


class ExecutionLog:

    def __init__(self, store: LeadStore, redis_client=None):
        self.store = store
        self.redis = redis_client

    # ── Message outcomes ──────────────────────────────────────────────

    def record_sent(self, lead: LeadSnapshot, workflow: Workflow, trigger: str, channel: str,
                    payload: Optional[Dict[str, Any]] = None):
        metadata = {
            'automationId': workflow.id,
            'automationName': workflow.name,
            'trigger': trigger,
            'channel': channel,
        }
        if payload:
            metadata['payload'] = payload
        self.store.create_lead_event(
            lead.id, 'NOTE_ADDED', f'Automation "{workflow.name}" executed', metadata,
        )
        logger.info(
            "Sent %s via automation \"%s\" for lead %s", channel, workflow.name, lead.id,
            extra=automation_context(lead.id, trigger, workflow.id, SENT, lead.tenant_id),
        )
        self._count(SENT)

    def record_send_failed(self, lead: LeadSnapshot, workflow: Workflow, trigger: str,
                           channel: str, error: Optional[str]):
        logger.warning(
            "Failed to send %s via automation \"%s\" (trigger=%s) for lead %s: %s",
            channel, workflow.name, trigger, lead.id, error or 'unknown error',
            extra=automation_context(lead.id, trigger, workflow.id, SEND_FAILED, lead.tenant_id),
        )
        self._count(SEND_FAILED)

    def record_skipped(self, lead: LeadSnapshot, workflow: Workflow, trigger: str, reason: str):
        logger.info(
            "Skipping \"%s\" (trigger=%s) for lead %s: %s", workflow.name, trigger, lead.id, reason,
            extra=automation_context(lead.id, trigger, workflow.id, SKIPPED, lead.tenant_id),
        )
        self._count(SKIPPED)

    # ── Enrichment outcomes ───────────────────────────────────────────

    def record_enrichment(self, lead_id: str, result):
        content = (
            f"Solar site analysis complete: {result.site_suitability}. "
            f"Max {result.max_panels_count} panels, {result.system_size_kw:.1f}kW system potential."
        )
        self.store.create_lead_event(lead_id, 'SOLAR_ANALYSIS', content, {
            'siteSuitability': result.site_suitability,
            'maxPanelsCount': result.max_panels_count,
            'systemSizeKW': result.system_size_kw,
            'sunshineHoursYear': result.max_sunshine_hours_year,
        })
        logger.info(
            "Solar enrichment complete for lead %s: %s", lead_id, result.site_suitability,
            extra=automation_context(lead_id, outcome=ENRICHED),
        )
        self._count(ENRICHED)

    def record_enrichment_failed(self, lead_id: str, error: Exception):
        logger.error(
            "Solar enrichment failed for lead %s (%s): %s",
            lead_id, getattr(error, 'kind', type(error).__name__), error,
            extra=automation_context(lead_id, outcome=ENRICHMENT_FAILED),
        )
        self._count(ENRICHMENT_FAILED)

    # ── Counters ──────────────────────────────────────────────────────

    def _count(self, outcome):
        if self.redis is None:
            return
        try:
            self.redis.hincrby(STATS_KEY, outcome, 1)
        except Exception as e:
            logger.debug("Could not record automation stat %s: %s", outcome, e)


def get_stats(redis_client) -> Dict[str, int]:
    """Outcome counters for /api/health. Zeros when Redis is unavailable."""
    try:
        raw = redis_client.hgetall(STATS_KEY) or {}
    except Exception:
        raw = {}
    return {outcome: int(raw.get(outcome, 0)) for outcome in OUTCOMES}
