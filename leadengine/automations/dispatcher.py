"""
Automation Dispatcher — runs a lead's workflows for one trigger.

Per dispatch:
  LOAD_LEAD → LOAD_WORKFLOWS → for each workflow:
      EVALUATE → [ENRICH] → RENDER → SELECT_CHANNEL → SEND → LOG

Workflows run one at a time, in order, so the audit trail stays ordered.
Failure policy:
  - workflow level (conditions, missing contact channel, send failure): skip and continue
  - dispatch level (lead gone, no workflows, unexpected exception): log and return
  - enrichment failure (provider error or failed write-back): recorded on the lead, never fatal

A successful enrichment synchronously dispatches `solar.analyzed` one level
deeper before the outer loop continues. Enrichment is only attempted below
max_enrichment_depth (at most 1), so that nested dispatch can never enrich
and recurse again, whatever the tenant has configured.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from leadengine.automations.base import (
    LeadStore, MessageSender, LeadSnapshot, Workflow, AnalysisSnapshot, SendResult,
    derive_analysis,
)
from leadengine.automations.conditions import evaluate_conditions
from leadengine.automations.execution_log import ExecutionLog
from leadengine.automations.templates import render_template, build_template_variables
from leadengine.config import (
    AGENT_NAME, MAX_ENRICHMENT_DEPTH, RECENT_EVENT_LIMIT,
    CHANNEL_EMAIL, CHANNEL_SMS, TRIGGER_SOLAR_ANALYZED,
)
from leadengine.services.solar import EnrichmentError

logger = logging.getLogger('automations.dispatcher')


class AutomationDispatcher:
    """
    Holds only its collaborators; all per-dispatch state is local, so one
    instance can serve concurrent dispatches for different leads.
    """

    def __init__(
        self,
        store: LeadStore,
        sender: MessageSender,
        enrichment=None,
        execution_log: Optional[ExecutionLog] = None,
        agent_name: str = AGENT_NAME,
        max_enrichment_depth: int = MAX_ENRICHMENT_DEPTH,
        recent_event_limit: int = RECENT_EVENT_LIMIT,
    ):
        self.store = store
        self.sender = sender
        self.enrichment = enrichment
        self.log = execution_log or ExecutionLog(store)
        self.agent_name = agent_name
        self.max_enrichment_depth = min(max(int(max_enrichment_depth), 0), 1)
        self.recent_event_limit = recent_event_limit

    # ── Public API ────────────────────────────────────────────────────

    def run_automations(self, lead_id: str, trigger: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """
        Fire every enabled workflow of the lead's tenant matching `trigger`.

        Never raises; outcomes are visible only through LeadEvents and logs.
        """
        self._dispatch(lead_id, trigger, payload, depth=0)

    # ── Dispatch ──────────────────────────────────────────────────────

    def _dispatch(self, lead_id, trigger, payload, depth):
        try:
            self._run(lead_id, trigger, payload, depth)
        except Exception:
            logger.error(
                "Error running automations for lead %s (trigger=%s, depth=%d)",
                lead_id, trigger, depth, exc_info=True,
            )

    def _run(self, lead_id, trigger, payload, depth):
        logger.info("Running automations for lead %s, trigger=%s, depth=%d", lead_id, trigger, depth)

        lead = self.store.get_lead(lead_id, recent_events=self.recent_event_limit)
        if lead is None:
            logger.info("Lead not found: %s", lead_id)
            return

        workflows = self.store.list_enabled_workflows(lead.tenant_id, trigger)
        if not workflows:
            logger.info("No automations for trigger %s (tenant %s)", trigger, lead.tenant_id)
            return

        logger.info("Found %d automation(s) for trigger %s", len(workflows), trigger)
        analysis = derive_analysis(lead)

        for workflow in workflows:
            lead = self._run_workflow(lead, analysis, workflow, trigger, payload, depth)

    def _run_workflow(
        self,
        lead: LeadSnapshot,
        analysis: Optional[AnalysisSnapshot],
        workflow: Workflow,
        trigger: str,
        payload: Optional[Dict[str, Any]],
        depth: int,
    ) -> LeadSnapshot:
        """Run one workflow. Returns the lead snapshot, refreshed if enrichment ran."""
        config = workflow.config

        if not evaluate_conditions(lead, analysis, config.conditions):
            self.log.record_skipped(lead, workflow, trigger, 'conditions not met')
            return lead

        if config.actions.notify_on_viable:
            logger.warning("Automation \"%s\": notifyOnViable is not implemented, ignoring", workflow.name)

        if config.actions.enrich_solar:
            lead = self._maybe_enrich(lead, depth)

        message = render_template(workflow.template, build_template_variables(lead, self.agent_name))

        channel = config.channel
        if not config.has_supported_channel:
            self.log.record_skipped(lead, workflow, trigger, f'unsupported channel {channel!r}')
            return lead
        if channel == CHANNEL_EMAIL and not lead.email:
            self.log.record_skipped(lead, workflow, trigger, 'no email on file')
            return lead
        if channel == CHANNEL_SMS and not lead.phone:
            self.log.record_skipped(lead, workflow, trigger, 'no phone on file')
            return lead

        if config.delay > 0:
            logger.warning(
                "Automation \"%s\" has delay=%ss; delayed execution is not supported, sending now",
                workflow.name, config.delay,
            )

        logger.info("Executing \"%s\" for lead %s via %s", workflow.name, lead.id, channel)
        result = self._send(lead, channel, message)

        if result.success:
            self.log.record_sent(lead, workflow, trigger, channel, payload)
        else:
            self.log.record_send_failed(lead, workflow, trigger, channel, result.error)
        return lead

    # ── Enrichment ────────────────────────────────────────────────────

    def _enrichment_blocker(self, lead: LeadSnapshot, depth: int) -> Optional[str]:
        """Why enrichment must not run for this lead right now, or None."""
        if depth >= self.max_enrichment_depth:
            return f'depth {depth} reached the enrichment limit'
        if self.enrichment is None or not self.enrichment.is_configured():
            return 'solar enrichment not configured'
        if not lead.has_address:
            return 'no address on file'
        if lead.solar_enriched:
            return 'already enriched'
        if lead.solar_enrichment_error:
            return 'previous enrichment failed (re-arm to retry)'
        return None

    def _maybe_enrich(self, lead: LeadSnapshot, depth: int) -> LeadSnapshot:
        blocker = self._enrichment_blocker(lead, depth)
        if blocker:
            logger.debug("Solar enrichment skipped for lead %s: %s", lead.id, blocker)
            return lead

        logger.info("Triggering solar enrichment for lead %s", lead.id)
        try:
            result = self.enrichment.enrich(lead.address)
        except EnrichmentError as e:
            return self._enrichment_failed(lead, e, f"{e.kind}: {e}")
        except Exception as e:
            logger.error("Unexpected solar enrichment error for lead %s", lead.id, exc_info=True)
            return self._enrichment_failed(lead, e, f"unexpected: {e}")

        fields = result.lead_fields()
        try:
            self.store.update_lead_enrichment(lead.id, fields)
            self.store.create_site_survey(lead.id, result.survey)
            self.log.record_enrichment(lead.id, result)
        except Exception as e:
            # mark_enrichment_failed also clears solar_enriched, so the lead stays re-armable
            logger.error("Could not store solar enrichment for lead %s", lead.id, exc_info=True)
            return self._enrichment_failed(lead, e, f"write_failed: {e}")

        lead = replace(
            lead,
            solar_enriched=True,
            solar_enriched_at=datetime.now(timezone.utc),
            solar_enrichment_error=None,
            **fields,
        )

        self._dispatch(lead.id, TRIGGER_SOLAR_ANALYZED, result.payload(), depth + 1)
        return lead

    def _enrichment_failed(self, lead, error, marker):
        self.log.record_enrichment_failed(lead.id, error)
        self.store.mark_enrichment_failed(lead.id, marker)
        # Rendering keeps the "pending" display state; only the marker changes in memory.
        return replace(lead, solar_enrichment_error=marker)

    # ── Send ──────────────────────────────────────────────────────────

    def _send(self, lead, channel, message) -> SendResult:
        try:
            result = self.sender.send(lead.id, channel, message)
        except Exception as e:
            logger.error("Message sender raised for lead %s", lead.id, exc_info=True)
            return SendResult(success=False, error=str(e))
        if result is None:
            return SendResult(success=False, error='sender returned no result')
        return result
