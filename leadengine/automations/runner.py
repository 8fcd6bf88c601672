"""
Automation runner — wires the production dispatcher and runs it on RQ.

Event producers (lead intake, inbound reply webhooks, cron) call
enqueue_automations() and move on; the RQ worker executes
run_automations_job().
"""
import logging

from leadengine.automations.dispatcher import AutomationDispatcher
from leadengine.automations.execution_log import ExecutionLog
from leadengine.config import AUTOMATION_JOB_TIMEOUT

logger = logging.getLogger('automations.runner')


# ── Lazy RQ queue (no Redis connection at import time) ────────────────────

_queue = None


def _get_queue():
    global _queue
    if _queue is None:
        from leadengine.extensions import redis_client
        from rq import Queue
        _queue = Queue('automations', connection=redis_client)
    return _queue


def build_dispatcher() -> AutomationDispatcher:
    """Dispatcher with the SQL store, webhook sender and Google Solar client."""
    from leadengine.extensions import redis_client
    from leadengine.services.circuit_breaker import get_breaker
    from leadengine.services.db import SqlAlchemyLeadStore
    from leadengine.services.messaging import WebhookMessageSender
    from leadengine.services.solar import SolarEnrichmentService

    store = SqlAlchemyLeadStore()
    return AutomationDispatcher(
        store=store,
        sender=WebhookMessageSender(breaker=get_breaker('messaging')),
        enrichment=SolarEnrichmentService(
            geocode_breaker=get_breaker('google_geocoding'),
            solar_breaker=get_breaker('google_solar'),
        ),
        execution_log=ExecutionLog(store, redis_client=redis_client),
    )


def run_automations(lead_id, trigger, payload=None):
    """Synchronous entry point. Never raises."""
    build_dispatcher().run_automations(lead_id, trigger, payload)


def run_automations_job(lead_id, trigger, payload=None):
    """RQ job body."""
    logger.info("Automation job started: lead=%s trigger=%s", lead_id, trigger)
    run_automations(lead_id, trigger, payload)


def enqueue_automations(lead_id, trigger, payload=None):
    """Queue a dispatch in the background. Returns the RQ job id."""
    job = _get_queue().enqueue(
        run_automations_job, lead_id, trigger, payload,
        job_timeout=AUTOMATION_JOB_TIMEOUT,
    )
    logger.info("Queued automations for lead %s (trigger=%s, job=%s)", lead_id, trigger, job.id)
    return job.id
