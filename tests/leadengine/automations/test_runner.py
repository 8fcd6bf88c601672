"""Tests for leadengine.automations.runner — RQ wiring."""
from unittest.mock import MagicMock, patch

import leadengine.automations.runner as runner
from leadengine.automations.dispatcher import AutomationDispatcher
from leadengine.services.db import SqlAlchemyLeadStore
from leadengine.services.messaging import WebhookMessageSender
from leadengine.services.solar import SolarEnrichmentService


class TestEnqueue:

    def test_enqueues_job_with_timeout(self):
        queue = MagicMock()
        queue.enqueue.return_value = MagicMock(id='job-123')
        with patch.object(runner, '_get_queue', return_value=queue):
            job_id = runner.enqueue_automations('lead-1', 'lead.created', {'source': 'form'})

        assert job_id == 'job-123'
        queue.enqueue.assert_called_once_with(
            runner.run_automations_job, 'lead-1', 'lead.created', {'source': 'form'},
            job_timeout=runner.AUTOMATION_JOB_TIMEOUT,
        )

    def test_queue_is_lazy(self):
        with patch.object(runner, '_queue', None), \
             patch('rq.Queue') as mock_queue:
            q1 = runner._get_queue()
            q2 = runner._get_queue()
        assert q1 is q2
        mock_queue.assert_called_once()
        assert mock_queue.call_args[0][0] == 'automations'


class TestRunJob:

    def test_job_runs_dispatcher(self):
        dispatcher = MagicMock()
        with patch.object(runner, 'build_dispatcher', return_value=dispatcher):
            runner.run_automations_job('lead-1', 'lead.replied', None)
        dispatcher.run_automations.assert_called_once_with('lead-1', 'lead.replied', None)


class TestBuildDispatcher:

    def test_wires_production_collaborators(self, fake_redis):
        with patch('leadengine.extensions.redis_client', fake_redis):
            dispatcher = runner.build_dispatcher()

        assert isinstance(dispatcher, AutomationDispatcher)
        assert isinstance(dispatcher.store, SqlAlchemyLeadStore)
        assert isinstance(dispatcher.sender, WebhookMessageSender)
        assert isinstance(dispatcher.enrichment, SolarEnrichmentService)
        assert dispatcher.log.redis is fake_redis
        assert dispatcher.enrichment.solar_breaker.name == 'google_solar'
        assert dispatcher.sender.breaker.name == 'messaging'

    def test_end_to_end_with_sql_store(self, make_lead, make_automation, db_session):
        from leadengine.models.lead_event import LeadEvent

        lead = make_lead()
        make_automation()
        sender = MagicMock()
        sender.send.return_value = MagicMock(success=True, error=None)

        with patch.object(runner, 'build_dispatcher',
                          side_effect=lambda: AutomationDispatcher(SqlAlchemyLeadStore(), sender)):
            runner.run_automations(lead.id, 'lead.created')

        sender.send.assert_called_once_with(lead.id, 'email', 'Hi Jamie Rivera, thanks for reaching out!')
        events = db_session.query(LeadEvent).filter_by(lead_id=lead.id).all()
        assert [e.type for e in events] == ['NOTE_ADDED']
