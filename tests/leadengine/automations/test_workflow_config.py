"""Tests for leadengine.automations.base — config parsing and analysis snapshot."""
from leadengine.automations.base import (
    Actions, Conditions, LeadEventRecord, LeadSnapshot, WorkflowConfig, derive_analysis,
)


class TestWorkflowConfig:

    def test_defaults_for_missing_config(self):
        config = WorkflowConfig.from_dict(None)
        assert config.channel == 'email'
        assert config.delay == 0
        assert config.conditions is None
        assert config.actions == Actions()

    def test_parses_full_config(self):
        config = WorkflowConfig.from_dict({
            'channel': 'SMS',
            'delay': 300,
            'conditions': {'minScore': 70, 'intentIn': ['Purchase']},
            'actions': {'enrichSolar': True},
        })
        assert config.channel == 'sms'
        assert config.delay == 300
        assert config.conditions.min_score == 70
        assert config.conditions.intent_in == ('Purchase',)
        assert config.actions.enrich_solar is True
        assert config.actions.notify_on_viable is False

    def test_negative_delay_clamped(self):
        assert WorkflowConfig.from_dict({'delay': -5}).delay == 0

    def test_unknown_channel_kept_but_unsupported(self):
        config = WorkflowConfig.from_dict({'channel': 'fax'})
        assert config.channel == 'fax'
        assert config.has_supported_channel is False

    def test_unknown_keys_ignored(self):
        config = WorkflowConfig.from_dict({'channel': 'email', 'color': 'blue'})
        assert config.has_supported_channel is True


class TestConditionsParsing:

    def test_non_dict_is_absent(self):
        assert Conditions.from_dict('nope') is None

    def test_non_bool_solar_enriched_ignored(self):
        assert Conditions.from_dict({'solarEnriched': 'yes'}).solar_enriched is None

    def test_numeric_strings_accepted(self):
        assert Conditions.from_dict({'minScore': '42'}).min_score == 42.0

    def test_single_string_allow_list(self):
        assert Conditions.from_dict({'stageIn': 'NEW'}).stage_in == ('NEW',)

    def test_is_empty(self):
        assert Conditions.from_dict({}).is_empty is True
        assert Conditions.from_dict({'maxScore': 10}).is_empty is False


class TestDeriveAnalysis:

    def _lead(self, events, **overrides):
        defaults = dict(id='lead-1', tenant_id='tenant-1', recent_events=tuple(events))
        defaults.update(overrides)
        return LeadSnapshot(**defaults)

    def test_none_without_analysis_events(self):
        lead = self._lead([LeadEventRecord(type='NOTE_ADDED', metadata={'automationId': 'a1'})])
        assert derive_analysis(lead) is None

    def test_uses_most_recent_analysis_event(self):
        lead = self._lead([
            LeadEventRecord(type='NOTE_ADDED', metadata={}),
            LeadEventRecord(type='EMAIL_RECEIVED', metadata={'intent': 'Purchase', 'score': 88}),
            LeadEventRecord(type='EMAIL_RECEIVED', metadata={'intent': 'Info', 'score': 20}),
        ])
        analysis = derive_analysis(lead)
        assert analysis.intent == 'Purchase'
        assert analysis.score == 88

    def test_missing_fields_fall_back_to_lead_then_defaults(self):
        lead = self._lead(
            [LeadEventRecord(type='SMS_RECEIVED', metadata={'score': 65})],
            intent='Support',
        )
        analysis = derive_analysis(lead)
        assert analysis.score == 65
        assert analysis.intent == 'Support'
        assert analysis.sentiment == 'Neutral'

    def test_intent_only_event_uses_default_score(self):
        lead = self._lead([LeadEventRecord(type='FORM_SUBMIT', metadata={'intent': 'Quote'})])
        analysis = derive_analysis(lead)
        assert analysis.intent == 'Quote'
        assert analysis.score == 50
