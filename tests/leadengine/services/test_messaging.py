"""Tests for leadengine.services.messaging — webhook message sender."""
from unittest.mock import MagicMock

import pytest
import requests

from leadengine.services.circuit_breaker import CircuitBreaker, OPEN
from leadengine.services.messaging import WebhookMessageSender

WEBHOOK = 'https://hooks.example.com/messages'


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def sender(http):
    return WebhookMessageSender(webhook_url=WEBHOOK, api_key='secret', session=http, timeout=3)


class TestSend:

    def test_posts_message(self, sender, http, response_factory):
        http.post.return_value = response_factory(202, {'queued': True})
        result = sender.send('lead-1', 'sms', 'Hi Jamie')

        assert result.success is True
        assert result.error is None
        http.post.assert_called_once_with(
            WEBHOOK,
            json={'leadId': 'lead-1', 'channel': 'sms', 'body': 'Hi Jamie'},
            headers={'Content-Type': 'application/json', 'Authorization': 'Bearer secret'},
            timeout=3,
        )

    def test_no_auth_header_without_key(self, http, response_factory):
        http.post.return_value = response_factory(200)
        WebhookMessageSender(webhook_url=WEBHOOK, api_key=None, session=http).send('lead-1', 'email', 'x')
        assert 'Authorization' not in http.post.call_args.kwargs['headers']

    def test_rejected_with_error_body(self, sender, http, response_factory):
        http.post.return_value = response_factory(422, {'error': 'invalid phone number'})
        result = sender.send('lead-1', 'sms', 'Hi')
        assert result.success is False
        assert result.error == 'invalid phone number'

    def test_rejected_without_json(self, sender, http, response_factory):
        http.post.return_value = response_factory(503, ValueError('no json'), text='Service Unavailable')
        result = sender.send('lead-1', 'email', 'Hi')
        assert result.success is False
        assert result.error == 'HTTP 503: Service Unavailable'

    def test_transport_error_is_failure(self, sender, http):
        http.post.side_effect = requests.exceptions.ConnectionError('refused')
        result = sender.send('lead-1', 'email', 'Hi')
        assert result.success is False
        assert 'refused' in result.error

    def test_unconfigured(self, http):
        sender = WebhookMessageSender(webhook_url='', session=http)
        sender.webhook_url = None
        result = sender.send('lead-1', 'email', 'Hi')
        assert result.success is False
        http.post.assert_not_called()

    def test_unsupported_channel(self, sender, http):
        assert sender.send('lead-1', 'fax', 'Hi').success is False
        http.post.assert_not_called()

    def test_empty_body(self, sender, http):
        assert sender.send('lead-1', 'email', '').success is False
        http.post.assert_not_called()

    def test_open_breaker(self, http, fake_redis):
        breaker = CircuitBreaker('messaging', fake_redis, failure_threshold=5, reset_timeout=60)
        fake_redis.set('cb:messaging:state', OPEN)
        fake_redis.set('cb:messaging:last_failure', '9999999999')
        sender = WebhookMessageSender(webhook_url=WEBHOOK, session=http, breaker=breaker)

        result = sender.send('lead-1', 'email', 'Hi')

        assert result.success is False
        assert 'OPEN' in result.error
        http.post.assert_not_called()
