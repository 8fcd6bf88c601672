"""
Outbound messaging — hands rendered automation messages to the delivery webhook.

Transport (Twilio SMS, email provider) lives behind MESSAGING_WEBHOOK_URL.
Failures are returned as SendResult, never raised.
"""
import logging

import requests

from leadengine.automations.base import MessageSender, SendResult
from leadengine.config import (
    CHANNELS, MESSAGING_WEBHOOK_URL, MESSAGING_API_KEY, MESSAGING_TIMEOUT_SECONDS,
)
from leadengine.services.circuit_breaker import CircuitOpenError

logger = logging.getLogger('services.messaging')


class WebhookMessageSender(MessageSender):
    """POSTs {leadId, channel, body} to the messaging webhook."""

    def __init__(self, webhook_url=None, api_key=None, session=None,
                 timeout=MESSAGING_TIMEOUT_SECONDS, breaker=None):
        self.webhook_url = webhook_url or MESSAGING_WEBHOOK_URL
        self.api_key = api_key or MESSAGING_API_KEY
        self.http = session or requests.Session()
        self.timeout = timeout
        self.breaker = breaker

    def send(self, lead_id, channel, body):
        if not self.webhook_url:
            return SendResult(success=False, error='MESSAGING_WEBHOOK_URL not configured')
        if channel not in CHANNELS:
            return SendResult(success=False, error=f'Unsupported channel: {channel}')
        if not body:
            return SendResult(success=False, error='Empty message body')

        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        payload = {'leadId': lead_id, 'channel': channel, 'body': body}

        try:
            if self.breaker is not None:
                response = self.breaker.call(
                    self.http.post, self.webhook_url, json=payload, headers=headers, timeout=self.timeout,
                )
            else:
                response = self.http.post(self.webhook_url, json=payload, headers=headers, timeout=self.timeout)
        except CircuitOpenError as e:
            return SendResult(success=False, error=str(e))
        except requests.exceptions.RequestException as e:
            logger.error("Messaging webhook error for lead %s: %s", lead_id, e)
            return SendResult(success=False, error=str(e))

        if 200 <= response.status_code < 300:
            logger.info("Queued %s for lead %s (HTTP %d)", channel, lead_id, response.status_code)
            return SendResult(success=True)

        error = _error_message(response)
        logger.warning("Messaging webhook rejected %s for lead %s: %s", channel, lead_id, error)
        return SendResult(success=False, error=error)


def _error_message(response):
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get('error'):
        return str(data['error'])
    return f"HTTP {response.status_code}: {(response.text or '')[:200]}"
