"""
Automation routes — fire a trigger for a lead, re-arm solar enrichment.
"""
import logging

from flask import Blueprint, request, jsonify

from leadengine.automations.runner import enqueue_automations
from leadengine.services.db import SqlAlchemyLeadStore

logger = logging.getLogger('routes.automations')

bp = Blueprint('automations', __name__)


@bp.route('/api/leads/<lead_id>/automations', methods=['POST'])
def trigger_automations(lead_id):
    """Queue RunAutomations(lead_id, trigger, payload). Fire-and-continue."""
    data = request.get_json(silent=True) or {}
    trigger = data.get('trigger')
    payload = data.get('payload')

    if not isinstance(trigger, str) or not trigger.strip():
        return jsonify({'error': 'trigger is required'}), 400
    if payload is not None and not isinstance(payload, dict):
        return jsonify({'error': 'payload must be an object'}), 400

    try:
        job_id = enqueue_automations(lead_id, trigger.strip(), payload)
    except Exception as e:
        logger.error("Failed to queue automations for lead %s", lead_id, exc_info=True)
        return jsonify({'error': str(e)}), 500

    return jsonify({
        'queued': True,
        'job_id': job_id,
        'lead_id': lead_id,
        'trigger': trigger.strip(),
    }), 202


@bp.route('/api/leads/<lead_id>/solar/rearm', methods=['POST'])
def rearm_solar(lead_id):
    """Clear a failed enrichment so the next enrichSolar workflow retries it."""
    try:
        found = SqlAlchemyLeadStore().rearm_solar_enrichment(lead_id)
    except Exception as e:
        return jsonify({'error': str(e)}), 500

    if not found:
        return jsonify({'error': 'Lead not found'}), 404
    return jsonify({'ok': True, 'lead_id': lead_id})
