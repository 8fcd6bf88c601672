"""
Health routes: liveness, circuit breaker states, automation counters.
"""
from flask import Blueprint, jsonify

from leadengine.automations.execution_log import get_stats
from leadengine.services.circuit_breaker import get_all_breakers

bp = Blueprint('health', __name__)


@bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


@bp.route('/api/health')
def api_health():
    from leadengine.extensions import redis_client

    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    return jsonify({
        'services': services,
        'automations': get_stats(redis_client),
    })


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breaker = get_all_breakers().get(service)
    if breaker is None:
        return jsonify({'error': f'Unknown service: {service}'}), 404
    breaker.reset()
    return jsonify({'ok': True, 'service': service, 'state': breaker.state})
