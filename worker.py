"""
RQ worker entry point — executes queued automation dispatches.

    python worker.py
"""
from rq import Worker

from leadengine.extensions import redis_client
from leadengine.logging_config import configure_logging
from leadengine.services.circuit_breaker import init_breakers


def main():
    configure_logging()
    init_breakers(redis_client)
    Worker(['automations'], connection=redis_client).work()


if __name__ == '__main__':
    main()
