"""
Logging setup for the web app and the RQ worker.

LOG_FORMAT=text (default) is for humans; LOG_FORMAT=json emits one object per
line for the log aggregator. Automation log calls attach lead context through
`extra=` (see automation_context); both formats render it.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

# LogRecord attributes carried by automation log calls
CONTEXT_FIELDS = ('lead_id', 'tenant_id', 'trigger', 'automation_id', 'outcome')

_NOISY_LOGGERS = (
    'urllib3',
    'requests',
    'redis',
    'rq.worker',
    'sqlalchemy.engine',
)


def automation_context(lead_id=None, trigger=None, automation_id=None, outcome=None, tenant_id=None):
    """Build the `extra=` dict for a log call; None values are dropped."""
    values = {
        'lead_id': lead_id,
        'tenant_id': tenant_id,
        'trigger': trigger,
        'automation_id': automation_id,
        'outcome': outcome,
    }
    return {k: v for k, v in values.items() if v is not None}


def _record_context(record):
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if getattr(record, name, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, context fields at the top level."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(_record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """`[time] LEVEL logger: message {lead_id=… trigger=…}`"""

    def __init__(self):
        super().__init__('[%(asctime)s] %(levelname)s %(name)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S')

    def format(self, record):
        line = super().format(record)
        context = _record_context(record)
        if not context:
            return line
        rendered = ' '.join(f'{k}={v}' for k, v in context.items())
        head, sep, tail = line.partition('\n')
        return f'{head} {{{rendered}}}{sep}{tail}'


def _resolve_level(name):
    level = getattr(logging, (name or 'INFO').upper(), logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Replace the root handlers with a single stderr handler.

    Environment variables (read at call time):
        LOG_LEVEL   Python level name, default INFO
        LOG_FORMAT  "text" or "json"

    With a Flask app, app.logger is routed through the root handler too.
    """
    level = _resolve_level(os.getenv('LOG_LEVEL', 'INFO'))
    use_json = os.getenv('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.propagate = True

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
