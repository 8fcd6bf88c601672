"""
Centralized configuration — all env vars, thresholds, trigger names.
"""
import os


def _int_env(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _float_env(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///leadengine.db')
DATABASE_POOL_SIZE = _int_env('DATABASE_POOL_SIZE', 5)
DATABASE_MAX_OVERFLOW = _int_env('DATABASE_MAX_OVERFLOW', 10)

# ── Google Maps Platform (Geocoding + Solar) ─────────────────────────────────
GOOGLE_SOLAR_API_KEY = os.getenv('GOOGLE_SOLAR_API_KEY')
GOOGLE_GEOCODING_API_KEY = os.getenv('GOOGLE_GEOCODING_API_KEY') or GOOGLE_SOLAR_API_KEY
GEOCODING_API_URL = os.getenv('GEOCODING_API_URL', 'https://maps.googleapis.com/maps/api/geocode/json')
SOLAR_API_URL = os.getenv('SOLAR_API_URL', 'https://solar.googleapis.com/v1')
ENRICHMENT_TIMEOUT_SECONDS = _float_env('ENRICHMENT_TIMEOUT_SECONDS', 8.0)

# ── Outbound messaging ───────────────────────────────────────────────────────
MESSAGING_WEBHOOK_URL = os.getenv('MESSAGING_WEBHOOK_URL')
MESSAGING_API_KEY = os.getenv('MESSAGING_API_KEY')
MESSAGING_TIMEOUT_SECONDS = _float_env('MESSAGING_TIMEOUT_SECONDS', 10.0)

# ── Automations ──────────────────────────────────────────────────────────────
AGENT_NAME = os.getenv('AGENT_NAME', 'Primus Team')
RECENT_EVENT_LIMIT = _int_env('RECENT_EVENT_LIMIT', 5)
AUTOMATION_JOB_TIMEOUT = _int_env('AUTOMATION_JOB_TIMEOUT', 600)

# Enrichment may only happen in the producer-initiated dispatch (depth 0).
# Anything above 1 would let solar.analyzed workflows enrich and recurse.
MAX_ENRICHMENT_DEPTH = min(max(_int_env('MAX_ENRICHMENT_DEPTH', 1), 0), 1)

# ── Triggers ─────────────────────────────────────────────────────────────────
TRIGGER_SOLAR_ANALYZED = 'solar.analyzed'

# ── Channels ─────────────────────────────────────────────────────────────────
CHANNEL_EMAIL = 'email'
CHANNEL_SMS = 'sms'
CHANNELS = (CHANNEL_EMAIL, CHANNEL_SMS)
DEFAULT_CHANNEL = CHANNEL_EMAIL

# ── Lead event types ─────────────────────────────────────────────────────────
LEAD_EVENT_TYPES = (
    'EMAIL_RECEIVED',
    'SMS_RECEIVED',
    'FORM_SUBMIT',
    'SOLAR_ANALYSIS',
    'NOTE_ADDED',
)

# ── Analysis defaults ────────────────────────────────────────────────────────
DEFAULT_INTENT = 'Info'
DEFAULT_SCORE = 50
DEFAULT_SENTIMENT = 'Neutral'

# ── Site suitability ─────────────────────────────────────────────────────────
VIABLE = 'VIABLE'
CHALLENGING = 'CHALLENGING'
NOT_VIABLE = 'NOT_VIABLE'
SITE_SUITABILITY_VALUES = (VIABLE, CHALLENGING, NOT_VIABLE)

VIABLE_MIN_PANELS = 10
VIABLE_MIN_SUNSHINE_HOURS = 1200
CHALLENGING_MIN_PANELS = 5
CHALLENGING_MIN_SUNSHINE_HOURS = 800

DEFAULT_PANEL_CAPACITY_W = 400

# Imagery quality tiers, in the order they are requested
QUALITY_HIGH = 'HIGH'
QUALITY_MEDIUM = 'MEDIUM'
