"""
Shared client instances (Redis).

redis.from_url() does not connect until the first command, so importing this
module is always safe (even when Redis is unreachable during tests).
"""
import logging
import redis

from leadengine.config import REDIS_URL, GOOGLE_SOLAR_API_KEY, MESSAGING_WEBHOOK_URL

logger = logging.getLogger('leadengine.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

if not GOOGLE_SOLAR_API_KEY:
    logger.warning("GOOGLE_SOLAR_API_KEY not set; solar enrichment will be skipped")

if not MESSAGING_WEBHOOK_URL:
    logger.warning("MESSAGING_WEBHOOK_URL not set; automation messages cannot be sent")
