import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, WEBHOOK_EVENT_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete: only the claimant may release its claim
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class EventDedupService:
    """
    Remembers which provider event ids were already handled.

    This only saves work on duplicate deliveries, correctness never depends on it:
    the order status guard makes every transition idempotent anyway.
    """

    def __init__(self, url: str | None = None, ttl: int | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl or WEBHOOK_EVENT_TTL_SECONDS

    @staticmethod
    def _key(event_id: str) -> str:
        return f"payment-event:{event_id}"

    @redis_retry()
    def claim(self, event_id: str, claimant: str) -> bool:
        """SET NX EX, False when someone already claimed (or processed) this event."""
        key = self._key(event_id)
        logger.info(f"Claim {key} by {claimant}")
        return bool(self.redis.set(name=key, value=claimant, nx=True, ex=self.ttl))

    @redis_retry()
    def release(self, event_id: str, claimant: str) -> bool:
        """Drop a claim after failed processing so the provider's retry is handled again."""
        key = self._key(event_id)
        logger.info(f"Release {key} by {claimant}")
        return bool(self.redis.eval(_RELEASE_LUA, 1, key, claimant))
