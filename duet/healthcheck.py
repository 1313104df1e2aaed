"""Provider health checks: ping each tier before answering."""

import asyncio
import logging

from duet.models import GenerationOptions
from duet.providers.base import GenerationClient

logger = logging.getLogger(__name__)

_PING = "Say OK and nothing else."
_PING_OPTIONS = GenerationOptions(temperature=0.0, max_tokens=5)
_TIMEOUT_SEC = 15.0


async def _ping(tier: str, client: GenerationClient) -> tuple[str, bool, str]:
    """Returns (tier, ok, error_message) for one client."""
    try:
        result = await asyncio.wait_for(client.generate(_PING, options=_PING_OPTIONS), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        error = f"no reply within {_TIMEOUT_SEC}s"
    except Exception as exc:
        error = str(exc)
    else:
        if result.ok:
            logger.debug("Tier %s healthy (%.2fs via %s)", tier, result.latency_sec, result.model)
            return tier, True, ""
        error = result.reason.value if result.reason else "unknown"

    logger.debug("Tier %s failed its health check: %s", tier, error)
    return tier, False, error


async def run_health_checks(
    clients: dict[str, GenerationClient],
) -> dict[str, tuple[bool, str]]:
    """Ping every tier concurrently.

    Returns:
        Dict mapping tier name -> (ok, error_message); the message is ""
        for healthy tiers.
    """
    pings = await asyncio.gather(*(_ping(tier, client) for tier, client in clients.items()))
    return {tier: (ok, error) for tier, ok, error in pings}
