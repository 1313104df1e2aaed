"""Ordered fallback over generation clients (primary, then secondary)."""

import logging
from dataclasses import replace

from duet.models import GenerationOptions, GenerationResult, HistoryEntry, ReasonCode
from duet.providers.base import GenerationClient

logger = logging.getLogger(__name__)


class ProviderChain:
    """Try each client in order until one returns an ok result.

    Clients after the first get ``nudge`` appended to the system instruction,
    so a fallback tier is pushed to answer a prompt the previous tier refused.
    """

    def __init__(self, clients: list[GenerationClient]) -> None:
        if not clients:
            raise ValueError("ProviderChain needs at least one client")
        self._clients = list(clients)

    @property
    def clients(self) -> list[GenerationClient]:
        return list(self._clients)

    @property
    def primary(self) -> GenerationClient:
        return self._clients[0]

    async def generate(
        self,
        prompt: str,
        history: list[HistoryEntry] | None = None,
        options: GenerationOptions | None = None,
        nudge: str | None = None,
    ) -> tuple[GenerationResult, bool]:
        """Run the chain.

        Returns:
            (result, used_fallback). ``result`` is the first ok result or the
            last failure when every tier failed.
        """
        options = options or GenerationOptions()
        result: GenerationResult | None = None

        for tier, client in enumerate(self._clients):
            tier_options = options
            if tier > 0 and nudge:
                base = options.system_instruction or ""
                tier_options = replace(options, system_instruction=f"{base}\n\n{nudge}".strip())

            result = await client.generate(prompt, history, tier_options)
            if result.ok:
                if tier > 0:
                    logger.info("Fallback tier %s answered after %d failure(s)", client.name(), tier)
                return result, tier > 0

            reason = result.reason.value if result.reason else ReasonCode.UNAVAILABLE.value
            logger.warning("Tier %s returned no usable answer (%s)", client.name(), reason)

        if result is None:
            raise RuntimeError("ProviderChain has no clients to try")
        return result, len(self._clients) > 1
