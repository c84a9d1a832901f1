# pricewatch/services/channel.py

"""Asynchronous request/response channels between detector and ledger."""

import copy
import logging
from typing import Any, Protocol

from pricewatch.services.ledger_service import LedgerService

logger = logging.getLogger("pricewatch.channel")


class MessageChannel(Protocol):
    """Anything that can carry one request and return its response."""

    async def send(self, message: dict[str, Any]) -> dict[str, Any]: ...


class LocalChannel:
    """In-process channel to a :class:`LedgerService`.

    Messages are deep-copied in both directions so neither side can
    share mutable state with the other.
    """

    def __init__(self, service: LedgerService) -> None:
        self.service = service

    async def send(self, message: dict[str, Any]) -> dict[str, Any]:
        logger.debug("→ %s", message.get("action"))
        response = await self.service.handle(copy.deepcopy(message))
        return copy.deepcopy(response)
