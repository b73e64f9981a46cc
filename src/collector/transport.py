"""
Delivery channels for signal batches.

Two channels with different guarantees:

- ``send_beacon``: fire-and-forget, suited to page teardown. The batch is
  handed to a background sender and no response is observed.
- ``post``: an awaited request whose completion the caller can wait on.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict

import aiohttp
import requests

from src.utils.constants import CollectorConstants, HTTPConstants
from src.utils.logger import logger


class SignalTransport(ABC):
    """Sends ``{"signals": [...]}`` payloads to the ingestion endpoint."""

    @abstractmethod
    def send_beacon(self, payload: Dict[str, Any]) -> bool:
        """Hand off payload without waiting; returns whether it was queued."""

    @abstractmethod
    async def post(self, payload: Dict[str, Any]) -> None:
        """Send payload and return when the request completes. Never raises."""


class HttpSignalTransport(SignalTransport):
    """HTTP transport to the ``/api/track-signals`` endpoint."""

    def __init__(
        self,
        api_base: str = CollectorConstants.DEFAULT_API_BASE,
        beacon_timeout: float = HTTPConstants.BEACON_TIMEOUT,
    ):
        self.url = f"{api_base.rstrip('/')}{CollectorConstants.SIGNALS_ENDPOINT}"
        self.beacon_timeout = beacon_timeout

    def send_beacon(self, payload: Dict[str, Any]) -> bool:
        try:
            sender = threading.Thread(
                target=self._beacon_post, args=(payload,), name="signal-beacon", daemon=True
            )
            sender.start()
        except RuntimeError as e:
            logger.error(f"Could not queue signal beacon: {e}")
            return False
        return True

    def _beacon_post(self, payload: Dict[str, Any]) -> None:
        try:
            requests.post(self.url, json=payload, timeout=self.beacon_timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"Signal beacon lost: {e}")

    async def post(self, payload: Dict[str, Any]) -> None:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.url, json=payload) as response:
                    logger.info(f"Signals flushed via POST: {response.status}")
        except aiohttp.ClientError as e:
            logger.error(f"Failed to flush signals: {e}")
