"""Client side of the relay: the web app pushes live events through it."""

import logging
from typing import Any, Dict, Optional

import requests

from config.settings import settings

logger = logging.getLogger("live.publisher")


class RelayPublisher:
    """
    Posts events to the relay's /broadcast endpoint.

    Publishing is best-effort: failures are logged and reported as False,
    never raised.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        secret: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
    ):
        self.url = (url if url is not None else settings.relay_url or "").rstrip("/")
        self.secret = secret if secret is not None else settings.relay_secret
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def publish(self, channel: Optional[str], event: Dict[str, Any]) -> bool:
        """
        Send `event` to `channel` (or to every client when channel is None).

        Returns:
            True if the relay accepted it
        """
        if not self.enabled:
            logger.debug(f"Relay not configured, dropping event for {channel}")
            return False

        headers = {"X-Relay-Secret": self.secret} if self.secret else {}
        try:
            response = self.session.post(
                f"{self.url}/broadcast",
                json={"channel": channel, "event": event},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Failed to publish to {channel}: {e}")
            return False
        return True
