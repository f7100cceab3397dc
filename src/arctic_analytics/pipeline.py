"""UploadPipeline — signs a closed session document and dispatches it."""

from __future__ import annotations

import concurrent.futures
import hashlib
import hmac
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from arctic_analytics.config import SECRET_KEY, SERVER_KEY, SETTINGS_SECTION
from arctic_analytics.storage import DocumentStore
from arctic_analytics.transport import Dispatcher
from arctic_analytics.types import ConfigSource, Outcome, Uploader

logger = logging.getLogger(__name__)

USER_AGENT = "arctic-analytics/0.1.0"
SIGNATURE_LENGTH = 64


def compute_signature(secret: str | bytes, body: bytes) -> str:
    """HMAC-SHA256 of *body* keyed by *secret*, as lowercase hex."""
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    return hmac.new(key, body, hashlib.sha256).hexdigest()


def verify_signature(secret: str | bytes, body: bytes, signature: str) -> bool:
    """Check an Authorization token against *body* in constant time."""
    return hmac.compare_digest(compute_signature(secret, body), signature.strip().lower())


@dataclass
class UploadOutcome:
    """Result of one upload attempt for a closed document."""

    outcome: Outcome
    reason: str | None = None
    url: str | None = None
    signature: str | None = None
    body_size: int = 0
    future: concurrent.futures.Future | None = None

    @property
    def dispatched(self) -> bool:
        return self.future is not None


class UploadPipeline:
    """Delivers one finished document to the configured collector.

    Runs exactly once per ended session. The request itself is handed to
    the dispatcher and never awaited here; retries and response handling
    belong to the uploader.
    """

    def __init__(
        self,
        config: ConfigSource,
        uploader: Uploader,
        dispatcher: Dispatcher,
        *,
        secret_provider: Callable[[], str | None] | None = None,
        user_agent: str = USER_AGENT,
        section: str = SETTINGS_SECTION,
    ) -> None:
        self._config = config
        self._uploader = uploader
        self._dispatcher = dispatcher
        self._secret_provider = secret_provider
        self._user_agent = user_agent
        self._section = section

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def _secret(self) -> str | None:
        if self._secret_provider is not None:
            secret = self._secret_provider()
            if secret:
                return secret
        return self._config.get(self._section, SECRET_KEY)

    def build_headers(self, signature: str) -> dict[str, str]:
        return {
            "User-Agent": self._user_agent,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": signature,
        }

    def run(
        self,
        store: DocumentStore,
        name: str,
        cancel: threading.Event | None = None,
    ) -> UploadOutcome:
        """Sign and dispatch the closed document ``name`` from ``store``."""
        # 1. Collector settings
        server = self._config.get(self._section, SERVER_KEY)
        if not server:
            return UploadOutcome(Outcome.CONFIG_MISSING, reason="Server not configured! Can't send data to server.")
        secret = self._secret()
        if not secret:
            return UploadOutcome(Outcome.CONFIG_MISSING, reason="Secret not configured! Can't send data to server.")

        # 2. Exact bytes on disk
        try:
            body = store.read_bytes(name)
        except OSError as e:
            return UploadOutcome(
                Outcome.STORAGE_READ_FAILURE,
                reason=f"Session could not be loaded! Can't send data to server. ({e})",
                url=server,
            )

        # 3. Authorization token
        signature = compute_signature(secret, body)

        # 4. Fire and forget
        headers = self.build_headers(signature)
        future = self._dispatcher.submit(self._uploader.post(server, headers, body), cancel)
        logger.info("Dispatched document '%s' (%d bytes) to %s", name, len(body), server)

        return UploadOutcome(
            Outcome.OK,
            url=server,
            signature=signature,
            body_size=len(body),
            future=future,
        )
