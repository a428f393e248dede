# contentcore/services/revalidation_service.py
# Webhook de revalidación (ISR/CDN): POST firmado con HMAC, reintentos con backoff
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import httpx

from contentcore.core.settings import Settings, settings as default_settings

log = logging.getLogger(__name__)


class RevalidationError(RuntimeError):
    pass


def sign(secret: str, timestamp: str, body_bytes: bytes) -> str:
    # Firma: SHA256-HMAC sobre "<ts>." + body
    msg = (timestamp + ".").encode("utf-8") + body_bytes
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


class WebhookRevalidator:
    def __init__(
        self,
        url: str,
        *,
        secret: Optional[str] = None,
        timeout: float = 3.0,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = backoff_seconds
        self._transport = transport
        self._sleep = sleep

    def _payload(self, paths: list[str]) -> tuple[bytes, Dict[str, str]]:
        ts_iso = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        # Cuerpo (estable, sin espacios)
        body = json.dumps(
            {"paths": list(paths), "timestamp": ts_iso}, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
        ts = str(int(time.time()))
        headers = {
            "Content-Type": "application/json",
            "X-Revalidate-Timestamp": ts,
        }
        if self.secret:
            headers["X-Revalidate-Signature"] = sign(self.secret, ts, body)
        return body, headers

    def notify(self, paths: list[str]) -> None:
        if not paths:
            return
        body, headers = self._payload(paths)
        last_error: Optional[str] = None
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    resp = client.post(self.url, content=body, headers=headers)
                    if 200 <= resp.status_code < 300:
                        log.debug("Revalidated %d path(s) (attempt %d)", len(paths), attempt)
                        return
                    last_error = f"HTTP {resp.status_code}"
                except httpx.HTTPError as exc:
                    last_error = str(exc) or exc.__class__.__name__
                if attempt < self.max_retries:
                    self._sleep(self.backoff_seconds * attempt)
        raise RevalidationError(f"Revalidation webhook failed after {self.max_retries} attempt(s): {last_error}")

    __call__ = notify


def build_revalidator(s: Settings = default_settings) -> Optional[WebhookRevalidator]:
    if not s.REVALIDATE_URL:
        return None
    return WebhookRevalidator(
        s.REVALIDATE_URL,
        secret=s.REVALIDATE_SECRET,
        timeout=s.REVALIDATE_TIMEOUT_SECONDS,
        max_retries=s.REVALIDATE_MAX_RETRIES,
        backoff_seconds=s.REVALIDATE_BACKOFF_SECONDS,
    )
