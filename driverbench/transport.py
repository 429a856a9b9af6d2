# driverbench/transport.py
# HTTP-Transport zum Drivers-Endpunkt: ein POST pro Probe, Latenzmessung, Fehler → synthetische Antwort
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from typing import Any

import httpx

from .errors import ConfigError
from .models import Driver, Envelope

logger = logging.getLogger(__name__)

DRIVERS_URL = "https://api.puter.com/drivers/call"
PUTER_ORIGIN = "https://puter.com"
CANCELLED_MESSAGE = "cancelled"


def failure_response(message: str) -> dict[str, Any]:
    """Synthetische Fehlerantwort im Format des Servers (success=false)."""
    return {"success": False, "error": {"message": message}}


class DriversTransport:
    """
    Async-Transport für POST /drivers/call.

    Der Bearer-Credential gilt für die Dauer eines Harness-Laufs.
    Kein Retry, kein internes Timeout: Netzwerk- und Decodierfehler werden
    als success=false-Antwort zurückgegeben, nicht geworfen.
    """

    def __init__(
        self,
        credential: str,
        url: str = DRIVERS_URL,
        origin: str = PUTER_ORIGIN,
        timeout: float | None = None,
    ) -> None:
        if not credential or not credential.strip():
            raise ConfigError("Bearer-Credential fehlt")
        # HTTP-Header sind ASCII
        if not credential.isascii():
            raise ConfigError("Bearer-Credential enthält Nicht-ASCII-Zeichen")
        self._credential = credential
        self._url = url
        self._origin = origin
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Async HTTP-Client erstellen (eine Verbindung pro Lauf reicht, alles sequenziell)."""
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))

    async def shutdown(self) -> None:
        """HTTP-Client ordnungsgemäß schließen."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> DriversTransport:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    def _headers(self) -> dict[str, str]:
        """JSON-Content-Type, Origin-Marker und Bearer-Authentifizierung."""
        return {
            "Content-Type": "application/json",
            "Origin": self._origin,
            "Authorization": f"Bearer {self._credential}",
        }

    async def _post_and_decode(self, payload: dict[str, Any]) -> Any:
        assert self._client is not None, "Transport nicht initialisiert, initialize() aufrufen"
        response = await self._client.post(self._url, headers=self._headers(), json=payload)
        # Statuscode wird nicht geprüft: der Endpunkt meldet Fehler im Body
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return failure_response(f"Ungültige JSON-Antwort: {exc}")

    async def _post_cancellable(
        self, payload: dict[str, Any], cancel_event: asyncio.Event
    ) -> Any:
        """Request gegen ein externes Abbruchsignal laufen lassen."""
        request_task = asyncio.ensure_future(self._post_and_decode(payload))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not request_task.done():
                request_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await request_task
        if request_task.cancelled():
            return failure_response(CANCELLED_MESSAGE)
        return request_task.result()

    async def post(
        self, envelope: Envelope, cancel_event: asyncio.Event | None = None
    ) -> tuple[dict[str, Any], int]:
        """
        Envelope senden. Gibt (decodierter Body, latency_ms) zurück.
        Latenz = vom Absenden bis der Body vollständig decodiert ist.
        """
        payload = envelope.to_payload()
        if cancel_event is not None and cancel_event.is_set():
            return failure_response(CANCELLED_MESSAGE), 0

        logger.debug("POST %s driver=%s model=%s", self._url, envelope.driver.value, envelope.args.model)
        start = time.monotonic()
        try:
            if cancel_event is None:
                body = await self._post_and_decode(payload)
            else:
                body = await self._post_cancellable(payload, cancel_event)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            body = failure_response(f"{type(exc).__name__}: {exc}")
        latency_ms = max(0, round((time.monotonic() - start) * 1000))

        if not isinstance(body, dict):
            body = failure_response(f"Unerwarteter Antwort-Body: {type(body).__name__}")
        if not body.get("success"):
            logger.warning(
                "Probe fehlgeschlagen: driver=%s model=%s error=%s",
                envelope.driver.value,
                envelope.args.model,
                body.get("error"),
            )
        return body, latency_ms

    async def send(
        self,
        model: str,
        driver: Driver,
        prompt: str,
        cancel_event: asyncio.Event | None = None,
    ) -> tuple[dict[str, Any], int]:
        """Envelope für (driver, model, prompt) bauen und senden."""
        return await self.post(Envelope.build(driver, model, prompt), cancel_event)
