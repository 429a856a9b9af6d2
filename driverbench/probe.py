# driverbench/probe.py
# Treiber-Probe: (driver, model, prompt) → ProbeResult
from __future__ import annotations

import asyncio
import logging

from .metrics import record_probe
from .models import UNAVAILABLE_COST, ZERO_TOKENS, Driver, Envelope, ProbeResult
from .transport import DriversTransport
from .usage import extract_content, normalize_usage, usage_shape_of

logger = logging.getLogger(__name__)


class DriverProbe:
    """
    Ein Probe-Aufruf gegen einen Treiber.
    Arbeitet ausschließlich auf kanonischen Records; die Rohformate kennt nur usage.py.
    """

    def __init__(self, transport: DriversTransport) -> None:
        self._transport = transport

    async def probe(
        self,
        driver: Driver,
        model: str,
        prompt: str,
        cancel_event: asyncio.Event | None = None,
    ) -> ProbeResult:
        envelope = Envelope.build(driver, model, prompt)
        body, latency_ms = await self._transport.post(envelope, cancel_event)

        if body.get("success"):
            result = body.get("result")
            shape = usage_shape_of(result)
            tokens, cost = normalize_usage(result, shape)
            probe_result = ProbeResult(
                driver=driver,
                model=envelope.args.model,
                ok=True,
                latency_ms=latency_ms,
                content=extract_content(result),
                tokens=tokens,
                cost=cost,
                usage_shape=shape,
            )
        else:
            probe_result = ProbeResult(
                driver=driver,
                model=envelope.args.model,
                ok=False,
                latency_ms=latency_ms,
                tokens=ZERO_TOKENS,
                cost=UNAVAILABLE_COST,
                error=body.get("error"),
            )

        logger.info(
            "probe driver=%s model=%s ok=%s latency=%dms tokens=%d",
            driver.value,
            probe_result.model,
            probe_result.ok,
            latency_ms,
            probe_result.tokens.total,
        )
        record_probe(probe_result)
        return probe_result
