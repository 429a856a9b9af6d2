# driverbench/harness.py
# Vergleichs-Harness: Modell-Paare sequenziell gegen beide Treiber proben,
# Mittelwerte bilden, Empfehlung ableiten. Dazu der Such-Probe-Lauf (nur Aggregator).
from __future__ import annotations

import asyncio
import logging
import math
import statistics
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from enum import Enum

from pydantic import BaseModel

from .errors import ConfigError
from .models import Driver, DriverSummary, ModelPair, ProbeResult, SearchModel
from .probe import DriverProbe
from .report import ReportSink, format_cost, format_nano_usd, preview
from .transport import DriversTransport

logger = logging.getLogger(__name__)

# Nativer Treiber gilt erst als "schneller", wenn er < 80% der Aggregator-Latenz braucht
FASTER_RATIO = 0.8


class Recommendation(str, Enum):
    """Ergebnis der deterministischen Empfehlungsregel."""

    AVAILABILITY = "availability"
    NATIVE_FASTER = "native_faster"
    CONSISTENCY = "consistency"


RECOMMENDATION_LINES: dict[Recommendation, tuple[str, ...]] = {
    Recommendation.AVAILABILITY: (
        "→ Use OpenRouter for better model availability",
        "→ Claude driver doesn't report usage costs (may still be billed)",
    ),
    Recommendation.NATIVE_FASTER: (
        "→ Claude driver is faster, but OpenRouter has more models + cost visibility",
    ),
    Recommendation.CONSISTENCY: (
        "→ OpenRouter recommended for consistency, model variety, and cost tracking",
    ),
}


class ComparisonReport(BaseModel):
    """Gesamtergebnis eines Vergleichslaufs."""

    pairs: list[ModelPair]
    native_results: list[ProbeResult]
    aggregator_results: list[ProbeResult]
    native_summary: DriverSummary
    aggregator_summary: DriverSummary
    recommendation: Recommendation
    rows: list[str]


# ── Konfigurationsprüfung ──────────────────────────────────────────────────────

def _check_config(credential: str, items: list, what: str) -> None:
    """Fehlender Credential oder leere Liste → ConfigError vor dem ersten Request."""
    if not credential or not credential.strip():
        raise ConfigError("Bearer-Credential fehlt")
    if not items:
        raise ConfigError(f"Keine {what} angegeben")


@asynccontextmanager
async def _transport_scope(
    credential: str, transport: DriversTransport | None
) -> AsyncIterator[DriversTransport]:
    """Übergebenen Transport nutzen oder einen eigenen für die Dauer des Laufs öffnen."""
    if transport is not None:
        yield transport
        return
    async with DriversTransport(credential) as own:
        yield own


# ── Aggregation ───────────────────────────────────────────────────────────────

def _rounded_mean(values: list[int]) -> int | None:
    # .5 wird aufgerundet (nicht banker's rounding)
    return math.floor(statistics.mean(values) + 0.5) if values else None


def summarize_driver(
    driver: Driver, results: list[ProbeResult], pair_count: int
) -> DriverSummary:
    """
    Statistiken eines Treibers aggregieren.

    Latenz und Token: Mittel über erfolgreiche Probes.
    Kosten: Mittel nur über Probes mit verfügbaren Kosten, sonst None,
    niemals 0.
    """
    successful = [r for r in results if r.ok]
    costs = [r.cost.total for r in successful if r.cost.available]
    return DriverSummary(
        driver=driver,
        sample_count=pair_count,
        success_count=len(successful),
        mean_latency_ms=_rounded_mean([r.latency_ms for r in successful]),
        mean_tokens=_rounded_mean([r.tokens.total for r in successful]),
        mean_cost_nano=_rounded_mean(costs),
    )


def recommend(native: DriverSummary, aggregator: DriverSummary) -> Recommendation:
    """
    Empfehlungsregel:
      1. Nativ hat weniger Erfolge als Aggregator     → AVAILABILITY
      2. Nativ ≥1 Erfolg und < 0.8 × Aggregator-Latenz → NATIVE_FASTER
      3. sonst                                        → CONSISTENCY
    """
    if native.success_count < aggregator.success_count:
        return Recommendation.AVAILABILITY
    if (
        native.success_count >= 1
        and native.mean_latency_ms is not None
        and aggregator.mean_latency_ms is not None
        and native.mean_latency_ms < FASTER_RATIO * aggregator.mean_latency_ms
    ):
        return Recommendation.NATIVE_FASTER
    return Recommendation.CONSISTENCY


def cost_breakdown(pairs: list[ModelPair], results: list[ProbeResult]) -> list[str]:
    """Kostenaufschlüsselung pro Paar (nur Probes mit verfügbaren Kosten)."""
    lines = []
    for pair, result in zip(pairs, results):
        if not (result.ok and result.cost.available):
            continue
        lines.append(
            f"   {pair.name}: input {format_nano_usd(result.cost.input)} "
            f"+ output {format_nano_usd(result.cost.output)} "
            f"= {format_nano_usd(result.cost.total)}"
        )
    return lines


def _summary_lines(summary: DriverSummary) -> list[str]:
    label = f"{summary.driver.label + ':':<19}"
    worked = f"({summary.success_count}/{summary.sample_count} models worked)"
    if not summary.success_count:
        return [f"   {label}no successful probes {worked}"]
    if summary.cost_available:
        cost = f"{format_nano_usd(summary.mean_cost_nano)} avg"
    else:
        cost = "N/A (not reported)"
    return [
        f"   {label}{summary.mean_latency_ms}ms avg | {summary.mean_tokens} tokens avg | cost: {cost}",
        f"   {'':<19}{worked}",
    ]


# ── Vergleichslauf ────────────────────────────────────────────────────────────

async def run_comparison(
    pairs: Iterable[ModelPair],
    prompt: str,
    credential: str,
    *,
    sink: ReportSink | None = None,
    transport: DriversTransport | None = None,
    cancel_event: asyncio.Event | None = None,
) -> ComparisonReport:
    """
    Jedes Paar nacheinander gegen beide Treiber proben (nativ zuerst).

    Fehler einzelner Probes sind nie fatal, sie verschlechtern nur die
    Zusammenfassung des betroffenen Treibers. Nur ConfigError bricht ab.
    """
    pairs = list(pairs)
    _check_config(credential, pairs, "Modell-Paare")
    sink = sink or ReportSink()

    native_results: list[ProbeResult] = []
    aggregator_results: list[ProbeResult] = []
    rows: list[str] = []

    sink.line("🔬 Claude Driver vs OpenRouter Driver Comparison")
    sink.line()
    sink.rule()

    async with _transport_scope(credential, transport) as active:
        probe = DriverProbe(active)
        for pair in pairs:
            sink.line()
            sink.line(f"📌 {pair.name}")

            native = await probe.probe(Driver.NATIVE, pair.native_id, prompt, cancel_event)
            native_results.append(native)
            rows.append(sink.row(native))

            aggregator = await probe.probe(Driver.AGGREGATOR, pair.aggregator_id, prompt, cancel_event)
            aggregator_results.append(aggregator)
            rows.append(sink.row(aggregator))

    native_summary = summarize_driver(Driver.NATIVE, native_results, len(pairs))
    aggregator_summary = summarize_driver(Driver.AGGREGATOR, aggregator_results, len(pairs))
    recommendation = recommend(native_summary, aggregator_summary)
    logger.info(
        "Vergleich abgeschlossen: nativ %d/%d, aggregator %d/%d, empfehlung=%s",
        native_summary.success_count,
        len(pairs),
        aggregator_summary.success_count,
        len(pairs),
        recommendation.value,
    )

    sink.line()
    sink.rule()
    sink.section("📊 SUMMARY")
    for summary in (native_summary, aggregator_summary):
        for text in _summary_lines(summary):
            sink.line(text)

    sink.section("💰 COST BREAKDOWN (OpenRouter only - Claude driver doesn't report costs):")
    breakdown = cost_breakdown(pairs, aggregator_results)
    for text in breakdown or ["   (no cost data reported)"]:
        sink.line(text)

    sink.section("💡 RECOMMENDATION:")
    for text in RECOMMENDATION_LINES[recommendation]:
        sink.line(f"   {text}")
    sink.line()
    sink.rule()

    return ComparisonReport(
        pairs=pairs,
        native_results=native_results,
        aggregator_results=aggregator_results,
        native_summary=native_summary,
        aggregator_summary=aggregator_summary,
        recommendation=recommendation,
        rows=rows,
    )


# ── Such-Probe (nur Aggregator) ───────────────────────────────────────────────

async def run_search_probe(
    models: Iterable[SearchModel],
    prompt: str,
    credential: str,
    *,
    sink: ReportSink | None = None,
    transport: DriversTransport | None = None,
    cancel_event: asyncio.Event | None = None,
) -> list[ProbeResult]:
    """Modelle mit nativer Websuche nacheinander über den Aggregator-Treiber proben."""
    models = list(models)
    _check_config(credential, models, "Modelle")
    sink = sink or ReportSink()
    results: list[ProbeResult] = []

    sink.line("🔍 Drivers API - Web Search Test")
    sink.line()
    sink.rule()
    sink.line()
    sink.line(f'Prompt: "{prompt}"')
    sink.line()
    sink.rule("-")

    async with _transport_scope(credential, transport) as active:
        probe = DriverProbe(active)
        for model in models:
            sink.line()
            sink.line(f"📌 {model.name}")
            result = await probe.probe(Driver.AGGREGATOR, model.model_id, prompt, cancel_event)
            results.append(result)
            sink.line(f"   Model: {result.model}")
            if result.ok:
                sink.line(f"   ✅ {result.latency_ms}ms | Cost: {format_cost(result.cost)}")
                sink.line(f"   {preview(result.content)}")
            else:
                sink.line(f"   ❌ {result.error_message}")

    supported = [m.name for m, r in zip(models, results) if r.ok]
    unsupported = [m.name for m, r in zip(models, results) if not r.ok]

    sink.line()
    sink.rule()
    sink.section("📊 SUMMARY - Web Search with Drivers API:")
    sink.line(f"   ✅ SUPPORTED ({len(supported)}/{len(models)}): {', '.join(supported) or '-'}")
    sink.line(f"   ❌ NOT SUPPORTED ({len(unsupported)}/{len(models)}): {', '.join(unsupported) or '-'}")
    sink.line()
    sink.rule()
    return results
