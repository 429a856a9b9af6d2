# driverbench/metrics.py
# Prometheus-Metriken: Probe-Anzahl, Latenz, Token, gemeldete Kosten
from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from .models import ProbeResult

# ── Metriken-Definitionen ──────────────────────────────────────────────────

PROBE_COUNT = Counter(
    "driverbench_probes_total",
    "Gesamtanzahl Probe-Aufrufe",
    ["driver", "status"],
)

PROBE_LATENCY = Histogram(
    "driverbench_probe_latency_ms",
    "Round-Trip-Zeit pro Probe in Millisekunden",
    ["driver"],
    buckets=[100, 250, 500, 1000, 2500, 5000, 10000, 30000],
)

TOKENS_TOTAL = Counter(
    "driverbench_tokens_total",
    "Verarbeitete Token (input + output)",
    ["direction", "driver"],
)

COST_NANO_TOTAL = Counter(
    "driverbench_cost_nano_usd_total",
    "Vom Server gemeldete Kosten in Nano-USD (nur wenn verfügbar)",
    ["driver"],
)


def record_probe(result: ProbeResult) -> None:
    """Ein ProbeResult in die Metriken übernehmen."""
    driver = result.driver.value
    PROBE_COUNT.labels(driver=driver, status="success" if result.ok else "error").inc()
    if not result.ok:
        return
    PROBE_LATENCY.labels(driver=driver).observe(result.latency_ms)
    TOKENS_TOTAL.labels(direction="input", driver=driver).inc(result.tokens.input)
    TOKENS_TOTAL.labels(direction="output", driver=driver).inc(result.tokens.output)
    # Fehlende Kosten werden nicht als 0 gezählt
    if result.cost.available:
        COST_NANO_TOTAL.labels(driver=driver).inc(result.cost.total)


def get_metrics_response() -> tuple[bytes, str]:
    """Prometheus-Metriken im Textformat zurückgeben."""
    return generate_latest(), CONTENT_TYPE_LATEST
