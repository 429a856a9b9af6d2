# tests/test_harness.py
# Tests für den Vergleichs-Harness: Zusammenfassung, Empfehlungsregel, Zeilenreihenfolge,
# Konfigurationsfehler und Such-Probe. HTTP ist gemockt (respx).
import httpx
import pytest
import respx

from driverbench.errors import ConfigError
from driverbench.harness import (
    RECOMMENDATION_LINES,
    Recommendation,
    cost_breakdown,
    recommend,
    run_comparison,
    run_search_probe,
    summarize_driver,
)
from driverbench.models import (
    CostRecord,
    Driver,
    ModelPair,
    ProbeResult,
    SearchModel,
    TokensRecord,
)
from driverbench.transport import DRIVERS_URL, DriversTransport

from tests.conftest import (
    ERROR_RESPONSE,
    SHAPE_A_RESPONSE,
    SHAPE_B_RESPONSE,
    TEST_URL,
    by_driver,
    request_body,
)


def _ok(driver, latency_ms, tokens=(10, 1), cost=None):
    return ProbeResult(
        driver=driver,
        model="m",
        ok=True,
        latency_ms=latency_ms,
        tokens=TokensRecord.of(*tokens),
        cost=CostRecord.of(*cost) if cost else CostRecord(),
    )


def _failed(driver):
    return ProbeResult(
        driver=driver, model="m", ok=False, latency_ms=50, error={"message": "Field model is invalid"}
    )


# ── Tests: summarize_driver ──────────────────────────────────────────────────

def test_summary_means_over_successful_probes():
    """Fehlgeschlagene Probes fließen nicht in die Mittelwerte ein."""
    results = [
        _ok(Driver.AGGREGATOR, 400, tokens=(10, 2), cost=(1000, 2000)),
        _failed(Driver.AGGREGATOR),
        _ok(Driver.AGGREGATOR, 601, tokens=(10, 3), cost=(1000, 4000)),
    ]
    summary = summarize_driver(Driver.AGGREGATOR, results, pair_count=3)
    assert summary.success_count == 2
    assert summary.sample_count == 3
    assert summary.mean_latency_ms == 501
    assert summary.mean_tokens == 13
    assert summary.mean_cost_nano == 4000
    assert summary.success_ratio == pytest.approx(2 / 3)


def test_summary_means_round_half_up():
    """Genau .5 wird aufgerundet, auch bei geraden Ganzzahlen."""
    results = [
        _ok(Driver.NATIVE, 400, tokens=(10, 0)),
        _ok(Driver.NATIVE, 401, tokens=(11, 0)),
    ]
    summary = summarize_driver(Driver.NATIVE, results, pair_count=2)
    assert summary.mean_latency_ms == 401
    assert summary.mean_tokens == 11


def test_summary_cost_unavailable_is_not_zero():
    """Nur Probes ohne Kosten → mean_cost ist None, nicht 0."""
    results = [_ok(Driver.NATIVE, 300), _ok(Driver.NATIVE, 500)]
    summary = summarize_driver(Driver.NATIVE, results, pair_count=2)
    assert summary.mean_cost_nano is None
    assert not summary.cost_available
    assert summary.mean_latency_ms == 400


def test_summary_cost_mean_ignores_probes_without_cost():
    results = [_ok(Driver.AGGREGATOR, 300, cost=(0, 9000)), _ok(Driver.AGGREGATOR, 300)]
    summary = summarize_driver(Driver.AGGREGATOR, results, pair_count=2)
    assert summary.mean_cost_nano == 9000


def test_summary_all_failures_has_no_means():
    summary = summarize_driver(Driver.NATIVE, [_failed(Driver.NATIVE)] * 2, pair_count=2)
    assert summary.success_count == 0
    assert summary.mean_latency_ms is None
    assert summary.mean_tokens is None
    assert summary.mean_cost_nano is None


# ── Tests: recommend ─────────────────────────────────────────────────────────

def test_recommend_availability_when_native_has_fewer_successes():
    native = summarize_driver(Driver.NATIVE, [_ok(Driver.NATIVE, 100), _failed(Driver.NATIVE)], 2)
    aggregator = summarize_driver(
        Driver.AGGREGATOR, [_ok(Driver.AGGREGATOR, 900), _ok(Driver.AGGREGATOR, 900)], 2
    )
    assert recommend(native, aggregator) is Recommendation.AVAILABILITY


def test_recommend_mixed_availability_aggregator_fewer():
    """Nativ 2/2, Aggregator 1/2: Regel 1 greift nicht, gleiche Latenz → CONSISTENCY."""
    native = summarize_driver(Driver.NATIVE, [_ok(Driver.NATIVE, 500), _ok(Driver.NATIVE, 500)], 2)
    aggregator = summarize_driver(
        Driver.AGGREGATOR, [_ok(Driver.AGGREGATOR, 500), _failed(Driver.AGGREGATOR)], 2
    )
    assert native.success_ratio == 1.0
    assert aggregator.success_ratio == 0.5
    assert recommend(native, aggregator) is Recommendation.CONSISTENCY


def test_recommend_native_faster_below_ratio():
    """Nativ 400ms vs. Aggregator 600ms (0.67 < 0.8) → NATIVE_FASTER."""
    native = summarize_driver(Driver.NATIVE, [_ok(Driver.NATIVE, 400)] * 3, 3)
    aggregator = summarize_driver(Driver.AGGREGATOR, [_ok(Driver.AGGREGATOR, 600)] * 3, 3)
    assert recommend(native, aggregator) is Recommendation.NATIVE_FASTER


def test_recommend_native_not_fast_enough():
    """Genau 0.8 × Aggregator-Latenz reicht nicht (strikt kleiner)."""
    native = summarize_driver(Driver.NATIVE, [_ok(Driver.NATIVE, 480)], 1)
    aggregator = summarize_driver(Driver.AGGREGATOR, [_ok(Driver.AGGREGATOR, 600)], 1)
    assert recommend(native, aggregator) is Recommendation.CONSISTENCY


def test_recommend_all_failures_defaults_to_consistency():
    native = summarize_driver(Driver.NATIVE, [_failed(Driver.NATIVE)], 1)
    aggregator = summarize_driver(Driver.AGGREGATOR, [_failed(Driver.AGGREGATOR)], 1)
    assert recommend(native, aggregator) is Recommendation.CONSISTENCY


def test_recommend_native_only_success_defaults_to_consistency():
    """Aggregator ohne Erfolg hat keine Latenz → kein Geschwindigkeitsvergleich."""
    native = summarize_driver(Driver.NATIVE, [_ok(Driver.NATIVE, 100)], 1)
    aggregator = summarize_driver(Driver.AGGREGATOR, [_failed(Driver.AGGREGATOR)], 1)
    assert recommend(native, aggregator) is Recommendation.CONSISTENCY


# ── Tests: cost_breakdown ────────────────────────────────────────────────────

def test_cost_breakdown_uses_pair_names(sample_pairs):
    """Aufschlüsselung nach Paarnamen: auch wenn vorherige Probes fehlschlagen."""
    results = [_failed(Driver.AGGREGATOR), _ok(Driver.AGGREGATOR, 300, cost=(3000, 15000))]
    lines = cost_breakdown(sample_pairs, results)
    assert lines == ["   Model Two: input $0.000003 + output $0.000015 = $0.000018"]


# ── Tests: run_comparison (mit gemocktem Endpunkt) ───────────────────────────

@pytest.mark.asyncio
async def test_run_comparison_rows_and_summaries(sink, sample_pairs):
    """Zwei Paare → vier Zeilen in Eingabereihenfolge, nativ vor Aggregator."""
    with respx.mock:
        route = respx.post(TEST_URL).mock(side_effect=by_driver(SHAPE_B_RESPONSE, SHAPE_A_RESPONSE))
        async with DriversTransport("token", url=TEST_URL) as transport:
            report = await run_comparison(
                sample_pairs, "What is 2+2?", "token", sink=sink, transport=transport
            )

    sent_models = [request_body(call.request)["args"]["model"] for call in route.calls]
    assert sent_models == ["m1", "openrouter:ns/m1", "m2", "openrouter:ns/m2"]

    assert len(report.rows) == 2 * len(sample_pairs)
    assert report.rows[0].startswith("   Claude driver:")
    assert report.rows[1].startswith("   OpenRouter driver:")
    assert report.rows[1].endswith("cost: $0.000018")
    assert report.rows[0].endswith("cost: N/A")

    assert report.native_summary.success_count == 2
    assert report.native_summary.mean_tokens == 11
    assert report.native_summary.mean_cost_nano is None
    assert report.aggregator_summary.mean_cost_nano == 18000

    # Zusammenfassung erst nach der letzten Zeile
    summary_index = sink.lines.index("📊 SUMMARY")
    assert summary_index > sink.lines.index(report.rows[-1])
    assert "   Model One: input $0.000003 + output $0.000015 = $0.000018" in sink.lines
    for text in RECOMMENDATION_LINES[report.recommendation]:
        assert f"   {text}" in sink.lines
    assert sink.lines[-1] == "=" * 70


@pytest.mark.asyncio
async def test_run_comparison_continues_after_provider_error(sink, sample_pairs):
    """Provider-Fehler ist nicht fatal: nächster Probe läuft weiter."""

    def respond(request):
        body = request_body(request)
        if body["args"]["model"] == "openrouter:ns/m1":
            return httpx.Response(200, json=ERROR_RESPONSE)
        return httpx.Response(200, json=SHAPE_B_RESPONSE if body["driver"] == "claude" else SHAPE_A_RESPONSE)

    with respx.mock:
        route = respx.post(TEST_URL).mock(side_effect=respond)
        async with DriversTransport("token", url=TEST_URL) as transport:
            report = await run_comparison(sample_pairs, "hi", "token", sink=sink, transport=transport)

    assert route.call_count == 4
    assert report.rows[1] == "   OpenRouter driver: ❌ Field model is invalid"
    assert report.aggregator_summary.success_count == 1
    assert report.aggregator_summary.success_ratio == 0.5
    assert report.native_summary.success_ratio == 1.0
    assert len(report.aggregator_results) == 2


@pytest.mark.asyncio
async def test_run_comparison_survives_non_finite_usage(sink, sample_pairs):
    """inf/NaN im usage-Feld bricht den Lauf nicht ab, alle vier Zeilen erscheinen."""
    odd_body = (
        '{"success": true, "result": {"message": {"content": "4"}, "usage": ['
        '{"type": "prompt", "amount": 1e999, "cost": NaN},'
        '{"type": "completion", "amount": 2, "cost": 30}]}}'
    )

    def respond(request):
        body = request_body(request)
        if body["args"]["model"] == "openrouter:ns/m1":
            return httpx.Response(200, content=odd_body.encode(), headers={"Content-Type": "application/json"})
        return httpx.Response(200, json=SHAPE_B_RESPONSE if body["driver"] == "claude" else SHAPE_A_RESPONSE)

    with respx.mock:
        respx.post(TEST_URL).mock(side_effect=respond)
        async with DriversTransport("token", url=TEST_URL) as transport:
            report = await run_comparison(sample_pairs, "hi", "token", sink=sink, transport=transport)

    assert len(report.rows) == 4
    first = report.aggregator_results[0]
    assert first.ok
    assert first.tokens == TokensRecord(input=0, output=2, total=2)
    assert first.cost == CostRecord(input=0, output=30, total=30)


@pytest.mark.asyncio
async def test_run_comparison_all_failures(sink, sample_pairs):
    """Alle Probes scheitern → keine Mittelwerte, Empfehlung trotzdem ausgegeben."""
    with respx.mock:
        respx.post(TEST_URL).mock(return_value=httpx.Response(200, json=ERROR_RESPONSE))
        async with DriversTransport("token", url=TEST_URL) as transport:
            report = await run_comparison(sample_pairs, "hi", "token", sink=sink, transport=transport)

    assert report.native_summary.success_count == 0
    assert report.aggregator_summary.success_count == 0
    assert report.recommendation is Recommendation.CONSISTENCY
    assert not any("avg" in line for line in sink.lines)
    assert "   Claude driver:     no successful probes (0/2 models worked)" in sink.lines
    assert (
        "   → OpenRouter recommended for consistency, model variety, and cost tracking"
        in sink.lines
    )


@pytest.mark.asyncio
async def test_run_comparison_aggregator_without_list_usage_has_no_cost(sink, sample_pairs):
    """Aggregator liefert nur flaches usage → mittlere Kosten nicht verfügbar."""
    with respx.mock:
        respx.post(TEST_URL).mock(return_value=httpx.Response(200, json=SHAPE_B_RESPONSE))
        async with DriversTransport("token", url=TEST_URL) as transport:
            report = await run_comparison(sample_pairs, "hi", "token", sink=sink, transport=transport)

    assert report.aggregator_summary.success_count == 2
    assert report.aggregator_summary.mean_cost_nano is None
    assert "   (no cost data reported)" in sink.lines


@pytest.mark.asyncio
async def test_run_comparison_opens_own_transport(sink):
    """Ohne übergebenen Transport wird ein eigener gegen den Standard-Endpunkt geöffnet."""
    pairs = [ModelPair(name="Only", native_id="m1", aggregator_id="ns/m1")]
    with respx.mock:
        route = respx.post(DRIVERS_URL).mock(side_effect=by_driver(SHAPE_B_RESPONSE, SHAPE_A_RESPONSE))
        report = await run_comparison(pairs, "hi", "real-token", sink=sink)

    assert route.call_count == 2
    assert route.calls.last.request.headers["Authorization"] == "Bearer real-token"
    assert len(report.rows) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("credential", ["", "   "])
async def test_run_comparison_missing_credential(sink, sample_pairs, credential):
    with respx.mock(assert_all_called=False) as respx_mock:
        route = respx_mock.post(DRIVERS_URL).mock(return_value=httpx.Response(200, json=SHAPE_A_RESPONSE))
        with pytest.raises(ConfigError):
            await run_comparison(sample_pairs, "hi", credential, sink=sink)
    assert route.call_count == 0
    assert sink.lines == []


@pytest.mark.asyncio
async def test_run_comparison_empty_pairs(sink):
    with pytest.raises(ConfigError):
        await run_comparison([], "hi", "token", sink=sink)
    assert sink.lines == []


# ── Tests: run_search_probe ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_run_search_probe_rows(sink):
    """Such-Probe: nur Aggregator, Kosten und Vorschau pro Modell."""
    models = [
        SearchModel(name="Perplexity Sonar", model_id="perplexity/sonar"),
        SearchModel(name="Broken", model_id="openai/gpt-4o:online"),
    ]

    def respond(request):
        body = request_body(request)
        assert body["driver"] == "openrouter"
        if body["args"]["model"].endswith(":online"):
            return httpx.Response(200, json=ERROR_RESPONSE)
        return httpx.Response(200, json=SHAPE_A_RESPONSE)

    with respx.mock:
        respx.post(TEST_URL).mock(side_effect=respond)
        async with DriversTransport("token", url=TEST_URL) as transport:
            results = await run_search_probe(models, "news?", "token", sink=sink, transport=transport)

    assert [r.ok for r in results] == [True, False]
    assert "   Model: openrouter:perplexity/sonar" in sink.lines
    assert any(line.startswith("   ✅ ") and line.endswith("| Cost: $0.000018") for line in sink.lines)
    assert "   4..." in sink.lines
    assert "   ❌ Field model is invalid" in sink.lines
    assert "   ✅ SUPPORTED (1/2): Perplexity Sonar" in sink.lines
    assert "   ❌ NOT SUPPORTED (1/2): Broken" in sink.lines


@pytest.mark.asyncio
async def test_run_search_probe_requires_models(sink):
    with pytest.raises(ConfigError):
        await run_search_probe([], "news?", "token", sink=sink)
