# tests/conftest.py
# Pytest-Konfiguration und gemeinsame Fixtures
import json

import httpx
import pytest

from driverbench.models import ModelPair
from driverbench.report import ReportSink

TEST_URL = "http://test-drivers/drivers/call"

# Aggregator-Format: Liste mit Kosten in Nano-USD
SHAPE_A_RESPONSE = {
    "success": True,
    "result": {
        "message": {"role": "assistant", "content": "4"},
        "usage": [
            {"type": "prompt", "amount": 10, "cost": 3000},
            {"type": "completion", "amount": 1, "cost": 15000},
        ],
    },
}

# Nativer Treiber: flaches Dict ohne Kosten, Inhalt als Teile-Liste
SHAPE_B_RESPONSE = {
    "success": True,
    "result": {
        "message": {"role": "assistant", "content": [{"type": "text", "text": "4"}]},
        "usage": {"input_tokens": 10, "output_tokens": 1},
    },
}

ERROR_RESPONSE = {
    "success": False,
    "error": {"code": "field_invalid", "message": "Field model is invalid"},
}


def request_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def by_driver(native: dict, aggregator: dict):
    """respx-side_effect: Antwort abhängig vom driver-Feld im Envelope."""

    def _respond(request: httpx.Request) -> httpx.Response:
        body = request_body(request)
        return httpx.Response(200, json=native if body["driver"] == "claude" else aggregator)

    return _respond


@pytest.fixture
def sink():
    """ReportSink ohne stdout-Ausgabe: Zeilen bleiben in sink.lines."""
    return ReportSink(write=lambda _text: None)


@pytest.fixture
def sample_pairs():
    return [
        ModelPair(name="Model One", native_id="m1", aggregator_id="ns/m1"),
        ModelPair(name="Model Two", native_id="m2", aggregator_id="ns/m2"),
    ]
