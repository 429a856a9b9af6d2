# driverbench/usage.py
# Usage-Normalisierung: zwei inkompatible usage-Formate → (TokensRecord, CostRecord)
# Einzige Stelle im Paket, die die Rohformate der Provider kennt.
from __future__ import annotations

import logging
import math
from typing import Any

from .models import UNAVAILABLE_COST, CostRecord, TokensRecord, UsageShape

logger = logging.getLogger(__name__)

PROMPT_TYPE = "prompt"
COMPLETION_TYPE = "completion"


def _non_negative(value: Any) -> int:
    """Zahl → int ≥ 0. Fehlende, negative, nicht-endliche oder nicht-numerische Werte ergeben 0."""
    # bool ist Unterklasse von int, zählt hier aber nicht als Menge
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    # json liefert für 1e999 bzw. NaN inf/nan
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, int(value))


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def classify_usage(usage: Any) -> UsageShape:
    """
    Form des usage-Felds bestimmen.

    Liste  → PER_ITEM (Aggregator: [{type, amount, cost}, ...])
    Dict   → FLAT     (nativer Treiber: {input_tokens, output_tokens})
    Sonst  → ABSENT   (fehlt oder unbekannte Form, nicht fatal)
    """
    if isinstance(usage, list):
        return UsageShape.PER_ITEM
    if isinstance(usage, dict):
        return UsageShape.FLAT
    if usage is not None:
        logger.warning("Unbekannte usage-Form %s, wird als fehlend behandelt", type(usage).__name__)
    return UsageShape.ABSENT


def _first_entry(entries: list, entry_type: str) -> dict:
    """Erster Eintrag des Typs; Duplikate werden ignoriert."""
    for entry in entries:
        if isinstance(entry, dict) and entry.get("type") == entry_type:
            return entry
    return {}


def normalize_usage(
    result: Any, shape: UsageShape | None = None
) -> tuple[TokensRecord, CostRecord]:
    """
    result.usage in kanonische Token- und Kostenrecords überführen.
    Ist die Form bereits per classify_usage() bestimmt, kann sie übergeben werden.
    """
    usage = _as_dict(result).get("usage")
    if shape is None:
        shape = classify_usage(usage)

    if shape is UsageShape.PER_ITEM:
        prompt = _first_entry(usage, PROMPT_TYPE)
        completion = _first_entry(usage, COMPLETION_TYPE)
        tokens = TokensRecord.of(
            _non_negative(prompt.get("amount")),
            _non_negative(completion.get("amount")),
        )
        cost = CostRecord.of(
            _non_negative(prompt.get("cost")),
            _non_negative(completion.get("cost")),
        )
        return tokens, cost

    if shape is UsageShape.FLAT:
        tokens = TokensRecord.of(
            _non_negative(usage.get("input_tokens")),
            _non_negative(usage.get("output_tokens")),
        )
        # Flaches Format liefert keine Kosten → explizit nicht verfügbar, nicht 0
        return tokens, UNAVAILABLE_COST

    return TokensRecord(), UNAVAILABLE_COST


def usage_shape_of(result: Any) -> UsageShape:
    return classify_usage(_as_dict(result).get("usage"))


def extract_content(result: Any) -> str:
    """
    Antworttext aus result.message.content lesen.
    Entweder ein String oder eine Liste von {text}-Teilen (erster Teil zählt).
    Fehlt beides, ist der Inhalt leer.
    """
    message = _as_dict(result).get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict) and isinstance(first.get("text"), str):
            return first["text"]
    return ""
