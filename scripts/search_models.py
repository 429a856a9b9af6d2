#!/usr/bin/env python3
"""
scripts/search_models.py: Websuche über den Drivers-Endpunkt

Probt Modelle mit nativer Websuche über den OpenRouter-Treiber und zeigt
Latenz, gemeldete Kosten und eine Vorschau der Antwort.

Hinweis: das ":online"-Suffix funktioniert nur im Browser-SDK, nicht über
den Drivers-Endpunkt ("Field model is invalid"). Deshalb native Suchmodelle.

Verwendung:
  python scripts/search_models.py --token eyJ...
  python scripts/search_models.py --models perplexity/sonar openai/gpt-4o-search-preview

Exit-Codes: 0 = Lauf beendet, 1 = unerwarteter Fehler, 2 = Konfigurationsfehler
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, Sequence

from driverbench.errors import ConfigError
from driverbench.harness import run_search_probe
from driverbench.metrics import get_metrics_response
from driverbench.models import SearchModel
from driverbench.transport import DRIVERS_URL, DriversTransport

logger = logging.getLogger("search_models")

# ── Konfiguration ──────────────────────────────────────────────────────────────

DEFAULT_TOKEN = os.getenv("PUTER_AUTH_TOKEN", "")

DEFAULT_PROMPT = "What is today's date and what are the top 3 news headlines today?"

# Modelle mit nativer Websuche (vom Drivers-Endpunkt akzeptiert)
DEFAULT_MODELS: list[SearchModel] = [
    SearchModel(name="Perplexity Sonar", model_id="perplexity/sonar"),
    SearchModel(name="Perplexity Sonar Pro", model_id="perplexity/sonar-pro"),
    SearchModel(name="GPT-4o Search Preview", model_id="openai/gpt-4o-search-preview"),
    SearchModel(name="GPT-4o Mini Search", model_id="openai/gpt-4o-mini-search-preview"),
]


# ── CLI-Einstiegspunkt ─────────────────────────────────────────────────────────

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Drivers API web search probe",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--token",
        default=DEFAULT_TOKEN,
        help="Bearer-Token für den Drivers-Endpunkt (Standard: $PUTER_AUTH_TOKEN)",
    )
    parser.add_argument(
        "--url",
        default=DRIVERS_URL,
        help=f"Drivers-Endpunkt (Standard: {DRIVERS_URL})",
    )
    parser.add_argument(
        "--prompt",
        default=DEFAULT_PROMPT,
        help="Prompt für alle Probes",
    )
    parser.add_argument(
        "--models",
        nargs="+",
        default=None,
        help="OpenRouter-Modell-IDs (ohne 'openrouter:'-Präfix); Standard: eingebaute Liste",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug-Logging aktivieren")
    parser.add_argument(
        "--print-metrics",
        action="store_true",
        help="Prometheus-Metriken nach dem Lauf ausgeben",
    )
    return parser.parse_args(argv)


def resolve_models(model_ids: Optional[Sequence[str]]) -> list[SearchModel]:
    """Modell-IDs von der Kommandozeile → SearchModel (Anzeigename = ID)."""
    if model_ids is None:
        return DEFAULT_MODELS
    return [SearchModel(name=model_id, model_id=model_id) for model_id in model_ids]


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        async with DriversTransport(args.token, url=args.url) as transport:
            await run_search_probe(
                resolve_models(args.models), args.prompt, args.token, transport=transport
            )
    except ConfigError as exc:
        print(f"Konfigurationsfehler: {exc}", file=sys.stderr, flush=True)
        return 2
    except Exception as exc:
        logger.exception("Such-Probe abgebrochen")
        print(f"FEHLER: {exc}", file=sys.stderr, flush=True)
        return 1

    if args.print_metrics:
        data, _ = get_metrics_response()
        print(data.decode("utf-8"), flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
