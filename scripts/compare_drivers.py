#!/usr/bin/env python3
"""
scripts/compare_drivers.py: Claude-Treiber vs. OpenRouter-Treiber

Schickt denselben Prompt für jedes Modell-Paar nacheinander an beide Treiber
des Drivers-Endpunkts, vereinheitlicht Token- und Kostenangaben und gibt
einen Vergleichsreport mit Empfehlung aus.

Verwendung:
  python scripts/compare_drivers.py --token eyJ...
  PUTER_AUTH_TOKEN=eyJ... python scripts/compare_drivers.py --prompt "Say hi"
  python scripts/compare_drivers.py --help

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
from driverbench.harness import run_comparison
from driverbench.metrics import get_metrics_response
from driverbench.models import ModelPair
from driverbench.transport import DRIVERS_URL, DriversTransport

logger = logging.getLogger("compare_drivers")

# ── Konfiguration ──────────────────────────────────────────────────────────────

DEFAULT_TOKEN = os.getenv("PUTER_AUTH_TOKEN", "")

DEFAULT_PROMPT = "What is 2+2? Reply with just the number."

# Anzeigename → (native Claude-ID, OpenRouter-ID)
DEFAULT_PAIRS: list[ModelPair] = [
    ModelPair(
        name="Claude Sonnet 4",
        native_id="claude-sonnet-4-20250514",
        aggregator_id="anthropic/claude-sonnet-4",
    ),
    ModelPair(
        name="Claude 3.7 Sonnet",
        native_id="claude-3-7-sonnet-20250219",
        aggregator_id="anthropic/claude-3.7-sonnet",
    ),
    ModelPair(
        name="Claude 3.5 Sonnet",
        native_id="claude-3-5-sonnet-20241022",
        aggregator_id="anthropic/claude-3.5-sonnet",
    ),
]


# ── CLI-Einstiegspunkt ─────────────────────────────────────────────────────────

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Claude driver vs OpenRouter driver comparison",
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
        "--verbose",
        action="store_true",
        help="Debug-Logging aktivieren",
    )
    parser.add_argument(
        "--print-metrics",
        action="store_true",
        help="Prometheus-Metriken nach dem Lauf ausgeben",
    )
    return parser.parse_args(argv)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        async with DriversTransport(args.token, url=args.url) as transport:
            await run_comparison(DEFAULT_PAIRS, args.prompt, args.token, transport=transport)
    except ConfigError as exc:
        print(f"Konfigurationsfehler: {exc}", file=sys.stderr, flush=True)
        return 2
    except Exception as exc:
        logger.exception("Vergleichslauf abgebrochen")
        print(f"FEHLER: {exc}", file=sys.stderr, flush=True)
        return 1

    if args.print_metrics:
        data, _ = get_metrics_response()
        print(data.decode("utf-8"), flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
