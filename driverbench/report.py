# driverbench/report.py
# Report-Ausgabe: Währungsformat (Nano-USD), Inhaltsvorschau, Trennlinien, Zeilenformat
from __future__ import annotations

import re
from typing import Callable

from .models import CostRecord, ProbeResult

SEPARATOR_WIDTH = 70
PREVIEW_LIMIT = 300
NANO_PER_USD = 10**9

_NEWLINES = re.compile(r"\r?\n")


def format_nano_usd(value: int) -> str:
    """Nano-USD-Ganzzahl → "$0.000018" (immer sechs Nachkommastellen)."""
    return f"${value / NANO_PER_USD:.6f}"


def format_cost(cost: CostRecord) -> str:
    """Gesamtkosten formatiert oder "N/A", wenn der Treiber keine Kosten meldet."""
    return format_nano_usd(cost.total) if cost.available else "N/A"


def preview(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """Einzeilige Vorschau: auf limit Zeichen gekürzt, Zeilenumbrüche → Leerzeichen, "..." angehängt."""
    return _NEWLINES.sub(" ", text[:limit]) + "..."


def format_status(result: ProbeResult) -> str:
    """Status-Teil einer Ergebniszeile."""
    if not result.ok:
        return f"❌ {result.error_message}"
    return (
        f"✅ {result.latency_ms}ms | {result.tokens.total} tokens "
        f"| cost: {format_cost(result.cost)}"
    )


def _print_line(text: str) -> None:
    print(text, flush=True)


class ReportSink:
    """
    Nimmt formatierte Report-Zeilen entgegen.
    Standardziel ist stdout; alle Zeilen bleiben zusätzlich in self.lines erhalten.
    """

    def __init__(self, write: Callable[[str], None] = _print_line) -> None:
        self._write = write
        self.lines: list[str] = []

    def line(self, text: str = "") -> None:
        self.lines.append(text)
        self._write(text)

    def rule(self, char: str = "=") -> None:
        self.line(char * SEPARATOR_WIDTH)

    def section(self, title: str) -> None:
        self.line()
        self.line(title)
        self.line()

    def row(self, result: ProbeResult) -> str:
        """Ergebniszeile für eine Probe ausgeben und zurückgeben."""
        text = f"   {result.driver.label + ':':<19}{format_status(result)}"
        self.line(text)
        return text
