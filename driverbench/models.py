# driverbench/models.py
# Pydantic v2 Datenschemas: Envelope, Token-/Kostenrecords, Probe-Ergebnisse, Zusammenfassungen
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

CHAT_INTERFACE = "puter-chat-completion"
COMPLETE_METHOD = "complete"


class Driver(str, Enum):
    """Die zwei unterstützten Treiber des Drivers-Endpunkts."""

    NATIVE = "claude"
    AGGREGATOR = "openrouter"

    @property
    def label(self) -> str:
        """Anzeigename für Report-Zeilen."""
        return "Claude driver" if self is Driver.NATIVE else "OpenRouter driver"


class UsageShape(str, Enum):
    """Erkannte Form des usage-Felds (einmalig beim Eingang bestimmt)."""

    PER_ITEM = "per_item"  # [{type, amount, cost}, ...]: mit Kosten
    FLAT = "flat"  # {input_tokens, output_tokens}: ohne Kosten
    ABSENT = "absent"


class ModelPair(BaseModel):
    """Eintrag der Vergleichstabelle: dasselbe Modell unter beiden Treibern."""

    model_config = ConfigDict(frozen=True)

    name: str
    native_id: str
    aggregator_id: str


class ChatMessage(BaseModel):
    """Einzelne Nachricht im Envelope."""

    role: Literal["user", "assistant", "system"]
    content: str


class EnvelopeArgs(BaseModel):
    messages: list[ChatMessage]
    model: str


class Envelope(BaseModel):
    """JSON-Request-Body für POST /drivers/call."""

    interface: str = CHAT_INTERFACE
    driver: Driver
    method: str = COMPLETE_METHOD
    args: EnvelopeArgs

    @classmethod
    def build(cls, driver: Driver, model: str, prompt: str) -> Envelope:
        """
        Envelope für genau einen User-Turn erzeugen.
        Beim Aggregator wird die Modell-ID mit dessen Namespace präfixiert
        ("openrouter:<id>"), beim nativen Treiber unverändert gesendet.
        """
        model_field = f"{Driver.AGGREGATOR.value}:{model}" if driver is Driver.AGGREGATOR else model
        return cls(
            driver=driver,
            args=EnvelopeArgs(
                messages=[ChatMessage(role="user", content=prompt)],
                model=model_field,
            ),
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class TokensRecord(BaseModel):
    """Token-Verbrauch pro Anfrage. Invariante: total == input + output."""

    model_config = ConfigDict(frozen=True)

    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_total(self) -> TokensRecord:
        if self.total != self.input + self.output:
            raise ValueError(f"total ({self.total}) != input + output ({self.input + self.output})")
        return self

    @classmethod
    def of(cls, input: int, output: int) -> TokensRecord:
        return cls(input=input, output=output, total=input + output)


class CostRecord(BaseModel):
    """
    Kosten in Nano-USD (10⁻⁹ $).

    Entweder alle drei Felder sind Ganzzahlen (mit total == input + output)
    oder alle drei sind None, dann gilt der Datensatz als "nicht verfügbar".
    Fehlende Kosten werden NIE als 0 dargestellt.
    """

    model_config = ConfigDict(frozen=True)

    input: int | None = Field(default=None, ge=0)
    output: int | None = Field(default=None, ge=0)
    total: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_all_or_none(self) -> CostRecord:
        fields = (self.input, self.output, self.total)
        if all(f is None for f in fields):
            return self
        if any(f is None for f in fields):
            raise ValueError("Kostenfelder müssen gemeinsam gesetzt oder gemeinsam nicht verfügbar sein")
        if self.total != self.input + self.output:
            raise ValueError(f"total ({self.total}) != input + output ({self.input + self.output})")
        return self

    @classmethod
    def of(cls, input: int, output: int) -> CostRecord:
        return cls(input=input, output=output, total=input + output)

    @property
    def available(self) -> bool:
        return self.total is not None


UNAVAILABLE_COST = CostRecord()
ZERO_TOKENS = TokensRecord()


class ProbeResult(BaseModel):
    """Kanonisches Ergebnis eines einzelnen Probe-Aufrufs (unveränderlich)."""

    model_config = ConfigDict(frozen=True)

    driver: Driver
    model: str
    ok: bool
    latency_ms: int = Field(ge=0)
    content: str = ""
    tokens: TokensRecord = ZERO_TOKENS
    cost: CostRecord = UNAVAILABLE_COST
    usage_shape: UsageShape = UsageShape.ABSENT
    error: Any = None

    @property
    def error_message(self) -> str:
        """Server-Fehler lesbar machen: error.message, sonst JSON-Darstellung."""
        if isinstance(self.error, dict) and self.error.get("message"):
            return str(self.error["message"])
        if self.error is None:
            return "Failed"
        if isinstance(self.error, str):
            return self.error
        return json.dumps(self.error, ensure_ascii=False)


class DriverSummary(BaseModel):
    """Aggregierte Statistik pro Treiber über alle Modell-Paare."""

    model_config = ConfigDict(frozen=True)

    driver: Driver
    sample_count: int
    success_count: int
    mean_latency_ms: int | None = None
    mean_tokens: int | None = None
    mean_cost_nano: int | None = None  # None = Kosten nicht verfügbar

    @property
    def success_ratio(self) -> float:
        return self.success_count / self.sample_count if self.sample_count else 0.0

    @property
    def cost_available(self) -> bool:
        return self.mean_cost_nano is not None


class SearchModel(BaseModel):
    """Modell für den Such-Probe-Lauf (nur Aggregator-Treiber)."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    name: str
    model_id: str
