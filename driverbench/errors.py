# driverbench/errors.py
# Fehlerklassen: nur Konfigurationsfehler sind fatal, alles andere landet im ProbeResult
from __future__ import annotations


class ConfigError(ValueError):
    """Fehlender Credential oder leere Modellliste: Abbruch vor dem ersten Request."""
