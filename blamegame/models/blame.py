"""
Models / blame.py
Rôle:
- Modèles du mode NameBlame : entrée du journal des accusations et sous-état de manche.

Notes:
- `BlameEntry` est append-only (jamais retirée, même en revenant en arrière).
- `BlameRoundState` est réinitialisé à chaque changement de question active.
- `timestamp` en UTC (ISO 8601 à la sérialisation).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional, Set

from pydantic import BaseModel, Field

BlamePhase = Literal["selecting", "reveal"]

PHASE_SELECTING: BlamePhase = "selecting"
PHASE_REVEAL: BlamePhase = "reveal"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlameEntry(BaseModel):
    """Une accusation confirmée : `from_player` désigne `to_player` pour une question."""
    from_player: str
    to_player: str
    prompt_text: str
    timestamp: datetime = Field(default_factory=_utcnow)


class BlameRoundState(BaseModel):
    """Sous-état (selecting → reveal) pour la question active."""
    prompt_key: str = ""
    phase: BlamePhase = PHASE_SELECTING
    current_blamer: Optional[str] = None
    current_blamed: Optional[str] = None
    players_who_acted: Set[str] = Field(default_factory=set)
