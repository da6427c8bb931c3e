"""
Service: played_history.py
Rôle:
- Mémoriser les textes des questions déjà jouées (par appareil/session) pour éviter les répétitions.
- Vider l'historique quand il couvre une trop grande part du corpus (le pool ne s'épuise jamais).

Stockage:
- store[KEY_PLAYED] = liste de textes (pas d'ids : les ids ne sont pas stables entre langues).
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Set

from blamegame.config.settings import settings
from .kv_store import KEY_PLAYED, KeyValueStore

logger = logging.getLogger(__name__)


class PlayedHistory:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def texts(self) -> Set[str]:
        return set(self.store.get(KEY_PLAYED, []) or [])

    def __contains__(self, text: str) -> bool:
        return text in self.texts()

    def __len__(self) -> int:
        return len(self.texts())

    def record(self, texts: Iterable[str]) -> None:
        """Ajoute des textes (ordre d'insertion conservé, sans doublon)."""
        current: List[str] = list(self.store.get(KEY_PLAYED, []) or [])
        seen = set(current)
        for text in texts:
            if text and text not in seen:
                current.append(text)
                seen.add(text)
        self.store.set(KEY_PLAYED, current)

    def clear(self) -> None:
        self.store.set(KEY_PLAYED, [])

    def coverage(self, corpus: Set[str]) -> float:
        """Part du corpus déjà jouée (0.0 si corpus vide)."""
        if not corpus:
            return 0.0
        return len(corpus & self.texts()) / len(corpus)

    def reset_if_exhausted(self, corpus: Set[str], fraction: float | None = None) -> bool:
        """Vide l'historique s'il couvre plus de `fraction` du corpus (ou tout le corpus)."""
        threshold = settings.HISTORY_RESET_FRACTION if fraction is None else fraction
        cov = self.coverage(corpus)
        if corpus and (cov > threshold or cov >= 1.0):
            logger.info("Played history cleared", extra={"coverage": round(cov, 3), "corpus": len(corpus)})
            self.clear()
            return True
        return False
