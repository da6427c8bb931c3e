"""
Service: kv_store.py
Rôle :
- Capacité de stockage clé/valeur injectée dans le moteur (historique joué, joueurs,
  journal NameBlame, réglages, catégories perso).
- `InMemoryStore` pour les tests, `JsonFileStore` pour la persistance disque.

Stockage :
- `<DATA_DIR>/sessions/<session_id>/store.json` (un dict JSON, réécrit à chaque `set`).

Le moteur traite le store comme synchrone (pas d'await).
"""
from __future__ import annotations

import copy
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Protocol

from .io_utils import read_json, write_json

KEY_PLAYED = "blamegame-played-questions"
KEY_PLAYERS = "blamegame-player-names"
KEY_BLAME_LOG = "blamegame-nameblame-log"
KEY_SETTINGS = "blamegame-settings"
KEY_CUSTOM_CATEGORIES = "blamegame-custom-categories"


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class InMemoryStore:
    """Store volatile (copie profonde à la lecture/écriture pour éviter l'aliasing)."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._lock = RLock()
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)


class JsonFileStore(InMemoryStore):
    """Store persistant : chargé au démarrage, réécrit sur disque à chaque `set`."""

    def __init__(self, path: Path) -> None:
        raw = read_json(path)
        super().__init__(raw if isinstance(raw, dict) else {})
        self.path = path

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            super().set(key, value)
            self.save()

    def save(self) -> None:
        """Écrit l'état courant sur disque (fichier créé même si vide)."""
        with self._lock:
            write_json(self.path, self._data)
