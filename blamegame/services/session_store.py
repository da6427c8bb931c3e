"""
Session store registry
======================

Expose des helpers pour récupérer le `FlowController` dédié à une session
(`<DATA_DIR>/sessions/<session_id>/store.json`). Les instances sont mises en cache
en mémoire et initialisées à la demande.

Les identifiants de session servent de nom de dossier : seuls `[A-Za-z0-9_-]` sont admis.
"""
from __future__ import annotations

import re
from pathlib import Path
from threading import RLock
from typing import Dict, Optional
from uuid import uuid4

from blamegame.config.settings import settings
from .flow_controller import FlowController
from .kv_store import JsonFileStore

DEFAULT_SESSION_ID = "default"
SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"

_SESSION_ID_RE = re.compile(SESSION_ID_PATTERN)
_FLOWS: Dict[str, FlowController] = {}
_LOCK = RLock()


def session_store_path(session_id: str) -> Path:
    if not _SESSION_ID_RE.match(session_id):
        raise ValueError(f"invalid session id: {session_id!r}")
    return Path(settings.DATA_DIR) / "sessions" / session_id / settings.STORE_FILENAME


def get_flow(session_id: str = DEFAULT_SESSION_ID, *, create: bool = True) -> Optional[FlowController]:
    """
    Retourne le `FlowController` associé à `session_id`.
    Crée la session (store sur disque) si nécessaire, sauf si `create=False`.
    """
    normalized = session_id or DEFAULT_SESSION_ID
    with _LOCK:
        flow = _FLOWS.get(normalized)
        if flow is None:
            path = session_store_path(normalized)
            if not create and not path.exists():
                return None
            store = JsonFileStore(path)
            if not path.exists():
                store.save()
            flow = FlowController(store=store)
            _FLOWS[normalized] = flow
        return flow


def create_session(session_id: Optional[str] = None) -> str:
    """Crée une nouvelle session (fichier store écrit immédiatement) et retourne son identifiant."""
    sid = session_id or uuid4().hex[:8]
    with _LOCK:
        get_flow(sid)
    return sid


def drop_flow(session_id: str) -> None:
    """Retire une session du cache (sans supprimer les fichiers)."""
    with _LOCK:
        _FLOWS.pop(session_id, None)


def list_session_ids() -> list[str]:
    """Retourne la liste des sessions actuellement chargées en mémoire."""
    with _LOCK:
        return list(_FLOWS.keys())
