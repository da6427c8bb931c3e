"""
Service: game_settings.py
- Lecture/écriture des réglages de partie (GameSettings) dans le store clé/valeur.
- Un contenu persisté invalide est ignoré (réglages par défaut + warning).
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import ValidationError

from blamegame.config.settings import settings
from blamegame.models.game import GameSettings
from .kv_store import KEY_SETTINGS, KeyValueStore

logger = logging.getLogger(__name__)


def load_game_settings(store: KeyValueStore) -> GameSettings:
    raw = store.get(KEY_SETTINGS)
    if not isinstance(raw, dict):
        return GameSettings()
    try:
        return GameSettings.model_validate(raw)
    except ValidationError:
        logger.warning("Persisted game settings are invalid, using defaults", exc_info=True)
        return GameSettings()


def update_game_settings(store: KeyValueStore, changes: Dict[str, Any]) -> GameSettings:
    """Applique `changes` (validées par pydantic) et persiste. Lève ValidationError/ValueError."""
    current = load_game_settings(store)
    updated = GameSettings.model_validate({**current.model_dump(), **changes})
    if updated.language not in settings.SUPPORTED_LANGUAGES:
        raise ValueError(f"unsupported language: {updated.language}")
    store.set(KEY_SETTINGS, updated.model_dump())
    return updated
