"""
Models / game.py
Rôle:
- Définir les réglages de partie consommés par le moteur (snapshot immuable par préparation).

Champs:
- category_count: nombre de catégories tirées par manche.
- prompts_per_category: plafond de questions par catégorie.
- game_mode: "classic" (tour simple) ou "nameBlame" (accusation nominative).
- language: langue active du contenu.
- select_categories: choix libre des catégories (écran categoryPick).
- selected_category_ids: catégories choisies par les joueurs (si choix libre).
"""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from blamegame.config.settings import settings

GameMode = Literal["classic", "nameBlame"]

MODE_CLASSIC: GameMode = "classic"
MODE_NAMEBLAME: GameMode = "nameBlame"


class GameSettings(BaseModel):
    """Réglages de partie (figés : utiliser `model_copy(update=...)` pour modifier)."""
    category_count: int = Field(default_factory=lambda: settings.DEFAULT_CATEGORY_COUNT, ge=1)
    prompts_per_category: int = Field(default_factory=lambda: settings.DEFAULT_PROMPTS_PER_CATEGORY, ge=1)
    game_mode: GameMode = MODE_CLASSIC
    language: str = Field(default_factory=lambda: settings.DEFAULT_LANGUAGE)
    select_categories: bool = False
    selected_category_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def is_name_blame(self) -> bool:
        return self.game_mode == MODE_NAMEBLAME
