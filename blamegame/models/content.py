"""
Models / content.py
Rôle:
- Définir les modèles du contenu de jeu : catégories, questions ("prompts") et catégories perso.

Notes:
- `Category.display_name` est indexé par code langue ("de", "en", ...).
- `Prompt.text` est déjà localisé dans la langue active au moment du chargement.
- Un prompt appartient à une seule catégorie (`category_id`).
"""
from __future__ import annotations

from typing import Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field


class Category(BaseModel):
    """Catégorie de questions (immuable pour une session une fois chargée)."""
    id: str  # identifiant unique (ex: "party", "work")
    display_name: Dict[str, str] = Field(default_factory=dict)  # {lang: nom affiché}
    emoji: str = "❓"

    model_config = ConfigDict(frozen=True)

    def name_for(self, language: str, fallbacks: Iterable[str] = ("en", "de")) -> str:
        """Nom affiché dans `language`, sinon dans les langues de repli, sinon l'id."""
        for lang in (language, *fallbacks):
            name = self.display_name.get(lang)
            if name:
                return name
        return self.id


class Prompt(BaseModel):
    """Question "Qui serait le plus susceptible de…" localisée."""
    id: str  # unique dans sa catégorie
    category_id: str
    text: str

    model_config = ConfigDict(frozen=True)


class CategorySummary(BaseModel):
    """Vue légère d'une catégorie pour l'écran de choix (nom résolu + compteur)."""
    id: str
    name: str
    emoji: str
    prompt_count: int


class CustomPrompt(BaseModel):
    id: str
    text: Dict[str, str] = Field(default_factory=dict)  # {lang: texte}


class CustomCategory(BaseModel):
    """Catégorie créée par les joueurs, persistée dans le store clé/valeur."""
    id: str
    emoji: str = "✨"
    name: Dict[str, str] = Field(default_factory=dict)
    prompts: List[CustomPrompt] = Field(default_factory=list)

    def to_category(self) -> Category:
        return Category(id=self.id, display_name=dict(self.name), emoji=self.emoji)

    def prompts_for(self, language: str, fallbacks: Iterable[str] = ("en", "de")) -> List[Prompt]:
        """Questions localisées (repli sur les autres langues, questions vides ignorées)."""
        result: List[Prompt] = []
        for prompt in self.prompts:
            text = ""
            for lang in (language, *fallbacks):
                text = (prompt.text.get(lang) or "").strip()
                if text:
                    break
            if text:
                result.append(Prompt(id=prompt.id, category_id=self.id, text=text))
        return result
