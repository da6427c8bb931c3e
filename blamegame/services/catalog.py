"""
Service: catalog.py
Rôle:
- Construire le catalogue (catégories + questions) d'une langue à partir d'un ContentProvider.
- Une catégorie dont les questions échouent est exclue pour cette manche (log warning, `excluded`).

Règles:
- Le catalogue est reconstruit à chaque changement de langue; l'ancien est jeté (pas de fusion).
- Les questions de toutes les catégories sont récupérées en parallèle (asyncio.gather).
- Si la liste des catégories elle-même échoue → catalogue vide (le builder lèvera NoContentAvailable).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from blamegame.config.settings import settings
from blamegame.models.content import Category, CategorySummary, Prompt
from .content_provider import ContentProvider
from .errors import ContentUnavailable

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    language: str
    categories: List[Category] = field(default_factory=list)
    prompts_by_category: Dict[str, List[Prompt]] = field(default_factory=dict)
    # catégories exclues faute de questions (échec du provider) : à retenter plus tard
    excluded: List[str] = field(default_factory=list)

    def category(self, category_id: str) -> Optional[Category]:
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        return None

    def prompts_for(self, category_id: str) -> List[Prompt]:
        return list(self.prompts_by_category.get(category_id, []))

    def eligible_category_ids(self) -> List[str]:
        """Catégories chargées avec au moins une question (ordre du catalogue)."""
        return [c.id for c in self.categories if self.prompts_by_category.get(c.id)]

    def corpus_texts(self) -> Set[str]:
        return {p.text for prompts in self.prompts_by_category.values() for p in prompts}

    def is_empty(self) -> bool:
        return not self.eligible_category_ids()

    def category_summaries(self) -> List[CategorySummary]:
        """Pour l'écran de choix des catégories (nom dans la langue du catalogue)."""
        return [
            CategorySummary(
                id=cat.id,
                name=cat.name_for(self.language, settings.FALLBACK_LANGUAGES),
                emoji=cat.emoji,
                prompt_count=len(self.prompts_by_category[cat.id]),
            )
            for cat in self.categories
            if self.prompts_by_category.get(cat.id)
        ]


async def _load_prompts(provider: ContentProvider, category_id: str, language: str) -> Optional[List[Prompt]]:
    try:
        return await provider.list_prompts(category_id, language)
    except ContentUnavailable as exc:
        logger.warning(
            "Category excluded: prompts unavailable",
            extra={"category_id": category_id, "language": language, "reason": str(exc)},
        )
        return None


async def load_catalog(provider: ContentProvider, language: str) -> Catalog:
    """Charge toutes les catégories et leurs questions pour `language`."""
    try:
        categories = await provider.list_categories(language)
    except ContentUnavailable as exc:
        logger.error("Category list unavailable", extra={"language": language, "reason": str(exc)})
        return Catalog(language=language)

    results = await asyncio.gather(*(_load_prompts(provider, c.id, language) for c in categories))

    catalog = Catalog(language=language)
    for cat, prompts in zip(categories, results):
        if prompts is None:
            catalog.excluded.append(cat.id)
            continue
        unique: Dict[str, Prompt] = {}
        for prompt in prompts:
            unique.setdefault(prompt.id, prompt)
        catalog.categories.append(cat)
        catalog.prompts_by_category[cat.id] = list(unique.values())

    logger.info(
        "Catalog loaded",
        extra={
            "language": language,
            "categories": len(catalog.categories),
            "excluded": catalog.excluded,
            "prompts": sum(len(p) for p in catalog.prompts_by_category.values()),
        },
    )
    return catalog
