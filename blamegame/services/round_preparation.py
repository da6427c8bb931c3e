"""
Round preparation pipeline.
Tire les catégories et les questions d'une manche à partir du catalogue et de l'historique joué.

Algorithme (build_round):
1) Catégories candidates : choix libre (ids explicites encore éligibles, plafonnés à category_count) ou tirage
   uniforme de min(category_count, |éligibles|) parmi les catégories ayant au moins une question.
2) Par catégorie : on retire les textes déjà joués; si plus rien, repli sur la liste complète
   de CETTE catégorie uniquement.
3) Échantillon sans remise de min(prompts_per_category, disponibles).
4) Concaténation puis mélange uniforme (random.shuffle = Fisher–Yates).
5) Liste vide → NoContentAvailable (le FlowController décide du repli).
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from blamegame.models.content import Category, Prompt
from blamegame.models.game import GameSettings
from .catalog import Catalog
from .errors import NoContentAvailable
from .played_history import PlayedHistory

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY_ID = "fallback"

# Dernier recours si aucun contenu n'a pu être chargé (mode classique dégradé)
FALLBACK_PROMPTS: List[Prompt] = [
    Prompt(id="fallback_question_1", category_id=FALLBACK_CATEGORY_ID, text="Who would most likely survive in the wilderness?"),
    Prompt(id="fallback_question_2", category_id=FALLBACK_CATEGORY_ID, text="Who would forget their own birthday?"),
    Prompt(id="fallback_question_3", category_id=FALLBACK_CATEGORY_ID, text="Who would be the first to fall asleep at a party?"),
    Prompt(id="fallback_question_4", category_id=FALLBACK_CATEGORY_ID, text="Who would adopt too many pets if given the chance?"),
    Prompt(id="fallback_question_5", category_id=FALLBACK_CATEGORY_ID, text="Who would accidentally send a text to the wrong person?"),
    Prompt(id="fallback_question_6", category_id=FALLBACK_CATEGORY_ID, text="Who would eat dessert before dinner?"),
    Prompt(id="fallback_question_7", category_id=FALLBACK_CATEGORY_ID, text="Who would get lost even with GPS?"),
    Prompt(id="fallback_question_8", category_id=FALLBACK_CATEGORY_ID, text="Who would spend their whole paycheck at a sale?"),
    Prompt(id="fallback_question_9", category_id=FALLBACK_CATEGORY_ID, text="Who would start a dance party in a serious situation?"),
    Prompt(id="fallback_question_10", category_id=FALLBACK_CATEGORY_ID, text="Who would accidentally like an old post while stalking someone online?"),
]
FALLBACK_CATEGORY = Category(
    id=FALLBACK_CATEGORY_ID,
    display_name={"en": "Fallback", "de": "Notfall", "es": "Reserva", "fr": "Secours"},
    emoji="❓",
)


@dataclass
class RoundBuild:
    prompts: List[Prompt] = field(default_factory=list)
    category_ids: List[str] = field(default_factory=list)
    degraded: bool = False


def choose_categories(
    catalog: Catalog,
    game_settings: GameSettings,
    rng: random.Random,
) -> List[str]:
    eligible = catalog.eligible_category_ids()
    if game_settings.select_categories and game_settings.selected_category_ids:
        chosen: List[str] = []
        for cid in game_settings.selected_category_ids:
            if cid in eligible and cid not in chosen:
                chosen.append(cid)
        if chosen:
            return chosen[: game_settings.category_count]
        logger.warning(
            "Selected categories unavailable, drawing at random",
            extra={"selected": list(game_settings.selected_category_ids), "language": catalog.language},
        )
    count = min(game_settings.category_count, len(eligible))
    return rng.sample(eligible, count)


def sample_category(
    prompts: List[Prompt],
    played: set[str],
    limit: int,
    rng: random.Random,
) -> List[Prompt]:
    """Échantillon d'une catégorie, repli sur la liste complète si l'historique la vide."""
    fresh = [p for p in prompts if p.text not in played]
    pool = fresh or prompts
    return rng.sample(pool, min(limit, len(pool)))


def build_round(
    catalog: Catalog,
    game_settings: GameSettings,
    history: PlayedHistory,
    *,
    rng: Optional[random.Random] = None,
) -> RoundBuild:
    """
    Construit la liste mélangée des questions de la manche.
    Effet de bord : vide l'historique s'il couvre (presque) tout le corpus.
    """
    rng = rng or random.Random()

    history.reset_if_exhausted(catalog.corpus_texts())
    played = history.texts()

    chosen = choose_categories(catalog, game_settings, rng)
    selected: List[Prompt] = []
    used: List[str] = []
    for cid in chosen:
        sample = sample_category(catalog.prompts_for(cid), played, game_settings.prompts_per_category, rng)
        if sample:
            selected.extend(sample)
            used.append(cid)

    if not selected:
        logger.warning(
            "No content available for round",
            extra={"language": catalog.language, "categories": len(catalog.categories)},
        )
        raise NoContentAvailable("no prompts available after all fallbacks")

    rng.shuffle(selected)
    logger.info(
        "Round built",
        extra={"language": catalog.language, "prompts": len(selected), "category_ids": used},
    )
    return RoundBuild(prompts=selected, category_ids=used)


def fallback_round(rng: Optional[random.Random] = None) -> RoundBuild:
    """Manche dégradée à partir des questions codées en dur."""
    rng = rng or random.Random()
    prompts = list(FALLBACK_PROMPTS)
    rng.shuffle(prompts)
    return RoundBuild(prompts=prompts, category_ids=[FALLBACK_CATEGORY_ID], degraded=True)
