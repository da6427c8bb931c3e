"""
Service: flow_controller.py
Rôle:
- Orchestration "macro" d'une partie : intro → (categoryPick) → (playerSetup) → loading →
  playing → summary, avec retour à l'intro depuis n'importe quel écran (clic sur le titre).
- Médiation entre la préparation de manche (round_preparation) et le moteur de tours (turn_engine).

Chargement:
- La préparation (catalogue + tirage) tourne dans une tâche asyncio, en parallèle d'un timer
  de durée minimale; le plus tardif des deux déclenche le passage en `playing`.
- Une seule préparation à la fois : un `start`/`confirm` reçu pendant qu'elle tourne est ignoré.
- Chaque préparation porte un numéro de génération; quitter l'écran le fait avancer et le
  résultat périmé est jeté à son arrivée.

API exposée aux routes (toutes retournent {"ok", "error"?, "message"?, "state"}):
- start(), confirm(), select_categories(ids), advance(), go_back()
- select_target(name), acknowledge_reveal(), restart(), title_click(), reset_app_data()
- change_language(code), update_settings(**changes)
- add_player(name), rename_player(id, name), remove_player(id)
- status() : snapshot pour la couche de présentation
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from blamegame.config.settings import settings
from blamegame.models.content import Category, CustomCategory
from blamegame.models.game import MODE_NAMEBLAME, GameSettings
from .catalog import Catalog, load_catalog
from .content_provider import ContentProvider, CustomCategoryProvider, build_default_provider
from .errors import (
    InconsistentTurnState,
    InvalidSetup,
    InvalidTurnAction,
    NoContentAvailable,
    PlayerValidationError,
)
from .game_settings import load_game_settings, update_game_settings
from .kv_store import KEY_BLAME_LOG, KEY_CUSTOM_CATEGORIES, KEY_SETTINGS, KeyValueStore
from .played_history import PlayedHistory
from .player_roster import PlayerRoster
from .round_preparation import FALLBACK_CATEGORY, RoundBuild, build_round, fallback_round
from .turn_engine import GameRound, TurnEngine

logger = logging.getLogger(__name__)

# Écrans
STEP_INTRO = "intro"
STEP_CATEGORY_PICK = "categoryPick"
STEP_PLAYER_SETUP = "playerSetup"
STEP_LOADING = "loading"
STEP_PLAYING = "playing"
STEP_SUMMARY = "summary"

# Écrans où le roster et les réglages sont modifiables
EDITABLE_STEPS = (STEP_INTRO, STEP_CATEGORY_PICK, STEP_PLAYER_SETUP, STEP_SUMMARY)


@dataclass
class FlowController:
    store: KeyValueStore
    provider: Optional[ContentProvider] = None
    min_loading_seconds: Optional[float] = None
    rng: Optional[random.Random] = None

    step: str = field(default=STEP_INTRO, init=False)
    error: Optional[Dict[str, str]] = field(default=None, init=False)
    turns: Optional[TurnEngine] = field(default=None, init=False)
    _catalog: Optional[Catalog] = field(default=None, init=False, repr=False)
    _round_categories: Dict[str, Category] = field(default_factory=dict, init=False, repr=False)
    _build_task: Optional[asyncio.Task] = field(default=None, init=False, repr=False)
    _build_generation: int = field(default=-1, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _players_confirmed: bool = field(default=False, init=False, repr=False)
    _categories_confirmed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.provider is None:
            self.provider = build_default_provider(self.store)
        self.roster = PlayerRoster(self.store)
        self.history = PlayedHistory(self.store)

    # -------------------- utilitaires --------------------

    def game_settings(self) -> GameSettings:
        return load_game_settings(self.store)

    def _min_loading(self) -> float:
        if self.min_loading_seconds is not None:
            return self.min_loading_seconds
        return settings.MIN_LOADING_SECONDS

    @staticmethod
    def _min_players(gs: GameSettings) -> int:
        return settings.MIN_PLAYERS_NAMEBLAME if gs.is_name_blame else settings.MIN_PLAYERS_CLASSIC

    def _result(self, ok: bool = True, error: Optional[str] = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": ok}
        if error:
            payload["error"] = error
        if message:
            payload["message"] = message
        payload.update(extra)
        payload["state"] = self.status()
        return payload

    def _goto(self, step: str) -> Dict[str, Any]:
        logger.info("Flow transition", extra={"from_step": self.step, "to_step": step})
        self.step = step
        return self._result()

    def _surface(self, code: str, message: str) -> None:
        """Erreur visible côté UI (non fatale), effacée à la prochaine transition réussie."""
        self.error = {"code": code, "message": message}

    def build_pending(self) -> bool:
        """Une préparation non périmée est-elle en cours ?"""
        return (
            self._build_task is not None
            and not self._build_task.done()
            and self._build_generation == self._generation
        )

    def _ignored(self) -> Dict[str, Any]:
        logger.info("Intent ignored: round build in progress")
        return self._result(False, "build_in_progress", "A round is already being prepared.")

    def _invalid(self, intent: str) -> Dict[str, Any]:
        logger.warning("Intent refused in current step", extra={"intent": intent, "step": self.step})
        return self._result(False, "invalid_transition", f"'{intent}' is not available on '{self.step}'.")

    # -------------------- catalogue --------------------

    async def catalog(self, language: Optional[str] = None) -> Catalog:
        """Catalogue de la langue active (reconstruit si la langue change, jamais fusionné)."""
        lang = language or self.game_settings().language
        if self._catalog is not None and self._catalog.language == lang:
            return self._catalog
        catalog = await load_catalog(self.provider, lang)
        # catalogue vide ou incomplet : pas de cache, les catégories en échec seront retentées
        if not catalog.is_empty() and not catalog.excluded:
            self._catalog = catalog
        return catalog

    async def available_categories(self) -> List[Dict[str, Any]]:
        catalog = await self.catalog()
        return [c.model_dump() for c in catalog.category_summaries()]

    # -------------------- transitions de configuration --------------------

    async def start(self) -> Dict[str, Any]:
        if self.build_pending():
            return self._ignored()
        if self.step != STEP_INTRO:
            return self._invalid("start")
        gs = self.game_settings()
        self.error = None
        self._players_confirmed = False
        self._categories_confirmed = False
        if gs.is_name_blame:
            return self._goto(STEP_PLAYER_SETUP)
        if gs.select_categories:
            return self._goto(STEP_CATEGORY_PICK)
        return await self._enter_loading()

    async def confirm(self) -> Dict[str, Any]:
        if self.build_pending():
            return self._ignored()
        gs = self.game_settings()
        if self.step == STEP_PLAYER_SETUP:
            try:
                self._check_setup(gs)
            except InvalidSetup as exc:
                self._surface(exc.code, str(exc))
                return self._result(False, exc.code, str(exc))
            self.error = None
            self._players_confirmed = True
            return await self._next_setup_step(gs)
        if self.step == STEP_CATEGORY_PICK:
            gs = await self._valid_selection(gs)
            if not gs.selected_category_ids:
                message = "Select at least one category."
                self._surface("no_category_selected", message)
                return self._result(False, "no_category_selected", message)
            self.error = None
            self._categories_confirmed = True
            return await self._next_setup_step(gs)
        return self._invalid("confirm")

    async def _valid_selection(self, gs: GameSettings) -> GameSettings:
        """Retire de la sélection les catégories absentes du catalogue (catalogue vide : inchangée)."""
        catalog = await self.catalog(gs.language)
        if catalog.is_empty():
            return gs
        known = set(catalog.eligible_category_ids())
        kept = [cid for cid in gs.selected_category_ids if cid in known]
        if kept != list(gs.selected_category_ids):
            logger.info(
                "Stale categories dropped from selection",
                extra={"selected": list(gs.selected_category_ids), "kept": kept},
            )
            gs = update_game_settings(self.store, {"selected_category_ids": kept})
        return gs

    def _check_setup(self, gs: GameSettings) -> None:
        active = self.roster.active_players()
        minimum = self._min_players(gs)
        if len(active) < minimum:
            logger.warning(
                "Player setup refused",
                extra={"active_players": len(active), "minimum": minimum, "game_mode": gs.game_mode},
            )
            raise InvalidSetup(f"At least {minimum} players are required.")

    async def _next_setup_step(self, gs: GameSettings) -> Dict[str, Any]:
        if gs.is_name_blame and not self._players_confirmed:
            return self._goto(STEP_PLAYER_SETUP)
        if gs.select_categories and not self._categories_confirmed:
            return self._goto(STEP_CATEGORY_PICK)
        return await self._enter_loading()

    def select_categories(self, category_ids: List[str]) -> Dict[str, Any]:
        if self.step not in EDITABLE_STEPS:
            return self._invalid("select_categories")
        unique: List[str] = []
        for cid in category_ids:
            if cid and cid not in unique:
                unique.append(cid)
        if self._catalog is not None:
            known = set(self._catalog.eligible_category_ids())
            unique = [cid for cid in unique if cid in known]
        update_game_settings(self.store, {"selected_category_ids": unique})
        return self._result()

    # -------------------- chargement --------------------

    async def _enter_loading(self) -> Dict[str, Any]:
        gs = self.game_settings()
        self._generation += 1
        generation = self._generation
        self.turns = None
        self.error = None
        self._goto(STEP_LOADING)
        self._build_generation = generation
        self._build_task = asyncio.create_task(self._prepare_round(generation, gs))
        return self._result()

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or self.step != STEP_LOADING

    async def _prepare_round(self, generation: int, gs: GameSettings) -> None:
        """Préparation + timer plancher; applique le résultat seulement s'il n'est pas périmé."""
        timer = asyncio.create_task(asyncio.sleep(self._min_loading()))
        try:
            build: Optional[RoundBuild] = None
            failure = ("no_content", "No questions are available for this round.")
            catalog: Optional[Catalog] = None
            try:
                catalog = await self.catalog(gs.language)
                build = build_round(catalog, gs, self.history, rng=self.rng)
            except NoContentAvailable:
                if not gs.is_name_blame and settings.FALLBACK_PROMPTS_ENABLED:
                    logger.warning("Falling back to built-in prompts", extra={"language": gs.language})
                    build = fallback_round(self.rng)
            except Exception:
                logger.exception("Unexpected error while preparing round", extra={"language": gs.language})
                failure = ("build_failed", "The round could not be prepared.")

            if build is None:
                if self._is_stale(generation):
                    logger.debug("Stale round failure discarded", extra={"generation": generation})
                    return
                self._surface(*failure)
                self._goto(STEP_INTRO)
                return

            await timer
            if self._is_stale(generation):
                logger.debug("Stale round build discarded", extra={"generation": generation})
                return
            self._enter_playing(build, gs, catalog)
        finally:
            timer.cancel()

    async def wait_for_round(self) -> None:
        """Attend la fin de la préparation en cours (utile pour les clients en long-poll)."""
        task = self._build_task
        if task is not None and not task.done():
            await task

    def _enter_playing(self, build: RoundBuild, gs: GameSettings, catalog: Optional[Catalog]) -> None:
        order = self.roster.active_players()
        if gs.is_name_blame and len(order) < self._min_players(gs):
            self._force_player_setup("enter_playing")
            return
        self._round_categories = {}
        for cid in build.category_ids:
            category = catalog.category(cid) if catalog is not None else None
            self._round_categories[cid] = category or FALLBACK_CATEGORY
        self.turns = TurnEngine(
            GameRound(build.prompts, build.category_ids, degraded=build.degraded),
            order,
            gs.game_mode,
        )
        if build.degraded:
            self._surface("degraded", "Content could not be loaded; playing with built-in questions.")
        logger.info(
            "Round started",
            extra={"prompts": len(build.prompts), "players": len(order), "game_mode": gs.game_mode},
        )
        self._goto(STEP_PLAYING)

    # -------------------- partie --------------------

    def _force_player_setup(self, action: str) -> Dict[str, Any]:
        logger.error("Inconsistent turn state, returning to player setup", extra={"action": action})
        self._generation += 1
        self.turns = None
        self._players_confirmed = False
        self._surface("inconsistent_turn_state", "Players need to be set up again.")
        return self._goto(STEP_PLAYER_SETUP)

    def _turn_action(self, action: str, fn: Callable[[], Any]) -> Dict[str, Any]:
        """Exécute une opération du moteur de tours et convertit ses erreurs en transitions."""
        if self.step != STEP_PLAYING or self.turns is None:
            return self._invalid(action)
        turns = self.turns
        if turns.game_mode == MODE_NAMEBLAME and 0 < len(turns.turn_order) < settings.MIN_PLAYERS_NAMEBLAME:
            return self._force_player_setup(action)
        try:
            finished = fn()
        except InconsistentTurnState:
            return self._force_player_setup(action)
        except InvalidTurnAction as exc:
            return self._result(False, exc.code, str(exc))
        if finished is True:
            return self._finish_round()
        return self._result()

    def advance(self) -> Dict[str, Any]:
        return self._turn_action("advance", lambda: self.turns.advance_turn_classic())

    def select_target(self, target_name: str) -> Dict[str, Any]:
        def _select() -> bool:
            if self.turns.game_mode != MODE_NAMEBLAME:
                raise InvalidTurnAction("blaming is only available in nameBlame mode")
            blamer = self.turns.current_player()
            entry = self.turns.select_target(blamer.name if blamer else "", target_name)
            log = self.store.get(KEY_BLAME_LOG, []) or []
            log.append(entry.model_dump(mode="json"))
            self.store.set(KEY_BLAME_LOG, log)
            return False

        return self._turn_action("select_target", _select)

    def acknowledge_reveal(self) -> Dict[str, Any]:
        return self._turn_action("acknowledge_reveal", lambda: self.turns.acknowledge_reveal())

    def go_back(self) -> Dict[str, Any]:
        if self.step != STEP_PLAYING or self.turns is None:
            return self._invalid("go_back")
        moved = self.turns.go_to_previous_prompt()
        return self._result(moved=moved)

    def _finish_round(self) -> Dict[str, Any]:
        turns = self.turns
        if turns is not None and not turns.game_round.degraded:
            self.history.record(p.text for p in turns.game_round.prompts)
        return self._goto(STEP_SUMMARY)

    def restart(self) -> Dict[str, Any]:
        if self.step != STEP_SUMMARY:
            return self._invalid("restart")
        return self._back_to_intro()

    def title_click(self) -> Dict[str, Any]:
        """Retour à l'intro depuis n'importe quel écran (abandonne la manche en cours)."""
        return self._back_to_intro()

    def reset_app_data(self) -> Dict[str, Any]:
        """Efface historique, joueurs, journal des accusations, réglages et catégories perso, puis retour intro."""
        self.history.clear()
        self.roster.reset()
        self.store.set(KEY_BLAME_LOG, [])
        self.store.set(KEY_SETTINGS, GameSettings().model_dump())
        self.store.set(KEY_CUSTOM_CATEGORIES, [])
        self._catalog = None
        logger.info("App data reset")
        return self._back_to_intro()

    def _back_to_intro(self) -> Dict[str, Any]:
        self._generation += 1
        self.turns = None
        self._round_categories = {}
        self.error = None
        return self._goto(STEP_INTRO)

    # -------------------- réglages / joueurs --------------------

    def change_language(self, language: str) -> Dict[str, Any]:
        if language not in settings.SUPPORTED_LANGUAGES:
            return self._result(False, "unsupported_language", f"Language '{language}' is not supported.")
        update_game_settings(self.store, {"language": language})
        self._catalog = None
        logger.info("Language changed", extra={"language": language})
        return self._result()

    def update_settings(self, **changes: Any) -> Dict[str, Any]:
        if self.step not in EDITABLE_STEPS:
            return self._result(False, "settings_locked", "Settings cannot change during a round.")
        try:
            gs = update_game_settings(self.store, changes)
        except (ValidationError, ValueError) as exc:
            return self._result(False, "invalid_settings", str(exc))
        if self._catalog is not None and self._catalog.language != gs.language:
            self._catalog = None
        return self._result()

    def _roster_action(self, fn: Callable[[], Any]) -> Dict[str, Any]:
        if self.step not in EDITABLE_STEPS:
            return self._result(False, "roster_locked", "Players cannot change during a round.")
        try:
            fn()
        except PlayerValidationError as exc:
            return self._result(False, exc.code, str(exc))
        return self._result()

    def add_player(self, name: str) -> Dict[str, Any]:
        return self._roster_action(lambda: self.roster.add_player(name))

    def rename_player(self, player_id: str, name: str) -> Dict[str, Any]:
        return self._roster_action(lambda: self.roster.rename_player(player_id, name))

    def remove_player(self, player_id: str) -> Dict[str, Any]:
        return self._roster_action(lambda: self.roster.remove_player(player_id))

    def save_custom_category(self, category: CustomCategory) -> Dict[str, Any]:
        if not isinstance(self.provider, CustomCategoryProvider):
            return self._result(False, "custom_categories_unsupported")
        self.provider.save_custom_category(category)
        self._catalog = None
        return self._result()

    def delete_custom_category(self, category_id: str) -> Dict[str, Any]:
        if not isinstance(self.provider, CustomCategoryProvider):
            return self._result(False, "custom_categories_unsupported")
        if not self.provider.delete_custom_category(category_id):
            return self._result(False, "category_not_found")
        self._catalog = None
        selected = self.game_settings().selected_category_ids
        if category_id in selected:
            update_game_settings(
                self.store, {"selected_category_ids": [cid for cid in selected if cid != category_id]}
            )
        return self._result()

    # -------------------- snapshot --------------------

    def _prompt_view(self, gs: GameSettings) -> Optional[Dict[str, Any]]:
        if self.turns is None:
            return None
        prompt = self.turns.game_round.current
        category = self._round_categories.get(prompt.category_id, FALLBACK_CATEGORY)
        return {
            "id": prompt.id,
            "text": prompt.text,
            "category_id": prompt.category_id,
            "category_name": category.name_for(gs.language, settings.FALLBACK_LANGUAGES),
            "category_emoji": category.emoji,
        }

    def _summary(self) -> Optional[Dict[str, Any]]:
        if self.step != STEP_SUMMARY or self.turns is None:
            return None
        per_category: Dict[str, int] = {}
        for prompt in self.turns.game_round.prompts:
            per_category[prompt.category_id] = per_category.get(prompt.category_id, 0) + 1
        return {
            "total_prompts": len(self.turns.game_round.prompts),
            "categories": per_category,
            "blame_counts": self.turns.blame_counts(),
            "most_blamed": self.turns.most_blamed(),
        }

    def status(self) -> Dict[str, Any]:
        """Snapshot pour la présentation : écran, question active, ordre de passage, phase."""
        gs = self.game_settings()
        turns = self.turns
        snapshot: Dict[str, Any] = {
            "step": self.step,
            "error": self.error,
            "settings": gs.model_dump(),
            "build_pending": self.build_pending(),
            "players": [p.model_dump() for p in self.roster.players()],
            "round": None,
            "prompt": self._prompt_view(gs),
            "turn_order": [],
            "current_player_index": 0,
            "current_player": None,
            "blame_round": None,
            "summary": self._summary(),
        }
        if turns is not None:
            current = turns.current_player()
            snapshot.update(
                {
                    "round": {
                        "cursor": turns.game_round.cursor,
                        "total": len(turns.game_round.prompts),
                        "category_ids": list(turns.game_round.category_ids),
                        "degraded": turns.game_round.degraded,
                        "game_mode": turns.game_mode,
                    },
                    "turn_order": [p.model_dump() for p in turns.turn_order],
                    "current_player_index": turns.safe_index(),
                    "current_player": current.name if current else None,
                    "blame_round": turns.blame_round.model_dump(mode="json")
                    if turns.game_mode == MODE_NAMEBLAME
                    else None,
                }
            )
        return snapshot
