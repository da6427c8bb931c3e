"""
Service: turn_engine.py
Rôle:
- Machine à états des tours de jeu pour une manche : curseur de question, joueur courant,
  sous-phase NameBlame (selecting → reveal) et journal des accusations.

Deux rotations distinctes (ne pas fusionner):
- advance_turn_classic() : question suivante, joueur courant = suivant de gauche à droite.
- acknowledge_reveal()   : question suivante, joueur courant = joueur qui vient d'être accusé.

Invariants:
- L'ordre de passage (`turn_order`) est figé au lancement de la manche.
- Le pointeur de joueur est toujours ramené modulo len(turn_order) avant usage.
- Le journal des accusations est append-only (revenir en arrière ne retire rien).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from blamegame.models.blame import PHASE_REVEAL, PHASE_SELECTING, BlameEntry, BlameRoundState
from blamegame.models.content import Prompt
from blamegame.models.game import MODE_CLASSIC, MODE_NAMEBLAME, GameMode
from blamegame.models.player import Player
from .errors import InconsistentTurnState, InvalidTurnAction

logger = logging.getLogger(__name__)


# -------------------- agrégation --------------------

def blame_counts_by_target(log: List[BlameEntry]) -> Dict[str, int]:
    """Nombre d'accusations par joueur accusé (ordre de première apparition)."""
    counts: Dict[str, int] = {}
    for entry in log:
        counts[entry.to_player] = counts.get(entry.to_player, 0) + 1
    return counts


def most_blamed(log: List[BlameEntry]) -> List[str]:
    """Joueur(s) le(s) plus accusé(s); en cas d'égalité, tous les ex aequo."""
    counts = blame_counts_by_target(log)
    if not counts:
        return []
    top = max(counts.values())
    return [name for name, count in counts.items() if count == top]


# -------------------- manche --------------------

@dataclass
class GameRound:
    """Liste ordonnée des questions d'une manche + curseur (jamais modifiée hors curseur)."""
    prompts: List[Prompt]
    category_ids: List[str] = field(default_factory=list)
    cursor: int = 0
    degraded: bool = False

    def __post_init__(self) -> None:
        if not self.prompts:
            raise ValueError("a round needs at least one prompt")
        self.prompts = list(self.prompts)

    @property
    def current(self) -> Prompt:
        return self.prompts[self.cursor]

    @property
    def is_last(self) -> bool:
        return self.cursor >= len(self.prompts) - 1

    def advance(self) -> bool:
        """Passe à la question suivante; False si on était déjà sur la dernière."""
        if self.is_last:
            return False
        self.cursor += 1
        return True

    def rewind(self) -> bool:
        if self.cursor == 0:
            return False
        self.cursor -= 1
        return True


@dataclass
class TurnEngine:
    game_round: GameRound
    turn_order: List[Player]
    game_mode: GameMode = MODE_CLASSIC
    current_index: int = 0
    blame_round: BlameRoundState = field(default_factory=BlameRoundState)
    blame_log: List[BlameEntry] = field(default_factory=list)
    finished: bool = False

    def __post_init__(self) -> None:
        # copie : l'ordre ne suit pas les modifications ultérieures du roster
        self.turn_order = list(self.turn_order)
        if self.game_mode == MODE_NAMEBLAME:
            self.begin_blame_round(self.prompt_key(), self.player_names())

    # === lecture ===
    def player_names(self) -> List[str]:
        return [p.name for p in self.turn_order]

    def safe_index(self) -> int:
        if not self.turn_order:
            return 0
        return self.current_index % len(self.turn_order)

    def current_player(self) -> Optional[Player]:
        if not self.turn_order:
            return None
        return self.turn_order[self.safe_index()]

    def prompt_key(self) -> str:
        """Identité de la question active (curseur + id stable, pas de fragment de texte)."""
        prompt = self.game_round.current
        return f"{self.game_round.cursor}:{prompt.category_id}:{prompt.id}"

    def _require_turn_order(self, action: str) -> None:
        if not self.turn_order:
            logger.error(
                "Stable turn order is empty",
                extra={"action": action, "cursor": self.game_round.cursor, "game_mode": self.game_mode},
            )
            raise InconsistentTurnState(f"{action}: stable turn order is empty")

    # === NameBlame ===
    def begin_blame_round(self, prompt_key: str, active_player_names: List[str]) -> None:
        self.blame_round = BlameRoundState(prompt_key=prompt_key, phase=PHASE_SELECTING)
        logger.debug(
            "Blame round started",
            extra={"prompt_key": prompt_key, "players": len(active_player_names)},
        )

    def record_blame(self, blamer: str, target: str, prompt_text: str) -> BlameEntry:
        entry = BlameEntry(from_player=blamer, to_player=target, prompt_text=prompt_text)
        self.blame_log.append(entry)
        return entry

    def select_target(self, blamer_name: str, target_name: str) -> BlameEntry:
        """selecting → reveal : enregistre l'accusation de `blamer_name` sur `target_name`."""
        self._require_turn_order("select_target")
        if self.blame_round.phase != PHASE_SELECTING:
            raise InvalidTurnAction("a blame is already being revealed")
        names = self.player_names()
        if blamer_name not in names or target_name not in names:
            raise InvalidTurnAction("unknown player")
        if blamer_name == target_name:
            raise InvalidTurnAction("players cannot blame themselves")

        entry = self.record_blame(blamer_name, target_name, self.game_round.current.text)
        self.blame_round.phase = PHASE_REVEAL
        self.blame_round.current_blamer = blamer_name
        self.blame_round.current_blamed = target_name
        self.blame_round.players_who_acted.add(blamer_name)
        logger.info("Blame recorded", extra={"blamer": blamer_name, "blamed": target_name})
        return entry

    def acknowledge_reveal(self) -> bool:
        """reveal → selecting : l'accusé devient le joueur courant. Retourne True si manche terminée."""
        self._require_turn_order("acknowledge_reveal")
        if self.blame_round.phase != PHASE_REVEAL:
            raise InvalidTurnAction("nothing to acknowledge")

        blamed = self.blame_round.current_blamed
        names = self.player_names()
        if blamed in names:
            self.current_index = names.index(blamed)

        if not self.game_round.advance():
            self.finished = True
            self.blame_round = BlameRoundState(prompt_key=self.blame_round.prompt_key)
            return True
        self.begin_blame_round(self.prompt_key(), names)
        return False

    # === classique ===
    def advance_turn_classic(self) -> bool:
        """Question suivante, joueur suivant (modulo). Retourne True si manche terminée."""
        if self.game_mode != MODE_CLASSIC:
            raise InvalidTurnAction("classic advance is not available in nameBlame mode")
        if not self.game_round.advance():
            self.finished = True
            return True
        if self.turn_order:
            self.current_index = (self.safe_index() + 1) % len(self.turn_order)
        return False

    # === navigation ===
    def go_to_previous_prompt(self) -> bool:
        """Question précédente (jamais sous 0); en NameBlame, joueur précédent si possible."""
        if not self.game_round.rewind():
            return False
        if self.game_mode == MODE_NAMEBLAME:
            idx = self.safe_index()
            if idx > 0:
                self.current_index = idx - 1
            self.begin_blame_round(self.prompt_key(), self.player_names())
        return True

    # === résumé ===
    def blame_counts(self) -> Dict[str, int]:
        return blame_counts_by_target(self.blame_log)

    def most_blamed(self) -> List[str]:
        return most_blamed(self.blame_log)
