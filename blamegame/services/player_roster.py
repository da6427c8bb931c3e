"""
Service: player_roster.py
Rôle :
- Gérer la liste des joueurs (ajout, renommage, retrait) persistée dans le store clé/valeur.
- Valider les noms : non vide, longueur max, pas de doublon (insensible à la casse).

Règles :
- Le roster démarre avec deux emplacements vides (saisie directe à l'écran de configuration).
- Au plus `MAX_PLAYERS` entrées; jamais moins de deux entrées (retrait refusé).
- Un joueur au nom vide après trim n'est jamais "actif".
"""
from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from blamegame.config.settings import settings
from blamegame.models.player import Player
from .errors import PlayerValidationError
from .kv_store import KEY_PLAYERS, KeyValueStore

MIN_ROSTER_ENTRIES = 2


def _default_players() -> List[Player]:
    return [Player(id="player1", name=""), Player(id="player2", name="")]


def validate_player_name(name: str, existing: List[Player], *, ignore_id: Optional[str] = None) -> str:
    """Retourne le nom normalisé ou lève PlayerValidationError."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise PlayerValidationError("name_empty", "Player name must not be empty.")
    if len(trimmed) > settings.MAX_PLAYER_NAME_LENGTH:
        raise PlayerValidationError(
            "name_too_long", f"Player name must be at most {settings.MAX_PLAYER_NAME_LENGTH} characters."
        )
    lowered = trimmed.lower()
    for p in existing:
        if p.id != ignore_id and p.name.strip().lower() == lowered:
            raise PlayerValidationError("name_duplicate", "This name already exists.")
    return trimmed


class PlayerRoster:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # === lecture ===
    def players(self) -> List[Player]:
        raw = self.store.get(KEY_PLAYERS)
        if not isinstance(raw, list):
            return _default_players()
        return [Player.model_validate(p) for p in raw if isinstance(p, dict) and p.get("id")]

    def active_players(self) -> List[Player]:
        return [p for p in self.players() if p.is_active]

    def _save(self, players: List[Player]) -> None:
        self.store.set(KEY_PLAYERS, [p.model_dump() for p in players])

    # === écriture ===
    def add_player(self, name: str) -> Player:
        players = self.players()
        if len(players) >= settings.MAX_PLAYERS:
            raise PlayerValidationError("roster_full", f"At most {settings.MAX_PLAYERS} players allowed.")
        player = Player(id=f"player-{uuid4().hex[:8]}", name=validate_player_name(name, players))
        players.append(player)
        self._save(players)
        return player

    def rename_player(self, player_id: str, name: str) -> Player:
        """Renomme un joueur; un nom vide est accepté (emplacement vidé, joueur inactif)."""
        players = self.players()
        for idx, p in enumerate(players):
            if p.id == player_id:
                new_name = validate_player_name(name, players, ignore_id=player_id) if (name or "").strip() else ""
                players[idx] = Player(id=p.id, name=new_name)
                self._save(players)
                return players[idx]
        raise PlayerValidationError("player_not_found", f"Unknown player {player_id}.")

    def remove_player(self, player_id: str) -> None:
        players = self.players()
        if len(players) <= MIN_ROSTER_ENTRIES:
            raise PlayerValidationError("roster_minimum", f"At least {MIN_ROSTER_ENTRIES} player slots required.")
        kept = [p for p in players if p.id != player_id]
        if len(kept) == len(players):
            raise PlayerValidationError("player_not_found", f"Unknown player {player_id}.")
        self._save(kept)

    def reset(self) -> None:
        self._save(_default_players())
