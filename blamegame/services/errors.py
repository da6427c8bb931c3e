"""
Erreurs métier du moteur de jeu.

- ContentUnavailable  : une catégorie ou ses questions n'ont pas pu être récupérées.
- NoContentAvailable  : la manche est vide après tous les replis.
- InvalidSetup        : pas assez de joueurs actifs pour le mode choisi.
- PlayerValidationError : nom invalide / roster plein (ValueError pour les routes).
- InconsistentTurnState : ordre de passage vide pendant une action de tour.
- InvalidTurnAction   : action impossible dans la phase courante (no-op).

Aucune de ces erreurs ne remonte au client : le FlowController les convertit en transitions.
"""


class BlameGameError(RuntimeError):
    """Base des erreurs du moteur (code stable exposé au front)."""

    code = "error"


class ContentUnavailable(BlameGameError):
    code = "content_unavailable"


class NoContentAvailable(BlameGameError):
    code = "no_content"


class InvalidSetup(BlameGameError):
    code = "invalid_setup"


class InconsistentTurnState(BlameGameError):
    code = "inconsistent_turn_state"


class InvalidTurnAction(BlameGameError):
    code = "invalid_turn_action"


class PlayerValidationError(ValueError):
    """Nom de joueur refusé (vide, trop long, doublon) ou roster hors limites."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
