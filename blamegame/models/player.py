"""
Models / player.py
Rôle:
- Définir la structure minimale d'un joueur (côté modèles Pydantic).

Champs:
- id: identifiant unique du joueur.
- name: nom d'affichage (un nom vide après trim => joueur inactif).
"""
from pydantic import BaseModel


class Player(BaseModel):
    """Profil joueur minimal pour sérialisation/validation côté API."""
    id: str  # identifiant unique (généré à l'ajout)
    name: str = ""  # nom affiché (saisi à l'écran de configuration)

    @property
    def is_active(self) -> bool:
        return bool(self.name.strip())
