"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres de l'app (nom, host/port, chemins, contenu, règles de jeu).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from blamegame.config.settings import settings`.

Bonnes pratiques
----------------
- `CONTENT_DIR` pointe par défaut vers le contenu embarqué : `<repo>/blamegame/data`.
- Si `CONTENT_BASE_URL` est renseigné, le contenu est récupéré en HTTP (même arborescence).
- `MIN_LOADING_SECONDS=0` est pratique en test pour ne pas attendre l'écran de chargement.

Exemples de `.env`
------------------
APP_NAME="BlameGame Backend (Staging)"
HOST="0.0.0.0"
PORT=8080
DEFAULT_LANGUAGE="en"
CONTENT_BASE_URL="https://cdn.example.org/blamegame"
DATA_DIR="/var/opt/blamegame/data"
MIN_LOADING_SECONDS=2.5
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "BlameGame Backend"
    # Bind réseau (FastAPI / Uvicorn)
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    # Frontends autorisés (CORS)
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Répertoire des fichiers persistés (store clé/valeur par session)
    # Par défaut: <repo>/blamegame/data/runtime
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "runtime")
    STORE_FILENAME: str = "store.json"

    # Contenu (catégories + questions localisées)
    # questions/categories.json et questions/<lang>/<category_id>.json
    CONTENT_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
    CONTENT_BASE_URL: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Langues
    DEFAULT_LANGUAGE: str = "de"
    SUPPORTED_LANGUAGES: List[str] = ["en", "de", "es", "fr"]
    # Ordre de repli si un fichier de questions manque dans la langue active
    FALLBACK_LANGUAGES: List[str] = ["en", "de"]

    # Règles de manche
    DEFAULT_CATEGORY_COUNT: int = 10
    DEFAULT_PROMPTS_PER_CATEGORY: int = 10
    # Au-delà de cette fraction du corpus déjà jouée, l'historique est vidé
    HISTORY_RESET_FRACTION: float = 2 / 3
    # Questions codées en dur si aucun contenu n'est disponible (mode classique uniquement)
    FALLBACK_PROMPTS_ENABLED: bool = True
    # Durée plancher de l'écran de chargement (secondes)
    MIN_LOADING_SECONDS: float = 2.0

    # Joueurs
    MIN_PLAYERS_NAMEBLAME: int = 3
    MIN_PLAYERS_CLASSIC: int = 2
    MAX_PLAYERS: int = 10
    MAX_PLAYER_NAME_LENGTH: int = 20

    # Paramétrage pydantic-settings :
    # - lit le fichier .env (UTF-8) si présent
    # - ignore les clés supplémentaires pour éviter les erreurs
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Instance unique importable partout : `settings`
settings = Settings()
