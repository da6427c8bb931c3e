"""
Utilitaires IO JSON (rapides) basés sur orjson.
- read_json(Path)  → Any | None (None si fichier manquant)
- write_json(Path, data) → écrit en binaire (création des dossiers si besoin)

Attention:
- orjson renvoie/attend des bytes; on lit/écrit en mode binaire.
- Les fichiers de contenu sont en UTF-8 (emojis inclus), orjson les décode nativement.
"""
import orjson as json
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any:
    """Lit un fichier JSON (ou None s'il n'existe pas)."""
    if not path.exists():
        return None
    with path.open("rb") as f:
        return json.loads(f.read())


def loads_json(raw: bytes | str) -> Any:
    """Décode un payload JSON reçu en mémoire (réponse HTTP par ex.)."""
    return json.loads(raw)


def write_json(path: Path, data: Any) -> None:
    """Écrit un fichier JSON de manière sûre (dossier parent créé si absent)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("wb") as f:
        f.write(json.dumps(data, option=json.OPT_INDENT_2))
    tmp.replace(path)
