"""
Service: content_provider.py
- Sources de contenu (catégories + questions localisées) consommées par le catalogue.
- Chaque appel peut échouer indépendamment → `ContentUnavailable`.

Arborescence attendue (fichiers ou HTTP):
- questions/categories.json            → [{"id", "emoji", "de": "...", "en": "...", ...}]
- questions/<lang>/<category_id>.json  → [{"questionId", "text", "category"?}]

Repli de langue:
- Si le fichier de questions manque dans la langue active, on tente `FALLBACK_LANGUAGES`
  (en, puis de) en sautant la langue active. Échec partout → ContentUnavailable.

Implémentations:
- FileContentProvider   : lecture disque (orjson).
- HttpContentProvider   : requests, exécuté dans un thread worker (anyio).
- StaticContentProvider : mapping en mémoire (tests, contenu de secours).
- CustomCategoryProvider: ajoute les catégories perso du store après les catégories natives.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import anyio
import orjson
import requests

from blamegame.config.settings import settings
from blamegame.models.content import Category, CustomCategory, Prompt
from .errors import ContentUnavailable
from .io_utils import loads_json, read_json
from .kv_store import KEY_CUSTOM_CATEGORIES, KeyValueStore

logger = logging.getLogger(__name__)

LANGUAGE_KEYS_EXCLUDED = {"id", "emoji"}


class ContentProvider(Protocol):
    async def list_categories(self, language: str) -> List[Category]: ...

    async def list_prompts(self, category_id: str, language: str) -> List[Prompt]: ...


# -------------------- parsing --------------------

def parse_categories(raw: Any) -> List[Category]:
    """categories.json → Category (les clés autres que id/emoji sont des langues)."""
    if not isinstance(raw, list):
        raise ContentUnavailable("categories payload is not a list")
    categories: List[Category] = []
    seen: set[str] = set()
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        cid = str(entry["id"])
        if cid in seen:
            continue
        seen.add(cid)
        names = {
            k: str(v)
            for k, v in entry.items()
            if k not in LANGUAGE_KEYS_EXCLUDED and isinstance(v, str) and v.strip()
        }
        categories.append(Category(id=cid, display_name=names, emoji=entry.get("emoji") or "❓"))
    return categories


def parse_prompts(raw: Any, category_id: str) -> List[Prompt]:
    """<lang>/<category>.json → Prompt (textes vides ignorés, id généré si absent)."""
    if not isinstance(raw, list):
        raise ContentUnavailable(f"prompts payload for {category_id} is not a list")
    prompts: List[Prompt] = []
    for idx, entry in enumerate(raw):
        if not isinstance(entry, dict):
            continue
        text = (entry.get("text") or "").strip()
        if not text:
            continue
        pid = str(entry.get("questionId") or entry.get("id") or f"{category_id}-{idx}")
        prompts.append(Prompt(id=pid, category_id=category_id, text=text))
    return prompts


def language_cascade(language: str, fallbacks: Optional[Sequence[str]] = None) -> List[str]:
    """Langue active puis langues de repli (sans doublon)."""
    order = [language]
    for lang in fallbacks if fallbacks is not None else settings.FALLBACK_LANGUAGES:
        if lang not in order:
            order.append(lang)
    return order


# -------------------- fichiers --------------------

class FileContentProvider:
    """Contenu lu depuis `<root>/questions/...`."""

    def __init__(self, root: Path | str | None = None, *, fallbacks: Optional[Sequence[str]] = None) -> None:
        self.root = Path(root or settings.CONTENT_DIR)
        self.fallbacks = list(fallbacks) if fallbacks is not None else list(settings.FALLBACK_LANGUAGES)

    def _read(self, relative: str) -> Any:
        path = self.root / "questions" / relative
        try:
            data = read_json(path)
        except (OSError, orjson.JSONDecodeError) as exc:
            raise ContentUnavailable(f"cannot read {path}") from exc
        if data is None:
            raise ContentUnavailable(f"missing {path}")
        return data

    async def list_categories(self, language: str) -> List[Category]:
        return parse_categories(self._read("categories.json"))

    async def list_prompts(self, category_id: str, language: str) -> List[Prompt]:
        for lang in language_cascade(language, self.fallbacks):
            try:
                prompts = parse_prompts(self._read(f"{lang}/{category_id}.json"), category_id)
            except ContentUnavailable:
                continue
            if lang != language:
                logger.info(
                    "Prompt language fallback",
                    extra={"category_id": category_id, "language": language, "fallback_language": lang},
                )
            return prompts
        raise ContentUnavailable(f"no prompts for category {category_id} in any language")


# -------------------- HTTP --------------------

class HttpContentProvider:
    """Même arborescence servie en HTTP (CDN / GitHub pages)."""

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        fallbacks: Optional[Sequence[str]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.fallbacks = list(fallbacks) if fallbacks is not None else list(settings.FALLBACK_LANGUAGES)

    def _get_sync(self, relative: str) -> Any:
        url = f"{self.base_url}/questions/{relative}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return loads_json(response.content)
        except requests.RequestException as exc:
            logger.warning("Content request failed", extra={"content_url": url})
            raise ContentUnavailable(f"request failed: {url}") from exc
        except orjson.JSONDecodeError as exc:
            logger.warning("Invalid JSON payload from content host", extra={"content_url": url})
            raise ContentUnavailable(f"invalid JSON: {url}") from exc

    async def _get(self, relative: str) -> Any:
        return await anyio.to_thread.run_sync(self._get_sync, relative)

    async def list_categories(self, language: str) -> List[Category]:
        return parse_categories(await self._get("categories.json"))

    async def list_prompts(self, category_id: str, language: str) -> List[Prompt]:
        for lang in language_cascade(language, self.fallbacks):
            try:
                return parse_prompts(await self._get(f"{lang}/{category_id}.json"), category_id)
            except ContentUnavailable:
                continue
        raise ContentUnavailable(f"no prompts for category {category_id} in any language")


# -------------------- mémoire --------------------

class StaticContentProvider:
    """Contenu en mémoire : {category_id: [Prompt]} par langue, catégories communes."""

    def __init__(
        self,
        categories: Iterable[Category],
        prompts: Dict[str, Dict[str, List[Prompt]]],
        *,
        failing: Iterable[str] = (),
    ) -> None:
        self.categories = list(categories)
        self.prompts = prompts  # {language: {category_id: [Prompt]}}
        self.failing = set(failing)

    async def list_categories(self, language: str) -> List[Category]:
        return list(self.categories)

    async def list_prompts(self, category_id: str, language: str) -> List[Prompt]:
        if category_id in self.failing:
            raise ContentUnavailable(f"category {category_id} unavailable")
        by_category = self.prompts.get(language) or {}
        if category_id not in by_category:
            raise ContentUnavailable(f"no prompts for category {category_id} in {language}")
        return list(by_category[category_id])


class CustomCategoryProvider:
    """Décore un provider en ajoutant les catégories perso persistées (ajoutées en fin de liste)."""

    def __init__(self, inner: ContentProvider, store: KeyValueStore) -> None:
        self.inner = inner
        self.store = store

    def custom_categories(self) -> List[CustomCategory]:
        raw = self.store.get(KEY_CUSTOM_CATEGORIES, []) or []
        return [CustomCategory.model_validate(item) for item in raw if isinstance(item, dict)]

    def save_custom_category(self, category: CustomCategory) -> None:
        """Ajoute ou remplace (même id) une catégorie perso."""
        items = [c for c in self.custom_categories() if c.id != category.id]
        items.append(category)
        self.store.set(KEY_CUSTOM_CATEGORIES, [c.model_dump() for c in items])

    def delete_custom_category(self, category_id: str) -> bool:
        items = self.custom_categories()
        kept = [c for c in items if c.id != category_id]
        if len(kept) == len(items):
            return False
        self.store.set(KEY_CUSTOM_CATEGORIES, [c.model_dump() for c in kept])
        return True

    async def list_categories(self, language: str) -> List[Category]:
        builtin = await self.inner.list_categories(language)
        known = {c.id for c in builtin}
        extra = [c.to_category() for c in self.custom_categories() if c.id not in known]
        return builtin + extra

    async def list_prompts(self, category_id: str, language: str) -> List[Prompt]:
        for custom in self.custom_categories():
            if custom.id == category_id:
                return custom.prompts_for(language)
        return await self.inner.list_prompts(category_id, language)


def build_default_provider(store: KeyValueStore) -> ContentProvider:
    """Provider par défaut : HTTP si CONTENT_BASE_URL, sinon fichiers embarqués, + catégories perso."""
    if settings.CONTENT_BASE_URL:
        inner: ContentProvider = HttpContentProvider(settings.CONTENT_BASE_URL)
    else:
        inner = FileContentProvider()
    return CustomCategoryProvider(inner, store)
