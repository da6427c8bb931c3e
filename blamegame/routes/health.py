"""
Module routes/health.py
Rôle:
- Endpoints de santé (service OK + source de contenu configurée).
"""
from fastapi import APIRouter

from blamegame.config.settings import settings
from blamegame.services.session_store import list_session_ids

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    """Renvoie un OK minimal avec le nom de service configuré."""
    return {"ok": True, "service": settings.APP_NAME}


@router.get("/content")
async def health_content():
    """Indique la source de contenu active (HTTP ou fichiers embarqués) et les sessions chargées."""
    return {
        "ok": True,
        "source": "http" if settings.CONTENT_BASE_URL else "files",
        "location": settings.CONTENT_BASE_URL or str(settings.CONTENT_DIR),
        "languages": settings.SUPPORTED_LANGUAGES,
        "sessions_loaded": len(list_session_ids()),
    }
