"""
Application FastAPI : point d'entrée
=================================

Rôle
----
- Instancie l'app FastAPI, configure le CORS pour le front,
- Monte les routeurs (jeu + santé),
- Trace la source de contenu et la liste des routes au démarrage.

Notes
-----
- Les importations des routeurs sont explicites pour éviter les surprises d'auto-discovery.
- Garder `settings.ALLOWED_ORIGINS` en phase avec les URLs du front.
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blamegame.routes.game import router as game_router
from blamegame.routes.health import router as health_router

from blamegame.config.settings import settings

logger = logging.getLogger(__name__)

# --- App FastAPI principale  ---
app = FastAPI(title="BlameGame Backend")

# ===========================
# CORS
# ===========================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===========================
# Montage des routers
# ===========================
app.include_router(game_router)
app.include_router(health_router)


# --- Racine utile pour "ping" simple (sans /health) ---
@app.get("/")
async def root():
    """Ping basique : permet de vérifier que l'app tourne."""
    return {"ok": True, "service": "blamegame-backend"}


# --- Hook de démarrage ---
@app.on_event("startup")
async def list_routes():
    """Trace la source de contenu et les routes enregistrées (diagnostic)."""
    logger.info(
        "Content source",
        extra={"content_base_url": settings.CONTENT_BASE_URL, "content_dir": str(settings.CONTENT_DIR)},
    )
    for r in app.routes:
        methods = getattr(r, "methods", None)
        logger.debug("Route registered", extra={"path": getattr(r, "path", ""), "methods": sorted(methods or [])})
