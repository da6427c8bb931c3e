"""
Module routes/game.py
Rôle:
- Adaptateur HTTP du FlowController : chaque endpoint traduit une intention UI
  (start, confirm, blame, ...) et renvoie {"ok", "error"?, "message"?, "state"}.

Intégrations:
- session_store: un FlowController par session (store JSON sur disque).
- Les refus métier (mauvais écran, joueur invalide, ...) restent en 200 avec ok=False;
  seule une session inconnue donne un 404 (identifiant mal formé : 422).
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException, Path, Query
from pydantic import BaseModel, Field

from blamegame.models.content import CustomCategory
from blamegame.services.flow_controller import FlowController
from blamegame.services.session_store import SESSION_ID_PATTERN, create_session, get_flow

router = APIRouter(prefix="/game", tags=["game"])

# Identifiant de session = nom de dossier : caractères restreints
SessionId = Annotated[str, Path(pattern=SESSION_ID_PATTERN)]


# ---------------------------------------------------------------------------
# Modèles Pydantic
# ---------------------------------------------------------------------------
class SessionCreatePayload(BaseModel):
    session_id: Optional[str] = Field(None, description="Identifiant imposé (sinon auto)", pattern=SESSION_ID_PATTERN)


class BlamePayload(BaseModel):
    target: str = Field(..., min_length=1, description="Nom du joueur accusé")


class CategoriesPayload(BaseModel):
    category_ids: List[str] = Field(default_factory=list)


class LanguagePayload(BaseModel):
    language: str


class SettingsPayload(BaseModel):
    category_count: Optional[int] = Field(None, ge=1)
    prompts_per_category: Optional[int] = Field(None, ge=1)
    game_mode: Optional[Literal["classic", "nameBlame"]] = None
    language: Optional[str] = None
    select_categories: Optional[bool] = None


class PlayerPayload(BaseModel):
    name: str = ""


def _flow(session_id: str) -> FlowController:
    flow = get_flow(session_id, create=False)
    if flow is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    return flow


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
@router.post("")
async def game_create(payload: SessionCreatePayload) -> Dict[str, Any]:
    sid = create_session(payload.session_id)
    return {"ok": True, "session_id": sid, "state": _flow(sid).status()}


@router.get("/{session_id}/state")
async def game_state(session_id: SessionId) -> Dict[str, Any]:
    return _flow(session_id).status()


# ---------------------------------------------------------------------------
# Flux d'écrans
# ---------------------------------------------------------------------------
@router.post("/{session_id}/start")
async def game_start(session_id: SessionId, wait: bool = Query(False)) -> Dict[str, Any]:
    """Lance une partie; avec ?wait=true, attend la fin du chargement avant de répondre."""
    flow = _flow(session_id)
    result = await flow.start()
    if wait:
        await flow.wait_for_round()
        result["state"] = flow.status()
    return result


@router.post("/{session_id}/confirm")
async def game_confirm(session_id: SessionId, wait: bool = Query(False)) -> Dict[str, Any]:
    flow = _flow(session_id)
    result = await flow.confirm()
    if wait:
        await flow.wait_for_round()
        result["state"] = flow.status()
    return result


@router.post("/{session_id}/advance")
async def game_advance(session_id: SessionId) -> Dict[str, Any]:
    return _flow(session_id).advance()


@router.post("/{session_id}/back")
async def game_back(session_id: SessionId) -> Dict[str, Any]:
    return _flow(session_id).go_back()


@router.post("/{session_id}/blame")
async def game_blame(session_id: SessionId, payload: BlamePayload) -> Dict[str, Any]:
    return _flow(session_id).select_target(payload.target)


@router.post("/{session_id}/reveal/ack")
async def game_reveal_ack(session_id: SessionId) -> Dict[str, Any]:
    return _flow(session_id).acknowledge_reveal()


@router.post("/{session_id}/restart")
async def game_restart(session_id: SessionId) -> Dict[str, Any]:
    return _flow(session_id).restart()


@router.post("/{session_id}/title")
async def game_title(session_id: SessionId) -> Dict[str, Any]:
    return _flow(session_id).title_click()


@router.post("/{session_id}/reset")
async def game_reset(session_id: SessionId) -> Dict[str, Any]:
    """Efface les données de la session (historique, joueurs, accusations, réglages, catégories perso)."""
    return _flow(session_id).reset_app_data()


# ---------------------------------------------------------------------------
# Réglages / catégories
# ---------------------------------------------------------------------------
@router.post("/{session_id}/language")
async def game_language(session_id: SessionId, payload: LanguagePayload) -> Dict[str, Any]:
    return _flow(session_id).change_language(payload.language)


@router.patch("/{session_id}/settings")
async def game_settings(session_id: SessionId, payload: SettingsPayload) -> Dict[str, Any]:
    return _flow(session_id).update_settings(**payload.model_dump(exclude_none=True))


@router.get("/{session_id}/categories")
async def game_categories(session_id: SessionId) -> Dict[str, Any]:
    flow = _flow(session_id)
    return {"categories": await flow.available_categories()}


@router.post("/{session_id}/categories")
async def game_select_categories(session_id: SessionId, payload: CategoriesPayload) -> Dict[str, Any]:
    return _flow(session_id).select_categories(payload.category_ids)


@router.post("/{session_id}/custom-categories")
async def game_custom_category_save(session_id: SessionId, payload: CustomCategory) -> Dict[str, Any]:
    return _flow(session_id).save_custom_category(payload)


@router.delete("/{session_id}/custom-categories/{category_id}")
async def game_custom_category_delete(session_id: SessionId, category_id: str) -> Dict[str, Any]:
    return _flow(session_id).delete_custom_category(category_id)


# ---------------------------------------------------------------------------
# Joueurs
# ---------------------------------------------------------------------------
@router.post("/{session_id}/players")
async def game_player_add(session_id: SessionId, payload: PlayerPayload) -> Dict[str, Any]:
    return _flow(session_id).add_player(payload.name)


@router.patch("/{session_id}/players/{player_id}")
async def game_player_rename(session_id: SessionId, player_id: str, payload: PlayerPayload) -> Dict[str, Any]:
    return _flow(session_id).rename_player(player_id, payload.name)


@router.delete("/{session_id}/players/{player_id}")
async def game_player_remove(session_id: SessionId, player_id: str) -> Dict[str, Any]:
    return _flow(session_id).remove_player(player_id)
