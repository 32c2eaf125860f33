"""Common routes: health, LLM model registry and model settings."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from paperclassifier import __version__
from paperclassifier.config import LLMSettings, load_llm_models
from paperclassifier.gui.state import state

router = APIRouter()


@router.get("/api/health")
async def health():
    return JSONResponse({"status": "ok", "version": __version__})


# ============================================================================
# LLM Model Registry
# ============================================================================


@router.get("/api/llm-models")
async def get_llm_models():
    """Return the built-in LLM model registry as JSON.

    Used by the settings UI to populate the model dropdown.
    """
    models = load_llm_models()
    return JSONResponse([asdict(m) for m in models])


# ============================================================================
# Model settings  (/api/settings)
# ============================================================================


class SettingsPayload(BaseModel):
    """Request body for updating model settings; omitted fields are kept."""
    model: Optional[str] = None
    api_key: Optional[str] = None


def _settings_json(llm: LLMSettings) -> dict:
    return {"model": llm.model, "api_key": llm.api_key, "configured": llm.is_configured}


@router.get("/api/settings")
async def get_settings():
    """Return the persisted model id and API key."""
    return JSONResponse(_settings_json(state.settings.llm))


@router.put("/api/settings")
async def update_settings(body: SettingsPayload):
    """Update model settings and persist to ``llm_settings.yaml``."""
    current = state.settings.llm
    llm = LLMSettings(
        model=body.model.strip() if body.model is not None else current.model,
        api_key=body.api_key.strip() if body.api_key is not None else current.api_key,
    )
    state.settings.update(llm=llm)
    state.settings.save_llm()
    return JSONResponse(_settings_json(llm))
