from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from promptopt import get_build_info
from promptopt.errors import (
    ConfigurationError,
    OptimizationError,
    StaleResultError,
    ValidationError,
)
from promptopt.history import HistoryView
from promptopt.models import TARGET_MODEL_OPTIONS, TargetModel
from promptopt.session import OptimizerSession
from promptopt.templates import list_templates

app = FastAPI(title="Prompt Optimizer API")

_session: Optional[OptimizerSession] = None


def get_session() -> OptimizerSession:
    """Process-wide session, rehydrated from local storage on first use."""
    global _session
    if _session is None:
        _session = OptimizerSession.from_storage()
    return _session


ERROR_STATUS = {
    ValidationError: 400,
    ConfigurationError: 400,
    StaleResultError: 409,
}


@app.exception_handler(OptimizationError)
async def optimization_error_handler(request, exc: OptimizationError):
    status = ERROR_STATUS.get(type(exc), 502)
    return JSONResponse(status_code=status, content={"error": exc.to_dict()})


class OptimizeRequest(BaseModel):
    prompt: str
    target_model: TargetModel = TargetModel.GEMINI
    variables: Dict[str, str] = Field(default_factory=dict)


class OptimizeResponse(BaseModel):
    optimized_prompt: str
    resolved_prompt: str
    entry: Dict[str, Any]


class VariantRequest(BaseModel):
    provider: str


class FieldUpdateRequest(BaseModel):
    field: str
    value: str


class TemperatureRequest(BaseModel):
    temperature: float


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/version")
async def version():
    """Return running package version (for debugging / client caching)."""
    return get_build_info()


@app.get("/targets")
async def targets():
    return [{"id": m.value, "name": name} for m, name in TARGET_MODEL_OPTIONS.items()]


@app.get("/templates")
async def templates(category: Optional[str] = None):
    return [t.to_dict() for t in list_templates(category)]


# Sync handler: the backend call blocks, FastAPI runs it in its threadpool
@app.post("/optimize", response_model=OptimizeResponse)
def optimize_endpoint(req: OptimizeRequest, session: OptimizerSession = Depends(get_session)):
    entry = session.optimize_prompt(req.prompt, req.variables, req.target_model)
    return OptimizeResponse(
        optimized_prompt=entry.optimized_prompt,
        resolved_prompt=entry.original_prompt,
        entry=entry.to_storage(),
    )


@app.get("/history")
async def history(
    view: HistoryView = HistoryView.HISTORY,
    search: str = "",
    session: OptimizerSession = Depends(get_session),
) -> List[Dict[str, Any]]:
    return [e.to_storage() for e in session.history.filter(view, search)]


@app.post("/history/{entry_id}/favorite")
async def toggle_favorite(entry_id: int, session: OptimizerSession = Depends(get_session)):
    entry = session.history.toggle_favorite(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"History entry not found: {entry_id}")
    return entry.to_storage()


@app.get("/settings")
async def get_settings(session: OptimizerSession = Depends(get_session)):
    return session.settings.current.to_public_dict()


@app.put("/settings/variant")
async def set_variant(req: VariantRequest, session: OptimizerSession = Depends(get_session)):
    try:
        current = session.settings.set_variant(req.provider)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return current.to_public_dict()


@app.patch("/settings")
async def update_setting(req: FieldUpdateRequest, session: OptimizerSession = Depends(get_session)):
    try:
        updated = session.settings.update_field(req.field, req.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not updated:
        raise HTTPException(
            status_code=400,
            detail=f"'{req.field}' is not a setting of provider '{session.settings.provider}'",
        )
    return session.settings.current.to_public_dict()


@app.put("/settings/temperature")
async def set_temperature(req: TemperatureRequest, session: OptimizerSession = Depends(get_session)):
    session.settings.set_temperature(req.temperature)
    return session.settings.current.to_public_dict()
