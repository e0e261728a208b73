from __future__ import annotations

from fastapi import APIRouter, Depends

from modules.inference.catalog import CATALOG, ModelSpec, generate_spec, tryon_spec
from services.api.config import Settings
from services.api.deps import get_app_settings
from services.api.schemas.models import ModelListResponse, ModelSummary


router = APIRouter(prefix="", tags=["models"])


def _summary(spec: ModelSpec, active: bool) -> ModelSummary:
    return ModelSummary(
        ref=spec.ref,
        kind=spec.kind,
        mode=spec.mode,
        input_keys=sorted(spec.input_keys),
        description=spec.description,
        active=active,
    )


@router.get("/models", response_model=ModelListResponse)
def list_models(settings: Settings = Depends(get_app_settings)) -> ModelListResponse:
    specs = dict(CATALOG)
    if settings.generate_model not in specs:
        specs[settings.generate_model] = generate_spec(settings.generate_model)
    if settings.tryon_model_version:
        specs[settings.tryon_model_version] = tryon_spec(settings.tryon_model_version)
    active = {settings.generate_model, settings.tryon_model_version}
    return ModelListResponse(models=[_summary(s, s.ref in active) for s in specs.values()])
