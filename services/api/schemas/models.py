from __future__ import annotations

from pydantic import BaseModel, Field


class ModelSummary(BaseModel):
    ref: str
    kind: str
    mode: str
    input_keys: list[str] = Field(default_factory=list)
    description: str = ""
    active: bool = False


class ModelListResponse(BaseModel):
    models: list[ModelSummary] = Field(default_factory=list)
