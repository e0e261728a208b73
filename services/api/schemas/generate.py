from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(alias="imageUrl")
