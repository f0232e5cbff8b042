# schemas/directives.py
from __future__ import annotations
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class GenerateImages(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["generate_images"] = "generate_images"
    count: int = Field(..., ge=1)
    prompt: str


class EditImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["edit_image"] = "edit_image"
    prompt: str


Directive = Annotated[Union[GenerateImages, EditImage], Field(discriminator="kind")]


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    directive: Optional[Directive] = None
