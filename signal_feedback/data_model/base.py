"""Shared Pydantic base models."""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Base model for validated inputs and config: frozen, no unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")
