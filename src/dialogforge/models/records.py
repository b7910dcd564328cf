"""Character and scene records.

These are owned by external storage and referenced by ID from dialog nodes
and dialogs. The compiler and prompt builder only read them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dialogforge.models.nodes import WIRE_CONFIG, now_ms


class Character(BaseModel):
    """A speaking character."""

    model_config = WIRE_CONFIG

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    personality: str = ""
    visual_prompt: str = ""
    image_path: str | None = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)


class Scene(BaseModel):
    """Where a dialog takes place."""

    model_config = WIRE_CONFIG

    id: str = Field(min_length=1)
    description: str = ""
    background_image_path: str | None = None
    dialog_node_id: str | None = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
