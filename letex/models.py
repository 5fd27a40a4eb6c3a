"""Pydantic models shared by the pipeline, the client and the HTTP layer."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ControlType = Literal["slider", "button", "toggle", "select"]
CONTROL_TYPES = ("slider", "button", "toggle", "select")


class ControlSpec(BaseModel):
    """One externally rendered control bound to the generated code by `id`.

    The renderer posts `{id, value}` to the iframe on every change: a number
    for sliders, `true` for button presses, the new state for toggles and
    the chosen option for selects.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    type: ControlType
    label: str = ""
    default_value: Any = Field(default=None, alias="defaultValue")
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: Optional[List[str]] = None


class GeneratedSimulation(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    instructions: str
    code: str
    # Passed through unvalidated; see validators.collect_errors
    controls: List[Any] = Field(default_factory=list)

    def control_ids(self) -> List[str]:
        return [c.get("id") for c in self.controls if isinstance(c, dict) and isinstance(c.get("id"), str)]

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump()
