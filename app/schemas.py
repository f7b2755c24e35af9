from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class PositionUpdate(BaseModel):
    """Inbound frame on the interaction socket."""

    model_config = ConfigDict(extra="ignore")

    x: float
    y: float

    @field_validator("x", "y", mode="before")
    @classmethod
    def reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("coordinate must be a number, not a boolean")
        return value


class ParamsMessage(BaseModel):
    type: Literal["params"] = "params"
    params: List[List[float]]


class CountUpdate(BaseModel):
    type: Literal["count_update"] = "count_update"
    count: int


class StartInfo(BaseModel):
    interact_url: str
    count: int


class HealthStatus(BaseModel):
    status: str = "ok"
    broadcasting: bool
