from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


class LimitSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Operator-facing label only; never affects decisions.
    service: str = Field(min_length=1)
    requests: int = Field(ge=1)
    period: float = Field(gt=0)

    @field_validator("period")
    @classmethod
    def _finite_period(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("period must be finite")
        return v

    @property
    def base_delay_s(self) -> float:
        return self.period / self.requests


class ListenSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip: str = Field(min_length=1)
    port: int

    @field_validator("port")
    @classmethod
    def _port_range(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError("port must be in [1, 65535]")
        return v


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_logs: bool = Field(True, alias="json")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    limit: LimitSettings
    listen: ListenSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
