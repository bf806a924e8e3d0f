from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field

from engine.enums import Algorithm, Sensitivity


class DetectionConfig(BaseModel):
    metric: str
    algorithm: Algorithm = Algorithm.statistical
    sensitivity: Sensitivity = Sensitivity.medium
    window_size: int = Field(default=100, ge=1)
    threshold: float = Field(default=2.0, ge=0.0)
    min_samples: int = Field(default=20, ge=1)
    enabled: bool = True


class DetectionConfigUpdate(BaseModel):
    algorithm: Optional[Algorithm] = None
    sensitivity: Optional[Sensitivity] = None
    window_size: Optional[int] = Field(default=None, ge=1)
    threshold: Optional[float] = Field(default=None, ge=0.0)
    min_samples: Optional[int] = Field(default=None, ge=1)
    enabled: Optional[bool] = None
