"""Configuration for Step 01: Plane candidate evaluation."""

from pydantic import BaseModel, Field

from primfit.primitives.config import PrimitiveConfig


class PlaneCandidateConfig(BaseModel):
    inlier_threshold: float = Field(0.02, gt=0, description="Max point-to-plane distance for supporting points")
    angle_threshold: float = Field(20.0, gt=0, le=90, description="Max normal deviation (degrees)")
    loose_inlier_factor: float = Field(
        2.0, ge=1.0, description="Conforming pass uses inlier_threshold scaled by this factor"
    )
    primitive: PrimitiveConfig = Field(default_factory=PrimitiveConfig)
