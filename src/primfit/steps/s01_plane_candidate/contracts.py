"""I/O contracts for Step 01: Plane candidate evaluation."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field

Sample = Annotated[list[int], Field(min_length=3, max_length=3)]
Pair = Annotated[list[int], Field(min_length=2, max_length=2)]


class PlaneCandidateInput(BaseModel):
    cloud_path: Path = Field(..., description="Oriented point cloud (.ply with normals or .npz)")
    samples: list[Sample] = Field(..., min_length=1, description="Minimal samples, three point indices each")
    merge_pairs: list[Pair] = Field(
        default_factory=list, description="Pairs of sample positions whose planes are merged"
    )


class PlaneRecord(BaseModel):
    id: int
    status: Literal["fitted", "rejected", "merged"]
    sources: list[int] = Field(default_factory=list, description="Sample point indices, or merged record ids")
    num_conforming: int = 0
    num_supporting: int = 0
    has_footprint: bool = False
    shape_data: list[float] = Field(
        default_factory=list,
        description="equation(4), extents(2), center(3), quaternion xyzw(4); empty when rejected",
    )
    convex_hull: list[list[float]] = Field(default_factory=list, description="Hull vertices [[x,y,z],...]")


class PlaneCandidateOutput(BaseModel):
    planes_file: Path = Field(..., description="Path to planes.json")
    num_candidates: int = Field(..., description="Samples evaluated")
    num_fitted: int = Field(0, description="Samples that produced a plane")
    num_merged: int = Field(0)
