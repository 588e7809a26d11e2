"""Pydantic models for pipeline configuration and step bookkeeping."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator


class StepMeta(BaseModel):
    """Run record written next to a step's outputs."""

    step_name: str
    elapsed_seconds: float = 0.0
    params: dict[str, Any] = Field(default_factory=dict, description="Step config as run")


class StepEntry(BaseModel):
    """One entry in the pipeline step list."""

    name: str
    module: str = Field(..., description="Package holding step.py, e.g. primfit.steps.s01_plane_candidate")
    config_file: str | None = Field(None, description="Step YAML config; defaults are used when omitted")
    input: dict[str, Any] = Field(default_factory=dict, description="Literal input fields for the step")
    depends_on: list[str] = Field(default_factory=list)
    enabled: bool = True


class PipelineConfig(BaseModel):
    """Top-level configuration loaded from pipeline.yaml."""

    project_name: str = "primfit_project"
    data_root: Path = Path("./data")
    log_level: str = "INFO"
    steps: list[StepEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_step_names(self) -> PipelineConfig:
        names = [s.name for s in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step names: {duplicates}")
        return self
