"""Pipeline orchestrator: reads pipeline.yaml and executes steps in order."""

from __future__ import annotations

import importlib
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel

from .contracts import PipelineConfig, StepEntry
from .step_base import BaseStep

logger = logging.getLogger(__name__)


def _read_yaml(path: Path) -> dict:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_pipeline_config(config_path: Path) -> PipelineConfig:
    """Load and validate pipeline.yaml, including step ordering."""
    cfg = PipelineConfig(**_read_yaml(config_path))
    seen: set[str] = set()
    for entry in cfg.steps:
        unknown = [dep for dep in entry.depends_on if dep not in seen]
        if unknown:
            raise ValueError(f"Step '{entry.name}' depends on {unknown}, which do not run before it")
        seen.add(entry.name)
    return cfg


def load_step_config(config_path: Path | None, config_class: type[BaseModel]) -> BaseModel:
    """Step YAML into its config model; model defaults when there is no file."""
    if config_path is None:
        return config_class()
    return config_class(**_read_yaml(config_path))


def import_step_class(module_path: str) -> type[BaseStep]:
    """Find the BaseStep subclass in ``<module_path>.step``.

    e.g. 'primfit.steps.s01_plane_candidate'
    """
    step_module = importlib.import_module(f"{module_path}.step")
    for attr in vars(step_module).values():
        if isinstance(attr, type) and issubclass(attr, BaseStep) and attr is not BaseStep:
            return attr
    raise ImportError(f"No Step class found in {module_path}.step")


def build_step(entry: StepEntry, data_root: Path) -> BaseStep:
    """Instantiate the step class named by a pipeline entry with its config."""
    step_cls = import_step_class(entry.module)
    config_file = Path(entry.config_file) if entry.config_file else None
    return step_cls(config=load_step_config(config_file, step_cls.config_type), data_root=data_root)


def run_pipeline(config_path: Path) -> dict[str, BaseModel]:
    """Run every enabled step. Returns outputs by step name."""
    pipeline_cfg = load_pipeline_config(config_path)
    results: dict[str, BaseModel] = {}

    enabled_steps = [s for s in pipeline_cfg.steps if s.enabled]
    logger.info(f"Pipeline '{pipeline_cfg.project_name}' with {len(enabled_steps)} steps")

    for entry in enabled_steps:
        logger.info(f"--- Step: {entry.name} ---")
        step = build_step(entry, pipeline_cfg.data_root)

        # Outputs of dependencies first, the entry's literal input overrides them
        input_data = {}
        for dep in entry.depends_on:
            if dep not in results:
                logger.warning(f"Dependency '{dep}' of '{entry.name}' is disabled, its outputs are missing")
                continue
            input_data.update(results[dep].model_dump())
        input_data.update(entry.input)

        results[entry.name] = step.execute(step.input_type(**input_data))

    logger.info("Pipeline complete.")
    return results
