"""Base class for pipeline steps.

A step is a typed transformation: pydantic Input in, pydantic Output out,
parameterized by a pydantic Config. Steps write their artifacts under
``<data_root>/interim/<output_subdir>/`` together with a ``step_meta.json``
recording the parameters and run time.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, Generic, TypeVar

from pydantic import BaseModel

from .contracts import StepMeta

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)
ConfigT = TypeVar("ConfigT", bound=BaseModel)

logger = logging.getLogger(__name__)

META_FILENAME = "step_meta.json"


class BaseStep(ABC, Generic[InputT, OutputT, ConfigT]):
    """Abstract base for pipeline steps.

    Subclasses fill in the class variables and implement ``run()`` and
    ``validate_inputs()``; callers only use ``execute()``.
    """

    name: ClassVar[str] = ""
    output_subdir: ClassVar[str] = ""
    input_type: ClassVar[type[BaseModel]]
    output_type: ClassVar[type[BaseModel]]
    config_type: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT, data_root: Path):
        self.config = config
        self.data_root = Path(data_root)
        self.last_meta: StepMeta | None = None

    @property
    def step_name(self) -> str:
        return self.name or self.__class__.__name__

    @property
    def output_dir(self) -> Path:
        """Directory for this step's artifacts (not created here)."""
        return self.data_root / "interim" / (self.output_subdir or self.step_name)

    @abstractmethod
    def run(self, inputs: InputT) -> OutputT:
        ...

    @abstractmethod
    def validate_inputs(self, inputs: InputT) -> bool:
        """False when an input artifact is missing or unusable."""
        ...

    def execute(self, inputs: InputT) -> OutputT:
        """Validate, run and record metadata. Raises ValueError on invalid inputs."""
        step_name = self.step_name
        if not self.validate_inputs(inputs):
            raise ValueError(f"[{step_name}] Input validation failed")

        logger.info(f"[{step_name}] Starting...")
        t0 = time.perf_counter()
        result = self.run(inputs)
        elapsed = time.perf_counter() - t0

        self.last_meta = StepMeta(
            step_name=step_name,
            elapsed_seconds=elapsed,
            params=self.config.model_dump(mode="json"),
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / META_FILENAME).write_text(self.last_meta.model_dump_json(indent=2))
        logger.info(f"[{step_name}] Done in {elapsed:.2f}s")
        return result

    @classmethod
    def get_input_schema(cls) -> dict:
        return cls.input_type.model_json_schema()

    @classmethod
    def get_output_schema(cls) -> dict:
        return cls.output_type.model_json_schema()

    @classmethod
    def get_config_schema(cls) -> dict:
        return cls.config_type.model_json_schema()
