"""Tests for core pipeline runner and contracts."""

import logging
from pathlib import Path

import pytest
import yaml

from primfit.core.contracts import PipelineConfig, StepEntry, StepMeta
from primfit.core.logging import setup_logging
from primfit.core.pipeline_runner import (
    build_step,
    import_step_class,
    load_pipeline_config,
    load_step_config,
    run_pipeline,
)


class TestContracts:
    def test_step_meta(self):
        meta = StepMeta(step_name="test", elapsed_seconds=1.5, params={"a": 1})
        assert meta.step_name == "test"
        assert meta.elapsed_seconds == 1.5

    def test_pipeline_config(self):
        cfg = PipelineConfig(
            project_name="test",
            data_root=Path("./data"),
            steps=[StepEntry(name="s1", module="primfit.steps.s01_plane_candidate")],
        )
        assert len(cfg.steps) == 1
        assert cfg.steps[0].enabled is True
        assert cfg.steps[0].config_file is None
        assert cfg.steps[0].input == {}

    def test_pipeline_config_defaults(self):
        cfg = PipelineConfig()
        assert cfg.log_level == "INFO"
        assert cfg.steps == []


class TestPipelineRunner:
    def test_load_pipeline_config(self, tmp_path: Path):
        config = {
            "project_name": "test_project",
            "data_root": str(tmp_path / "data"),
            "steps": [
                {"name": "plane_candidate", "module": "primfit.steps.s01_plane_candidate",
                 "config_file": "configs/steps/s01_plane_candidate.yaml", "depends_on": [], "enabled": True},
            ],
        }
        config_file = tmp_path / "pipeline.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f)

        cfg = load_pipeline_config(config_file)
        assert cfg.project_name == "test_project"
        assert len(cfg.steps) == 1
        assert cfg.data_root == tmp_path / "data"

    def test_import_step_class(self):
        cls = import_step_class("primfit.steps.s01_plane_candidate")
        assert cls.__name__ == "PlaneCandidateStep"
        assert cls.name == "plane_candidate"
        assert "properties" in cls.get_input_schema()

    def test_import_missing_module(self):
        with pytest.raises(ImportError):
            import_step_class("primfit.steps.does_not_exist")

    def test_load_step_config(self, tmp_path: Path):
        from primfit.steps.s01_plane_candidate.config import PlaneCandidateConfig

        config_data = {"inlier_threshold": 0.05, "primitive": {"connectedness_res": 0.02}}
        config_file = tmp_path / "s01.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_step_config(config_file, PlaneCandidateConfig)
        assert cfg.inlier_threshold == 0.05
        assert cfg.angle_threshold == 20.0
        assert cfg.primitive.connectedness_res == 0.02
        assert cfg.primitive.current_connectedness_res == 0.05

    def test_load_step_config_defaults(self):
        from primfit.steps.s01_plane_candidate.config import PlaneCandidateConfig

        cfg = load_step_config(None, PlaneCandidateConfig)
        assert cfg == PlaneCandidateConfig()

    def test_build_step(self, tmp_path: Path):
        entry = StepEntry(name="plane_candidate", module="primfit.steps.s01_plane_candidate")
        step = build_step(entry, tmp_path)
        assert type(step).__name__ == "PlaneCandidateStep"
        assert step.data_root == tmp_path

    def test_run_pipeline(self, tmp_path: Path, data_root: Path, cloud_npz: Path):
        step_config = tmp_path / "s01.yaml"
        with open(step_config, "w") as f:
            yaml.dump({"primitive": {"connectedness_res": 0.025}}, f)

        config = {
            "project_name": "run_test",
            "data_root": str(data_root),
            "steps": [
                {"name": "plane_candidate", "module": "primfit.steps.s01_plane_candidate",
                 "config_file": str(step_config),
                 "input": {"cloud_path": str(cloud_npz), "samples": [[0, 39, 1560], [0, 1, 2]]}},
                {"name": "disabled", "module": "primfit.steps.s01_plane_candidate", "enabled": False},
            ],
        }
        config_file = tmp_path / "pipeline.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f)

        results = run_pipeline(config_file)
        assert list(results) == ["plane_candidate"]
        output = results["plane_candidate"]
        assert output.num_candidates == 2
        assert output.num_fitted == 1
        assert output.planes_file.exists()


class TestLogging:
    def test_setup_logging_level(self):
        setup_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG
        setup_logging("warning")
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("chatty")
        assert logging.getLogger().level == logging.INFO


class TestValidation:
    def test_duplicate_step_names(self):
        entry = {"name": "a", "module": "primfit.steps.s01_plane_candidate"}
        with pytest.raises(ValueError, match="Duplicate step names"):
            PipelineConfig(steps=[entry, entry])

    def test_dependency_must_run_first(self, tmp_path: Path):
        config = {
            "steps": [
                {"name": "a", "module": "primfit.steps.s01_plane_candidate", "depends_on": ["b"]},
                {"name": "b", "module": "primfit.steps.s01_plane_candidate"},
            ],
        }
        config_file = tmp_path / "pipeline.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f)
        with pytest.raises(ValueError, match="depends on"):
            load_pipeline_config(config_file)


class TestStepMetaFile:
    def test_execute_writes_meta(self, data_root: Path, cloud_npz: Path):
        from primfit.steps.s01_plane_candidate.contracts import PlaneCandidateInput

        step = build_step(StepEntry(name="plane_candidate", module="primfit.steps.s01_plane_candidate"), data_root)
        step.execute(PlaneCandidateInput(cloud_path=cloud_npz, samples=[[0, 1, 2]]))

        meta = StepMeta.model_validate_json((step.output_dir / "step_meta.json").read_text())
        assert meta.step_name == "plane_candidate"
        assert meta.params["primitive"]["min_component_cells"] == 10
        assert step.last_meta == meta
