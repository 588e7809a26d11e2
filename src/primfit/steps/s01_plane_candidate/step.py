"""Step 01: Evaluate plane candidates from given minimal samples.

For every sample the per-candidate sequence of the detector is run:

    construct -> conforming inliers -> largest connected component
    -> supporting inliers -> footprint

Sampling and candidate acceptance belong to the detector driver and are
not done here; every sample is reported.
"""

from __future__ import annotations

import json
import logging
import math
from typing import ClassVar

import numpy as np

from primfit.core.step_base import BaseStep
from primfit.primitives import PlanePrimitive
from primfit.utils.io import load_oriented_cloud
from .config import PlaneCandidateConfig
from .contracts import PlaneCandidateInput, PlaneCandidateOutput, PlaneRecord

logger = logging.getLogger(__name__)


def evaluate_candidate(
    plane: PlanePrimitive,
    points: np.ndarray,
    normals: np.ndarray,
    inlier_threshold: float,
    angle_threshold: float,
    loose_inlier_factor: float = 1.0,
    candidates: np.ndarray | None = None,
) -> bool:
    """Fill inlier sets and footprint of a constructed plane.

    Returns whether a footprint was computed.
    """
    if candidates is None:
        candidates = np.arange(len(points))

    plane.conforming_inds = plane.compute_inliers(
        points, normals, candidates, inlier_threshold * loose_inlier_factor, angle_threshold,
    )
    component = plane.largest_connected_component(points)
    plane.supporting_inds = plane.compute_inliers(
        points, normals, component, inlier_threshold, angle_threshold,
    )
    return plane.compute_shape_size(points)


def _to_record(
    record_id: int,
    status: str,
    sources: list[int],
    plane: PlanePrimitive | None = None,
) -> PlaneRecord:
    if plane is None:
        return PlaneRecord(id=record_id, status=status, sources=sources)
    return PlaneRecord(
        id=record_id,
        status=status,
        sources=sources,
        num_conforming=len(plane.conforming_inds),
        num_supporting=len(plane.supporting_inds),
        has_footprint=plane.has_footprint,
        shape_data=plane.shape_data().tolist(),
        convex_hull=plane.shape_points().tolist(),
    )


class PlaneCandidateStep(
    BaseStep[PlaneCandidateInput, PlaneCandidateOutput, PlaneCandidateConfig]
):
    name: ClassVar[str] = "plane_candidate"
    output_subdir: ClassVar[str] = "s01_plane_candidate"
    input_type: ClassVar = PlaneCandidateInput
    output_type: ClassVar = PlaneCandidateOutput
    config_type: ClassVar = PlaneCandidateConfig

    def validate_inputs(self, inputs: PlaneCandidateInput) -> bool:
        if not inputs.cloud_path.exists():
            logger.error(f"Point cloud not found: {inputs.cloud_path}")
            return False
        if inputs.cloud_path.suffix.lower() not in (".ply", ".npz"):
            logger.error(f"Expected .ply or .npz file, got: {inputs.cloud_path.suffix}")
            return False
        n_samples = len(inputs.samples)
        for pair in inputs.merge_pairs:
            if not all(0 <= k < n_samples for k in pair) or pair[0] == pair[1]:
                logger.error(f"Invalid merge pair {pair} for {n_samples} samples")
                return False
        return True

    def run(self, inputs: PlaneCandidateInput) -> PlaneCandidateOutput:
        output_dir = self.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        points, normals = load_oriented_cloud(inputs.cloud_path)
        sample_arr = np.asarray(inputs.samples, dtype=np.int64)
        if sample_arr.min() < 0 or sample_arr.max() >= len(points):
            raise ValueError(f"Sample indices out of range for {len(points)} points")

        cfg = self.config
        angle = math.radians(cfg.angle_threshold)

        # --- Evaluate each minimal sample ---
        records: list[PlaneRecord] = []
        fitted: dict[int, PlanePrimitive] = {}
        for sample_id, sample in enumerate(inputs.samples):
            plane = PlanePrimitive(config=cfg.primitive, object_id=sample_id)
            if not plane.construct(points[sample], normals[sample], cfg.inlier_threshold, angle):
                logger.info(f"Sample {sample_id} {sample}: rejected")
                records.append(_to_record(sample_id, "rejected", sample))
                continue

            evaluate_candidate(
                plane, points, normals, cfg.inlier_threshold, angle, cfg.loose_inlier_factor,
            )
            fitted[sample_id] = plane
            records.append(_to_record(sample_id, "fitted", sample, plane))
            logger.info(
                f"Sample {sample_id}: {len(plane.conforming_inds)} conforming, "
                f"{len(plane.supporting_inds)} supporting, size {plane.shape_size():.3f}"
            )

        # --- Merge requested pairs ---
        num_merged = 0
        for a, b in inputs.merge_pairs:
            if a not in fitted or b not in fitted:
                logger.warning(f"Cannot merge samples {a} and {b}: not both fitted")
                continue
            parent = fitted[a].instantiate()
            parent.merge_planes(fitted[a], fitted[b])
            records.append(_to_record(len(records), "merged", [a, b], parent))
            num_merged += 1
            logger.info(f"Merged samples {a} + {b}: {len(parent.supporting_inds)} supporting")

        # --- Save outputs ---
        planes_file = output_dir / "planes.json"
        with open(planes_file, "w") as f:
            json.dump([r.model_dump() for r in records], f, indent=2)

        logger.info(
            f"Evaluated {len(inputs.samples)} samples: {len(fitted)} fitted, {num_merged} merged"
        )

        return PlaneCandidateOutput(
            planes_file=planes_file,
            num_candidates=len(inputs.samples),
            num_fitted=len(fitted),
            num_merged=num_merged,
        )
