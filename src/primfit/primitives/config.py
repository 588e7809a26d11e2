"""Raster configuration shared by all primitives."""

from pydantic import BaseModel, Field


class PrimitiveConfig(BaseModel):
    # Two rasters, not interchangeable: footprint cells are 2 * connectedness_res
    # wide, connectivity cells are current_connectedness_res wide.
    connectedness_res: float = Field(
        0.01, gt=0, description="Footprint raster resolution (scene units, cells are twice this)"
    )
    current_connectedness_res: float = Field(
        0.05, gt=0, description="Connected-component raster cell size (scene units)"
    )
    min_component_cells: int = Field(
        10, ge=1, description="Connectivity raster side (cells) below which filtering is skipped"
    )
