"""Point-cloud filters: voxel-grid downsampling, pass-through limits and crop boxes.

A point cloud is either a numeric ``N x k`` array whose first three columns are
``x``, ``y`` and ``z``, or a structured array with (at least) ``x``, ``y`` and
``z`` fields.  Filters return a cloud of the same kind and dtype.
"""

from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from surfacekit.filtering import CloudFilterBase, FilterError, register_filter

logger = logging.getLogger(__name__)

FLOAT_MAX = float(np.finfo(np.float32).max)
_INDEX_LIMIT = int(np.iinfo(np.int32).max)
_AXES = ("x", "y", "z")


def _cloud(data: Any) -> np.ndarray:
    arr = np.asarray(data)
    if arr.dtype.names is not None:
        missing = [axis for axis in _AXES if axis not in arr.dtype.names]
        if missing:
            raise FilterError(f"point cloud lacks fields: {', '.join(missing)}")
        return arr.reshape(-1)
    if arr.size == 0:
        return arr if arr.ndim == 2 and arr.shape[1] >= 3 else np.empty((0, 3), dtype=float)
    if arr.ndim != 2 or arr.shape[1] < 3:
        raise FilterError("point cloud must be an N x 3 (or wider) array")
    if not np.issubdtype(arr.dtype, np.number):
        raise FilterError("point cloud must hold numbers")
    return arr


def _field_values(cloud: np.ndarray, name: str) -> np.ndarray:
    if cloud.dtype.names is not None:
        if name not in cloud.dtype.names:
            raise FilterError(f"Unable to find field name '{name}' in point type")
        values = cloud[name]
        if values.ndim != 1 or not np.issubdtype(values.dtype, np.number):
            raise FilterError(f"Field '{name}' is not a scalar numeric field")
        return values.astype(float)
    if name in _AXES:
        return cloud[:, _AXES.index(name)].astype(float)
    raise FilterError(f"Unable to find field name '{name}' in point type")


def _xyz(cloud: np.ndarray) -> np.ndarray:
    if cloud.dtype.names is not None:
        return np.column_stack([cloud[axis].astype(float) for axis in _AXES]).reshape(-1, 3)
    return cloud[:, :3].astype(float)


def _get(config: Mapping[str, Any], key: str) -> Any:
    if not isinstance(config, Mapping):
        raise FilterError("filter configuration must be a mapping")
    if key not in config:
        raise FilterError(f"parameter '{key}' is missing")
    return config[key]


def _number(config: Mapping[str, Any], key: str) -> float:
    value = _get(config, key)
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise FilterError(f"parameter '{key}' must be a number")
    return float(value)


def _integer(config: Mapping[str, Any], key: str) -> int:
    value = _get(config, key)
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Integral):
        raise FilterError(f"parameter '{key}' must be an integer")
    return int(value)


def _boolean(config: Mapping[str, Any], key: str) -> bool:
    value = _get(config, key)
    if not isinstance(value, (bool, np.bool_)):
        raise FilterError(f"parameter '{key}' must be a boolean")
    return bool(value)


def _string(config: Mapping[str, Any], key: str) -> str:
    value = _get(config, key)
    if not isinstance(value, str):
        raise FilterError(f"parameter '{key}' must be a string")
    return value


def _missing(config: Mapping[str, Any], keys: tuple[str, ...]) -> list[str]:
    if not isinstance(config, Mapping):
        raise FilterError("filter configuration must be a mapping")
    return [key for key in keys if key not in config]


def _group_mean(values: np.ndarray, inverse: np.ndarray, counts: np.ndarray) -> np.ndarray:
    sums = np.zeros((len(counts),) + values.shape[1:], dtype=float)
    np.add.at(sums, inverse, values.astype(float))
    means = sums / counts.reshape((-1,) + (1,) * (values.ndim - 1))
    if np.issubdtype(values.dtype, np.integer):
        means = np.rint(means)
    return means.astype(values.dtype)


@dataclass
class VoxelGridParams:
    """Parameters of the voxel-grid filter."""

    leaf_size: float = 0.01
    min_limit: float = -FLOAT_MAX
    max_limit: float = FLOAT_MAX
    filter_limits_negative: bool = False
    min_pts_per_voxel: int = 1
    filter_field_name: str = ""


@register_filter
class VoxelGridFilter(CloudFilterBase):
    """Replaces the points inside each cubic voxel by their centroid."""

    LEAF_SIZE = "leaf_size"
    FILTER_FIELD_NAME = "filter_field_name"
    MIN_LIMIT = "min_limit"
    MAX_LIMIT = "max_limit"
    FILTER_LIMITS_NEGATIVE = "filter_limits_negative"
    MIN_PTS_PER_VOXEL = "min_pts_per_voxel"

    def __init__(self) -> None:
        self.params = VoxelGridParams()

    def configure(self, config: Mapping[str, Any]) -> None:
        """Load ``leaf_size`` and, when all are given, the optional field limits."""
        if _missing(config, (self.LEAF_SIZE,)):
            raise FilterError(
                f"Voxel grid filter missing required configuration parameter: {self.LEAF_SIZE}"
            )
        try:
            self.params.leaf_size = _number(config, self.LEAF_SIZE)
        except FilterError as exc:
            raise FilterError(
                f"Failed to load required parameter(s) for voxel grid filter: '{exc}'"
            ) from exc

        optional = (
            self.FILTER_FIELD_NAME,
            self.MIN_LIMIT,
            self.MAX_LIMIT,
            self.FILTER_LIMITS_NEGATIVE,
            self.MIN_PTS_PER_VOXEL,
        )
        if _missing(config, optional):
            return
        try:
            field_name = _string(config, self.FILTER_FIELD_NAME)
            min_limit = _number(config, self.MIN_LIMIT)
            max_limit = _number(config, self.MAX_LIMIT)
            negative = _boolean(config, self.FILTER_LIMITS_NEGATIVE)
            min_pts = _integer(config, self.MIN_PTS_PER_VOXEL)
            if min_pts < 0:
                raise FilterError(f"parameter '{self.MIN_PTS_PER_VOXEL}' must not be negative")
        except FilterError as exc:
            logger.warning("Failed to load optional parameter(s) for voxel grid filter: '%s'", exc)
            return
        self.params.filter_field_name = field_name
        self.params.min_limit = min_limit
        self.params.max_limit = max_limit
        self.params.filter_limits_negative = negative
        self.params.min_pts_per_voxel = min_pts

    def filter(self, data: Any) -> np.ndarray:
        """Return one centroid per sufficiently populated voxel, in voxel order."""
        params = self.params
        if not params.leaf_size > 0:
            raise FilterError("Voxel grid leaf size must be positive")
        source = _cloud(data)
        xyz = _xyz(source)
        keep = np.isfinite(xyz).all(axis=1)
        if params.filter_field_name:
            values = _field_values(source, params.filter_field_name)
            keep &= np.isfinite(values)
            if params.filter_limits_negative:
                keep &= ~((values < params.max_limit) & (values > params.min_limit))
            else:
                keep &= (values >= params.min_limit) & (values <= params.max_limit)
        cloud, xyz = source[keep], xyz[keep]
        if len(cloud) == 0:
            return cloud.copy()

        scaled = np.floor(xyz * (1.0 / params.leaf_size))
        spans = scaled.max(axis=0) - scaled.min(axis=0) + 1.0
        if math.prod(float(s) for s in spans) > _INDEX_LIMIT:
            logger.warning(
                "Leaf size is too small for the input dataset. Integer indices would overflow."
            )
            return source.copy()

        voxel = scaled.astype(np.int64)
        dims = spans.astype(np.int64)
        offsets = voxel - voxel.min(axis=0)
        linear = offsets[:, 0] + offsets[:, 1] * dims[0] + offsets[:, 2] * dims[0] * dims[1]
        _, first, inverse, counts = np.unique(
            linear, return_index=True, return_inverse=True, return_counts=True
        )
        inverse = inverse.reshape(-1)

        if cloud.dtype.names is not None:
            out = np.zeros(len(counts), dtype=cloud.dtype)
            for name in cloud.dtype.names:
                column = cloud[name]
                if np.issubdtype(cloud.dtype[name].base, np.number):
                    out[name] = _group_mean(column, inverse, counts)
                else:
                    out[name] = column[first]
        else:
            out = _group_mean(cloud, inverse, counts)
        return out[counts >= params.min_pts_per_voxel]


@dataclass
class PassThroughParams:
    """Parameters of the pass-through filter."""

    filter_field_name: str = "x"
    min_limit: float = -FLOAT_MAX
    max_limit: float = FLOAT_MAX
    negative: bool = False


@register_filter
class PassThroughFilter(CloudFilterBase):
    """Keeps the points whose chosen field lies within (or, negated, outside) limits."""

    FILTER_FIELD_NAME = "filter_field_name"
    MIN_LIMIT = "min_limit"
    MAX_LIMIT = "max_limit"
    NEGATIVE = "negative"

    def __init__(self) -> None:
        self.params = PassThroughParams()

    def configure(self, config: Mapping[str, Any]) -> None:
        """Load the field name and limits, and the optional ``negative`` flag."""
        missing = _missing(config, (self.FILTER_FIELD_NAME, self.MIN_LIMIT, self.MAX_LIMIT))
        if missing:
            raise FilterError(
                "Pass through filter configuration missing required parameters: "
                + ", ".join(missing)
            )
        try:
            field_name = _string(config, self.FILTER_FIELD_NAME)
            min_limit = _number(config, self.MIN_LIMIT)
            max_limit = _number(config, self.MAX_LIMIT)
        except FilterError as exc:
            raise FilterError(
                f"Failed to load required parameter(s) for pass through filter: '{exc}'"
            ) from exc
        self.params.filter_field_name = field_name
        self.params.min_limit = min_limit
        self.params.max_limit = max_limit

        if self.NEGATIVE in config:
            try:
                self.params.negative = _boolean(config, self.NEGATIVE)
            except FilterError as exc:
                logger.warning(
                    "Failed to load optional parameter(s) for pass through filter: '%s'", exc
                )

    def filter(self, data: Any) -> np.ndarray:
        """Return the points that pass the field limits, in their original order."""
        params = self.params
        if not params.filter_field_name:
            raise FilterError("No filter field name set for pass through filter")
        cloud = _cloud(data)
        values = _field_values(cloud, params.filter_field_name)
        finite = np.isfinite(_xyz(cloud)).all(axis=1) & np.isfinite(values)
        inside = (values >= params.min_limit) & (values <= params.max_limit)
        keep = finite & (~inside if params.negative else inside)
        return cloud[keep]


def _rotation_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def _rotation_y(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def _rotation_z(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _parse_point(value: Any) -> np.ndarray:
    return np.array([_number(value, axis) for axis in _AXES])


def _parse_transform(value: Any) -> np.ndarray:
    matrix = np.eye(4)
    matrix[:3, 3] = _parse_point(value)
    matrix[:3, :3] = (
        _rotation_x(_number(value, "rx"))
        @ _rotation_y(_number(value, "ry"))
        @ _rotation_z(_number(value, "rz"))
    )
    return matrix


@dataclass
class CropBoxParams:
    """Parameters of the crop-box filter."""

    min_pt: np.ndarray = field(default_factory=lambda: -np.ones(3))
    max_pt: np.ndarray = field(default_factory=lambda: np.ones(3))
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    crop_outside: bool = False


@register_filter
class CropBoxFilter(CloudFilterBase):
    """Keeps the points that, once transformed, lie inside an axis-aligned box.

    With ``crop_outside`` set, the indices of the points that were cropped away
    are recorded in ``removed_indices``.
    """

    MAX = "max"
    MIN = "min"
    TRANSFORM = "transform"
    CROP_OUTSIDE = "crop_outside"

    def __init__(self) -> None:
        self.params = CropBoxParams()
        self.removed_indices = np.empty(0, dtype=np.int64)

    def configure(self, config: Mapping[str, Any]) -> None:
        """Load the box corners and transform, and the optional ``crop_outside`` flag."""
        missing = _missing(config, (self.MIN, self.MAX, self.TRANSFORM))
        if missing:
            raise FilterError(
                "Filter configuration missing required parameters: " + ", ".join(missing)
            )
        try:
            min_pt = _parse_point(config[self.MIN])
            max_pt = _parse_point(config[self.MAX])
            transform = _parse_transform(config[self.TRANSFORM])
        except FilterError as exc:
            raise FilterError(
                f"Failed to load required parameter(s) for crop box filter: '{exc}'"
            ) from exc
        self.params.min_pt = min_pt
        self.params.max_pt = max_pt
        self.params.transform = transform

        if self.CROP_OUTSIDE in config:
            try:
                self.params.crop_outside = _boolean(config, self.CROP_OUTSIDE)
            except FilterError as exc:
                logger.warning(
                    "Failed to load optional parameter(s) for crop box filter: '%s'", exc
                )

    def filter(self, data: Any) -> np.ndarray:
        """Return the points inside the box, in their original order."""
        params = self.params
        cloud = _cloud(data)
        xyz = _xyz(cloud)
        finite = np.isfinite(xyz).all(axis=1)
        local = xyz @ params.transform[:3, :3].T + params.transform[:3, 3]
        with np.errstate(invalid="ignore"):
            inside = (local >= params.min_pt).all(axis=1) & (local <= params.max_pt).all(axis=1)
        keep = finite & inside
        self.removed_indices = (
            np.flatnonzero(~keep) if params.crop_outside else np.empty(0, dtype=np.int64)
        )
        return cloud[keep]