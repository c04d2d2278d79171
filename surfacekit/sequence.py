"""Ordering of raster tool paths into one continuous sequence."""

from __future__ import annotations

import abc
import copy
import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np


def _per_point(values: np.ndarray | None, count: int, what: str) -> np.ndarray | None:
    if values is None:
        return None
    array = np.asarray(values, dtype=float).reshape(-1, 3)
    if len(array) != count:
        raise ValueError(f"there must be exactly one {what} per path point")
    return array


@dataclass(eq=False)
class ProcessPath:
    """A tool path: ordered points with optional per-point normals and derivatives."""

    points: np.ndarray
    normals: np.ndarray | None = None
    derivatives: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=float).reshape(-1, 3)
        if len(self.points) == 0:
            raise ValueError("a process path needs at least one point")
        self.normals = _per_point(self.normals, len(self.points), "normal")
        self.derivatives = _per_point(self.derivatives, len(self.points), "derivative")

    @property
    def start(self) -> np.ndarray:
        """The first point of the path."""
        return self.points[0]

    @property
    def end(self) -> np.ndarray:
        """The last point of the path."""
        return self.points[-1]

    def flip(self) -> None:
        """Reverse the order of the path's points and their per-point data."""
        self.points = self.points[::-1].copy()
        if self.normals is not None:
            self.normals = self.normals[::-1].copy()
        if self.derivatives is not None:
            self.derivatives = self.derivatives[::-1].copy()


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return math.dist(a.tolist(), b.tolist())


class PathSequencePlanner(abc.ABC):
    """Links a set of paths into a single sequence, flipping paths as needed."""

    @abc.abstractmethod
    def set_paths(self, paths: Iterable[ProcessPath]) -> None:
        """Set the paths to link and forget any previous ordering."""

    @abc.abstractmethod
    def link_paths(self) -> list[int]:
        """Order the paths; return the path indices in execution order."""

    @property
    @abc.abstractmethod
    def paths(self) -> list[ProcessPath]:
        """The stored paths; some may be flipped after linking."""

    @property
    @abc.abstractmethod
    def indices(self) -> list[int]:
        """The order in which the stored paths are to be executed."""


class SimplePathSequencePlanner(PathSequencePlanner):
    """Greedy nearest-end linking that grows the sequence at whichever end is closer."""

    def __init__(self) -> None:
        self._paths: list[ProcessPath] = []
        self._indices: list[int] = []

    def set_paths(self, paths: Iterable[ProcessPath]) -> None:
        """Store copies of the paths and clear the ordering."""
        self._paths = [copy.deepcopy(path) for path in paths]
        self._indices = []

    @property
    def paths(self) -> list[ProcessPath]:
        return list(self._paths)

    @property
    def indices(self) -> list[int]:
        return list(self._indices)

    def _find_next_nearest(self, last_path: int, front: bool) -> int:
        last = self._paths[last_path]
        last_pt = last.start if front else last.end
        used = set(self._indices)
        min_index = -1
        min_dist = math.inf
        for index, path in enumerate(self._paths):
            if index in used:
                continue
            dist1 = _distance(path.start, last_pt)
            dist2 = _distance(path.end, last_pt)
            if dist1 < min_dist or dist2 < min_dist:
                min_index = index
                min_dist = min(dist1, dist2)
        return min_index

    def link_paths(self) -> list[int]:
        """Order the paths into one continuous sequence; return the indices."""
        paths = self._paths
        indices = self._indices
        insert_front = False
        switched = False
        while len(indices) != len(paths):
            if not indices:
                indices.append(1 if len(paths) > 1 else 0)
                continue

            last_index = indices[0] if insert_front else indices[-1]
            next_index = self._find_next_nearest(last_index, insert_front)
            if next_index < 0:
                raise ValueError("no remaining path could be linked to the sequence")
            candidate = paths[next_index]

            if len(indices) > 1 and not switched:
                front_pt = paths[indices[0]].start
                end_pt = paths[indices[-1]].end
                front_dist = min(
                    _distance(front_pt, candidate.end), _distance(front_pt, candidate.start)
                )
                back_dist = min(
                    _distance(end_pt, candidate.end), _distance(end_pt, candidate.start)
                )
                flip = front_dist < back_dist
                # The candidate is closer to the other end: grow from there instead.
                if flip != insert_front:
                    insert_front = flip
                    switched = True
                    continue
            switched = False

            if insert_front:
                indices.insert(0, next_index)
                last_pt = paths[last_index].start
            else:
                indices.append(next_index)
                last_pt = paths[last_index].end

            dist1 = _distance(candidate.start, last_pt)
            dist2 = _distance(candidate.end, last_pt)
            if (dist2 < dist1 and not insert_front) or (dist1 < dist2 and insert_front):
                candidate.flip()
        return list(indices)