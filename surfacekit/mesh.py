"""Triangle meshes with per-cell normals and edge adjacency."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np


@dataclass(eq=False)
class TriangleMesh:
    """A triangle mesh: point coordinates, triangle cells and optional cell normals."""

    points: np.ndarray
    cells: np.ndarray
    cell_normals: np.ndarray | None = None
    _edge_cells: dict = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=float).reshape(-1, 3)
        self.cells = np.asarray(self.cells, dtype=np.int64).reshape(-1, 3)
        if self.cells.size and (self.cells.min() < 0 or self.cells.max() >= len(self.points)):
            raise ValueError("cell refers to a point that does not exist")
        if self.cell_normals is not None:
            self.cell_normals = np.asarray(self.cell_normals, dtype=float).reshape(-1, 3)
            if len(self.cell_normals) != len(self.cells):
                raise ValueError("there must be exactly one normal per cell")
        edge_cells: dict[tuple[int, int], list[int]] = defaultdict(list)
        for cell_id, triangle in enumerate(self.cells.tolist()):
            for a, b in zip(triangle, triangle[1:] + triangle[:1]):
                edge_cells[(min(a, b), max(a, b))].append(cell_id)
        self._edge_cells = dict(edge_cells)

    def compute_cell_normals(self) -> np.ndarray:
        """Compute unit right-hand-rule normals for every cell and store them."""
        corners = self.points[self.cells]
        normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0
        normals[nonzero] /= lengths[nonzero, None]
        self.cell_normals = normals
        return normals

    def edge_neighbors(self, cell_id: int) -> list[int]:
        """Return the cells sharing an edge with ``cell_id``, edge by edge."""
        if not 0 <= cell_id < len(self.cells):
            raise IndexError(f"cell {cell_id} does not exist")
        triangle = self.cells[cell_id].tolist()
        neighbors: list[int] = []
        for a, b in zip(triangle, triangle[1:] + triangle[:1]):
            shared = self._edge_cells.get((min(a, b), max(a, b)), [])
            neighbors.extend(other for other in shared if other != cell_id)
        return neighbors

    def extract_cells(self, cell_ids: Iterable[int]) -> "TriangleMesh":
        """Return a new mesh made of the given cells, in the given order."""
        ids = np.fromiter((int(i) for i in cell_ids), dtype=np.int64)
        if ids.size and (ids.min() < 0 or ids.max() >= len(self.cells)):
            raise IndexError("cell id out of range")
        selected = self.cells[ids]
        order: dict[int, int] = {}
        for point_id in selected.ravel().tolist():
            order.setdefault(point_id, len(order))
        used = np.fromiter(order, dtype=np.int64, count=len(order))
        remap = np.full(len(self.points), -1, dtype=np.int64)
        remap[used] = np.arange(len(used))
        normals = None if self.cell_normals is None else self.cell_normals[ids].copy()
        return TriangleMesh(self.points[used].copy(), remap[selected], normals)


def triangulate_polygons(polygons: Iterable[Sequence[int]]) -> np.ndarray:
    """Split convex polygons into fan triangles; polygons under three vertices are dropped."""
    triangles = [
        (polygon[0], polygon[i], polygon[i + 1])
        for polygon in (list(p) for p in polygons)
        if len(polygon) >= 3
        for i in range(1, len(polygon) - 1)
    ]
    return np.asarray(triangles, dtype=np.int64).reshape(-1, 3)