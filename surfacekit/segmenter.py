"""Region-growing segmentation of triangle meshes by cell-normal similarity."""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Sequence

from surfacekit.mesh import TriangleMesh

logger = logging.getLogger(__name__)


def normals_near(norm1: Sequence[float], norm2: Sequence[float], threshold: float) -> bool:
    """Return True when the angle between two unit normals is within ``threshold`` radians."""
    value = sum(a * b for a, b in zip(norm1, norm2))
    if value >= 1.0:
        return True
    if value < -1.0:
        return False
    return math.acos(value) <= threshold


class MeshSegmenter:
    """Splits a mesh into regions of cells whose normals change slowly."""

    def __init__(
        self,
        min_cluster_size: int = 50,
        max_cluster_size: int = 1_000_000,
        curvature_threshold: float = 0.3,
    ) -> None:
        self.min_cluster_size = min_cluster_size
        # Kept for configuration; segment size is not capped.
        self.max_cluster_size = max_cluster_size
        self.curvature_threshold = curvature_threshold
        self.input_mesh: TriangleMesh | None = None
        self.segments: list[list[int]] = []

    def set_input_mesh(self, mesh: TriangleMesh) -> None:
        """Set the mesh to segment."""
        self.input_mesh = mesh
        self.segments = []

    def _mesh(self) -> TriangleMesh:
        if self.input_mesh is None:
            raise RuntimeError("no input mesh has been set")
        return self.input_mesh

    def neighbor_cells(self, cell_id: int) -> list[int]:
        """Return the cells sharing an edge with ``cell_id``."""
        return self._mesh().edge_neighbors(cell_id)

    def grow_region(self, start_cell: int) -> list[int]:
        """Collect the connected cells reachable from ``start_cell`` across near normals."""
        mesh = self._mesh()
        normals = mesh.cell_normals
        if normals is None:
            return []
        pending = deque([start_cell])
        pending_set = {start_cell}
        used: list[int] = []
        used_set: set[int] = set()
        while pending:
            current = pending[0]
            current_normal = normals[current]
            for neighbor in self.neighbor_cells(current):
                if neighbor in pending_set or neighbor in used_set:
                    continue
                if normals_near(current_normal, normals[neighbor], self.curvature_threshold):
                    pending.append(neighbor)
                    pending_set.add(neighbor)
            used.append(current)
            used_set.add(current)
            pending.popleft()
            pending_set.discard(current)
        return used

    def segment(self) -> list[list[int]]:
        """Segment the mesh; the last segment holds every cell left over."""
        size = len(self._mesh().cells)
        used: set[int] = set()
        used_count = 0
        segments: list[list[int]] = []
        for cell in range(size):
            if cell in used:
                continue
            linked = self.grow_region(cell)
            if len(linked) > self.min_cluster_size:
                segments.append(linked)
                used.update(linked)
                used_count += len(linked)
        included = {cell for segment in segments for cell in segment}
        edges = [cell for cell in range(size) if cell not in included]
        segments.append(edges)
        self.segments = segments

        logger.info("Found %d segments", len(segments))
        logger.info("Total mesh size: %d", size)
        logger.info("Used cells size: %d", used_count)
        logger.info("Edge cells size: %d", len(edges))
        return segments

    def mesh_segments(self) -> list[TriangleMesh]:
        """Return one mesh per segment, skipping segments of one cell or fewer."""
        mesh = self._mesh()
        meshes: list[TriangleMesh] = []
        for index, cells in enumerate(self.segments):
            logger.info("Segment %d size: %d", index, len(cells))
            part = mesh.extract_cells(cells)
            if len(part.cells) <= 1:
                logger.warning("NOT ENOUGH CELLS FOR SEGMENTATION")
                continue
            meshes.append(part)
        return meshes