# surfacekit

A small library for working with triangulated surfaces and point clouds:

- `surfacekit.mesh` – `TriangleMesh`, a triangle mesh with optional per-cell
  normals, edge adjacency and cell extraction, and `triangulate_polygons`
  for fan-splitting convex polygons.
- `surfacekit.segmenter` – `MeshSegmenter`, region-growing segmentation by
  cell-normal similarity.
- `surfacekit.conversions` – `MeshMessage` and `PolygonMesh`, conversions
  between them, and PLY reading and writing.
- `surfacekit.filtering` – filter base classes, a filter registry, named
  filter groups and a filter manager.
- `surfacekit.cloud_filters` – voxel-grid, pass-through and crop-box point
  cloud filters.
- `surfacekit.palette` – display colours for meshes and paths.
- `surfacekit.sequence` – `ProcessPath` and `SimplePathSequencePlanner`,
  which links paths into one continuous route.

## Installation

```
pip install .
```

Python 3.10 or later and NumPy are required.

## Segmenting a mesh

```python
from surfacekit.conversions import load_ply
from surfacekit.mesh import TriangleMesh
from surfacekit.segmenter import MeshSegmenter

message = load_ply("part.ply")
mesh = TriangleMesh(points=message.vertices, cells=message.triangles)
mesh.compute_cell_normals()

segmenter = MeshSegmenter(min_cluster_size=500, curvature_threshold=0.3)
segmenter.set_input_mesh(mesh)
segments = segmenter.segment()          # lists of cell ids
meshes = segmenter.mesh_segments()      # one TriangleMesh per segment
```

Two neighbouring cells (cells sharing an edge) are joined when the angle
between their normals is at most `curvature_threshold` radians. A region is
kept as a segment only when it has more than `min_cluster_size` cells; every
cell left over goes into a final "edge" segment, so each cell appears in
exactly one segment. `max_cluster_size` is stored but does not cap segment
size. `mesh_segments` leaves out segments of one cell or fewer. Without cell
normals, no region grows and every cell ends up in the edge segment.

The defaults are `min_cluster_size=50`, `max_cluster_size=1_000_000` and
`curvature_threshold=0.3`.

## Mesh messages and PLY files

`to_polygon_mesh` and `to_mesh_message` convert between a `MeshMessage`
(vertex tuples plus index triples) and a `PolygonMesh` (float32 points plus
polygons). `to_mesh_message` raises `ConversionError` when the mesh has no
polygons, no points, or a polygon that is not a triangle.

`save_ply(filename, mesh_msg)` writes an ASCII PLY file. `load_ply(filename)`
reads ASCII and binary (little or big endian) PLY files and returns a
`MeshMessage`; it raises `ConversionError` for malformed files or
non-triangle faces.

## Filter groups

Filters derive from `FilterBase` (or `CloudFilterBase` / `MeshFilterBase`),
implement `configure(config)` and `filter(data)`, and are made available with
the `register_filter` decorator. They are referred to by
`filter_type_name(cls)`, the class's module and qualified name.

A `FilterManager` is initialised from a dictionary:

```python
from surfacekit.cloud_filters import VoxelGridFilter
from surfacekit.filtering import CloudFilterBase, FilterManager, filter_type_name

config = {
    "filter_groups": [
        {
            "group_name": "Default",
            "continue_on_failure": False,
            "verbosity_on": False,
            "filters": [
                {
                    "type": filter_type_name(VoxelGridFilter),
                    "name": "voxel_grid",
                    "config": {"leaf_size": 0.01},
                },
            ],
        }
    ]
}

manager = FilterManager(CloudFilterBase)
manager.init(config)
group = manager.get_filter_group()      # empty name selects "Default"
filtered = group.apply_filters(cloud)   # or apply_filters(cloud, ["voxel_grid"])
```

Configuration problems, unknown groups or filters, and failing filters raise
`FilterError`. With `continue_on_failure` set, a failing filter is skipped
and the chain carries on; the call fails only if no filter succeeded.

### Point cloud filters

A cloud is an `N x 3` (or wider) numeric array whose first columns are x, y
and z, or a structured array with `x`, `y` and `z` fields.

- `VoxelGridFilter` – `leaf_size` (required); optionally, all together,
  `filter_field_name`, `min_limit`, `max_limit`, `filter_limits_negative`
  and `min_pts_per_voxel`. Replaces the points in each voxel by their mean.
- `PassThroughFilter` – `filter_field_name`, `min_limit`, `max_limit`
  (required) and `negative`. Keeps points whose field lies within the limits
  (or outside them when negated).
- `CropBoxFilter` – `min` and `max` (`x`, `y`, `z`) and `transform`
  (`x`, `y`, `z`, `rx`, `ry`, `rz`) required, `crop_outside` optional. Keeps
  the points that lie inside the box after transformation.

## Path sequencing

```python
from surfacekit.sequence import ProcessPath, SimplePathSequencePlanner

planner = SimplePathSequencePlanner()
planner.set_paths([ProcessPath(points) for points in rasters])
order = planner.link_paths()
ordered = [planner.paths[i] for i in order]
```

`link_paths` starts from path 1 (path 0 when there is only one), repeatedly
adds the nearest unused path at whichever end of the sequence it is closer to,
and reverses paths with `ProcessPath.flip` so each one starts near where its
neighbour ends. `set_paths` stores copies, so the caller's paths are not
flipped.

## Colours

`hex_to_rgb(0xRRGGBB)` gives components in [0, 1]; `mesh_colors(n)` and
`path_colors(n)` return `n` colours cycling through twelve-colour palettes.

## What the package does not do

- There is no command-line program; everything is used from Python.
- Meshes are read and written only as PLY; there is no STL or PCD support.
- There is no mesh smoothing or normal estimation beyond
  `TriangleMesh.compute_cell_normals`.
- There are no statistical-outlier, radius-outlier or smoothing cloud filters,
  and no mesh filters are registered: `MeshFilterManager` only runs filters
  you register yourself.
- There is no rendering; the palette only supplies colours.

## Running the tests

```
pip install .[test]
pytest
```