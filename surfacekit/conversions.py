"""Conversions between mesh messages, polygon meshes and PLY files."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import numpy as np


class ConversionError(ValueError):
    """Raised when a mesh cannot be converted or read."""


@dataclass
class MeshMessage:
    """A triangle mesh as plain vertex coordinates and vertex-index triples."""

    vertices: list[tuple[float, float, float]] = field(default_factory=list)
    triangles: list[tuple[int, int, int]] = field(default_factory=list)


@dataclass(eq=False)
class PolygonMesh:
    """A point cloud of single-precision XYZ points with polygons over it."""

    points: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=np.float32))
    polygons: list[tuple[int, ...]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=np.float32).reshape(-1, 3)
        self.polygons = [tuple(int(i) for i in polygon) for polygon in self.polygons]


def to_polygon_mesh(mesh_msg: MeshMessage) -> PolygonMesh:
    """Convert a mesh message to a polygon mesh."""
    return PolygonMesh(points=list(mesh_msg.vertices), polygons=list(mesh_msg.triangles))


def to_mesh_message(mesh: PolygonMesh) -> MeshMessage:
    """Convert a triangle-only polygon mesh to a mesh message."""
    if not mesh.polygons:
        raise ConversionError("PolygonMesh has no polygons")
    if len(mesh.points) == 0:
        raise ConversionError("PolygonMesh has no vertices data")
    triangles = []
    for polygon in mesh.polygons:
        if len(polygon) != 3:
            raise ConversionError("Vertex in PolygonMesh needs to have 3 elements only")
        triangles.append((polygon[0], polygon[1], polygon[2]))
    vertices = [(x, y, z) for x, y, z in mesh.points.tolist()]
    return MeshMessage(vertices=vertices, triangles=triangles)


def save_ply(filename: str | Path, mesh_msg: MeshMessage) -> None:
    """Write a mesh message to an ASCII PLY file."""
    mesh = to_polygon_mesh(mesh_msg)
    lines = [
        "ply",
        "format ascii 1.0",
        f"element vertex {len(mesh.points)}",
        "property float x",
        "property float y",
        "property float z",
        f"element face {len(mesh.polygons)}",
        "property list uchar int vertex_indices",
        "end_header",
    ]
    lines += [" ".join(f"{c:.9g}" for c in point) for point in mesh.points.tolist()]
    lines += [" ".join(str(i) for i in (len(p), *p)) for p in mesh.polygons]
    Path(filename).write_text("\n".join(lines) + "\n", encoding="ascii")


_SCALAR_CODES = {
    "char": "b", "int8": "b", "uchar": "B", "uint8": "B",
    "short": "h", "int16": "h", "ushort": "H", "uint16": "H",
    "int": "i", "int32": "i", "uint": "I", "uint32": "I",
    "float": "f", "float32": "f", "double": "d", "float64": "d",
}
_FLOAT_TYPES = {"float", "float32", "double", "float64"}


@dataclass
class _Property:
    name: str
    type_name: str
    count_type: str | None = None


@dataclass
class _Element:
    name: str
    count: int
    properties: list[_Property] = field(default_factory=list)


class _AsciiReader:
    def __init__(self, body: bytes) -> None:
        self._tokens: Iterator[bytes] = iter(body.split())

    def scalar(self, type_name: str) -> float | int:
        token = next(self._tokens, None)
        if token is None:
            raise ConversionError("PLY data is truncated")
        try:
            return float(token) if type_name in _FLOAT_TYPES else int(token)
        except ValueError as exc:
            raise ConversionError(f"invalid PLY value {token!r}") from exc


class _BinaryReader:
    def __init__(self, body: bytes, endian: str) -> None:
        self._body = body
        self._endian = endian
        self._offset = 0

    def scalar(self, type_name: str) -> float | int:
        code = self._endian + _SCALAR_CODES[type_name]
        size = struct.calcsize(code)
        if self._offset + size > len(self._body):
            raise ConversionError("PLY data is truncated")
        (value,) = struct.unpack_from(code, self._body, self._offset)
        self._offset += size
        return value


def _parse_header(data: bytes) -> tuple[str, list[_Element], bytes]:
    marker = data.find(b"end_header")
    if not data.startswith(b"ply") or marker < 0:
        raise ConversionError("not a PLY file")
    newline = data.find(b"\n", marker)
    body = data[newline + 1:] if newline >= 0 else b""
    try:
        header = data[:marker].decode("ascii").splitlines()
    except UnicodeDecodeError as exc:
        raise ConversionError("PLY header is not ASCII") from exc
    fmt = None
    elements: list[_Element] = []
    try:
        for line in header[1:]:
            words = line.split()
            if not words or words[0] in ("comment", "obj_info"):
                continue
            if words[0] == "format":
                fmt = words[1]
            elif words[0] == "element":
                elements.append(_Element(words[1], int(words[2])))
            elif words[0] == "property":
                if not elements:
                    raise ConversionError("PLY property declared before any element")
                if words[1] == "list":
                    prop = _Property(words[4], words[3], words[2])
                else:
                    prop = _Property(words[2], words[1])
                for type_name in (prop.type_name, prop.count_type):
                    if type_name is not None and type_name not in _SCALAR_CODES:
                        raise ConversionError(f"unknown PLY type '{type_name}'")
                elements[-1].properties.append(prop)
            else:
                raise ConversionError(f"unexpected PLY header line '{line}'")
    except (IndexError, ValueError) as exc:
        if isinstance(exc, ConversionError):
            raise
        raise ConversionError("malformed PLY header") from exc
    if fmt is None:
        raise ConversionError("PLY header has no format line")
    return fmt, elements, body


def load_ply(filename: str | Path) -> MeshMessage:
    """Read a triangle mesh from an ASCII or binary PLY file."""
    fmt, elements, body = _parse_header(Path(filename).read_bytes())
    if fmt == "ascii":
        reader: _AsciiReader | _BinaryReader = _AsciiReader(body)
    elif fmt == "binary_little_endian":
        reader = _BinaryReader(body, "<")
    elif fmt == "binary_big_endian":
        reader = _BinaryReader(body, ">")
    else:
        raise ConversionError(f"unsupported PLY format '{fmt}'")

    def read(prop: _Property):
        if prop.count_type is None:
            return reader.scalar(prop.type_name)
        count = int(reader.scalar(prop.count_type))
        return [reader.scalar(prop.type_name) for _ in range(count)]

    rows: dict[str, list[dict]] = {}
    for element in elements:
        rows[element.name] = [
            {prop.name: read(prop) for prop in element.properties} for _ in range(element.count)
        ]

    try:
        points = [(row["x"], row["y"], row["z"]) for row in rows.get("vertex", [])]
    except KeyError as exc:
        raise ConversionError("PLY vertices lack x, y or z") from exc
    polygons = []
    for row in rows.get("face", []):
        indices = row.get("vertex_indices", row.get("vertex_index"))
        if indices is None:
            raise ConversionError("PLY faces lack vertex indices")
        polygons.append(tuple(int(i) for i in indices))
    return to_mesh_message(PolygonMesh(points=points, polygons=polygons))