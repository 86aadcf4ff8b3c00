"""
Mesh data model for Region Mesher.

Provides MeshBuilder, a mutable accumulator used while assembling
geometry, and MeshArtifact, the immutable renderable result that is
handed to the scene and stored in the cache.

Note on indexing:
    - Indices are 0-based and flat (three per triangle, two per segment)
    - When merging, indices are adjusted by the vertex offset
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .region import Style

Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]

DEFAULT_COLOR = "red"


class Primitive(Enum):
    """How the index buffer of an artifact is interpreted."""
    TRIANGLES = "triangles"
    LINE_LOOP = "line_loop"
    LINE_SEGMENTS = "line_segments"


@dataclass(frozen=True)
class Material:
    """Material description stored alongside geometry."""
    color: str = DEFAULT_COLOR
    double_sided: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {'color': self.color, 'double_sided': self.double_sided}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Material':
        return Material(
            color=str(data.get('color', DEFAULT_COLOR)),
            double_sided=bool(data.get('double_sided', True)),
        )


@dataclass(frozen=True)
class MeshArtifact:
    """
    Renderable geometry for one region and style.

    Artifacts are never mutated after creation. Use reproject() to get
    the same geometry at another radius.

    Attributes:
        region_id: Region code the artifact was built for
        style: Style that produced the artifact
        radius: Sphere radius the vertices were projected at
        primitive: Interpretation of indices
        vertices: 3D positions
        indices: Flat 0-based index buffer (empty for LINE_LOOP)
        normals: Per-vertex normals (empty for line primitives)
        material: Color and sidedness
        position: Anchor point (pins only)
        orientation: (x, y, z, w) quaternion applied to the marker (pins only)
    """
    region_id: str
    style: Style
    radius: float
    primitive: Primitive
    vertices: Tuple[Vec3, ...]
    indices: Tuple[int, ...] = ()
    normals: Tuple[Vec3, ...] = ()
    material: Material = field(default_factory=Material)
    position: Optional[Vec3] = None
    orientation: Optional[Quat] = None

    def vertex_count(self) -> int:
        """Get number of vertices."""
        return len(self.vertices)

    def triangle_count(self) -> int:
        """Get number of triangles (0 for line primitives)."""
        if self.primitive is not Primitive.TRIANGLES:
            return 0
        return len(self.indices) // 3

    def is_empty(self) -> bool:
        """Check if artifact has no geometry."""
        return len(self.vertices) == 0

    def validate(self) -> List[str]:
        """
        Validate buffer integrity.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.vertices:
            errors.append("Artifact has no vertices")
            return errors

        n = len(self.vertices)
        if self.primitive is Primitive.TRIANGLES and len(self.indices) % 3 != 0:
            errors.append(f"Index count {len(self.indices)} is not a multiple of 3")
        if self.primitive is Primitive.LINE_SEGMENTS and len(self.indices) % 2 != 0:
            errors.append(f"Index count {len(self.indices)} is not a multiple of 2")

        for i, idx in enumerate(self.indices):
            if idx < 0 or idx >= n:
                errors.append(
                    f"Index {i} has invalid vertex index {idx} "
                    f"(valid range: 0-{n - 1})"
                )

        if self.normals and len(self.normals) != n:
            errors.append(
                f"Normal count {len(self.normals)} does not match vertex count {n}"
            )

        return errors

    def reproject(self, radius: float) -> 'MeshArtifact':
        """
        Return a copy projected onto a sphere of another radius.

        Every vertex lies on a sphere centered at the origin, so moving
        to another radius is a uniform scale of positions. Normals are
        direction-only and are kept.
        """
        if radius <= 0:
            raise ValueError("radius must be positive")
        if radius == self.radius:
            return self

        ratio = radius / self.radius
        position = self.position
        if position is not None:
            position = (position[0] * ratio, position[1] * ratio, position[2] * ratio)
            # Marker geometry keeps its size; only the anchor moves.
            shift = (
                position[0] - self.position[0],
                position[1] - self.position[1],
                position[2] - self.position[2],
            )
            vertices = tuple(
                (v[0] + shift[0], v[1] + shift[1], v[2] + shift[2])
                for v in self.vertices
            )
        else:
            vertices = tuple(
                (v[0] * ratio, v[1] * ratio, v[2] * ratio) for v in self.vertices
            )

        return replace(self, radius=radius, vertices=vertices, position=position)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-compatible data."""
        return {
            'region_id': self.region_id,
            'style': self.style.value,
            'radius': self.radius,
            'primitive': self.primitive.value,
            'vertices': [list(v) for v in self.vertices],
            'indices': list(self.indices),
            'normals': [list(n) for n in self.normals],
            'material': self.material.to_dict(),
            'position': list(self.position) if self.position is not None else None,
            'orientation': list(self.orientation) if self.orientation is not None else None,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'MeshArtifact':
        """
        Rebuild an artifact from to_dict() output.

        Raises:
            KeyError, ValueError, TypeError: If the record is malformed
        """
        position = data.get('position')
        orientation = data.get('orientation')
        return MeshArtifact(
            region_id=str(data['region_id']),
            style=Style(data['style']),
            radius=float(data['radius']),
            primitive=Primitive(data['primitive']),
            vertices=tuple(_vec3(v) for v in data['vertices']),
            indices=tuple(int(i) for i in data.get('indices', [])),
            normals=tuple(_vec3(n) for n in data.get('normals', [])),
            material=Material.from_dict(data.get('material', {})),
            position=_vec3(position) if position is not None else None,
            orientation=tuple(float(c) for c in orientation) if orientation is not None else None,
        )

    def __repr__(self) -> str:
        return (
            f"MeshArtifact(region={self.region_id!r}, style={self.style.value}, "
            f"primitive={self.primitive.value}, vertices={len(self.vertices)}, "
            f"indices={len(self.indices)})"
        )


def _vec3(values: Sequence[float]) -> Vec3:
    if len(values) != 3:
        raise ValueError(f"Expected 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass
class MeshBuilder:
    """
    Mutable geometry accumulator.

    Collects vertices and indices while a region is being assembled,
    then freezes into a MeshArtifact.
    """
    vertices: List[Vec3] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)
    normals: List[Vec3] = field(default_factory=list)

    def vertex_count(self) -> int:
        """Get number of vertices."""
        return len(self.vertices)

    def add_vertex(self, x: float, y: float, z: float) -> int:
        """
        Add a vertex and return its 0-based index.
        """
        self.vertices.append((x, y, z))
        return len(self.vertices) - 1

    def add_triangle(self, v1: int, v2: int, v3: int) -> None:
        """Add a triangle (0-based indices, CCW seen from outside)."""
        self.indices.extend((v1, v2, v3))

    def add_segment(self, v1: int, v2: int) -> None:
        """Add a line segment."""
        self.indices.extend((v1, v2))

    def merge(self, other: 'MeshBuilder') -> None:
        """
        Merge another builder into this one.

        Vertices and normals are appended; indices are shifted by the
        current vertex count so both buffers stay contiguous.
        """
        if not other.vertices:
            return

        vertex_offset = len(self.vertices)
        self.vertices.extend(other.vertices)
        self.normals.extend(other.normals)
        self.indices.extend(idx + vertex_offset for idx in other.indices)

    def merge_artifact(self, artifact: MeshArtifact) -> None:
        """Merge the buffers of an existing artifact."""
        vertex_offset = len(self.vertices)
        self.vertices.extend(artifact.vertices)
        self.normals.extend(artifact.normals)
        self.indices.extend(idx + vertex_offset for idx in artifact.indices)

    def is_empty(self) -> bool:
        """Check if builder has no geometry."""
        return len(self.vertices) == 0

    def build(
        self,
        region_id: str,
        style: Style,
        radius: float,
        primitive: Primitive = Primitive.TRIANGLES,
        material: Optional[Material] = None,
        position: Optional[Vec3] = None,
        orientation: Optional[Quat] = None,
    ) -> MeshArtifact:
        """Freeze current buffers into an immutable artifact."""
        return MeshArtifact(
            region_id=region_id,
            style=style,
            radius=radius,
            primitive=primitive,
            vertices=tuple(self.vertices),
            indices=tuple(self.indices),
            normals=tuple(self.normals),
            material=material or Material(),
            position=position,
            orientation=orientation,
        )

    def __repr__(self) -> str:
        return f"MeshBuilder(vertices={len(self.vertices)}, indices={len(self.indices)})"


def merge_artifacts(artifacts: Sequence[MeshArtifact]) -> MeshArtifact:
    """
    Merge several triangle artifacts into one.

    All inputs must share region, style, radius and primitive; the
    material of the first artifact is kept.

    Raises:
        ValueError: If the list is empty or the artifacts are incompatible
    """
    if not artifacts:
        raise ValueError("Cannot merge an empty artifact list")

    first = artifacts[0]
    if len(artifacts) == 1:
        return first

    builder = MeshBuilder()
    for artifact in artifacts:
        if (artifact.primitive is not first.primitive or
                artifact.radius != first.radius or
                artifact.style is not first.style):
            raise ValueError(
                f"Cannot merge {artifact!r} into {first!r}: incompatible buffers"
            )
        builder.merge_artifact(artifact)

    return builder.build(
        region_id=first.region_id,
        style=first.style,
        radius=first.radius,
        primitive=first.primitive,
        material=first.material,
    )
