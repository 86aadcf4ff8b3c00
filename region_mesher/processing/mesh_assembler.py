"""
Mesh assembly for Region Mesher.

Turns a normalized Region into renderable artifacts according to its
style:
- FILLED: triangulated surface draped on the sphere
- OUTLINE: one closed line loop per ring
- PIN: a three-part marker standing on the region's centroid

Heavy work (tessellation and triangulation) is synchronous here; the
pipeline runs it off the event loop.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple
import logging
import math

import numpy as np
import trimesh

from ..models.geometry import RingSet
from ..models.mesh import Material, MeshArtifact, MeshBuilder, Primitive, merge_artifacts
from ..models.region import Region, Style
from ..projection import SphereProjector, compute_vertex_normals, create_projector
from ..utils.math_utils import quat_from_unit_vectors, vec_normalize
from ..utils.polygon_utils import open_ring, ring_vertex_centroid
from ..utils.triangulation import TriangulationError, triangulate_ring_set
from ..config import (
    PipelineConfig,
    DEFAULT_CONFIG,
    NORMAL_WELD_DECIMALS,
    PIN_STICK_RADIUS,
    PIN_STICK_HEIGHT,
    PIN_BALL_RADIUS,
    PIN_BASE_RADIUS,
    PIN_BASE_HEIGHT,
    PIN_SECTIONS,
)
from .area_classifier import Classification, classify
from .grid_tessellator import tessellate
from .normalizer import first_feature_ring_sets

logger = logging.getLogger(__name__)

UP = (0.0, 1.0, 0.0)


@dataclass
class AssemblyResult:
    """Artifacts plus what was learned while building them."""
    artifacts: List[MeshArtifact]
    classifications: List[Classification] = field(default_factory=list)
    sub_polygon_count: int = 0
    skipped_polygons: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def first_classification(self) -> Optional[Classification]:
        return self.classifications[0] if self.classifications else None


def assemble(
    region: Region,
    config: PipelineConfig = DEFAULT_CONFIG,
    combine_outlines: bool = False
) -> AssemblyResult:
    """
    Build artifacts for a region in its requested style.

    Args:
        region: Normalized region
        config: Pipeline configuration (radius, tiers, color)
        combine_outlines: Emit one LINE_SEGMENTS artifact instead of a
            LINE_LOOP per ring (OUTLINE only)

    Returns:
        AssemblyResult

    Raises:
        ValueError: If the style is not handled
    """
    style = region.style
    if style is Style.FILLED:
        return assemble_filled(region, config)
    elif style is Style.OUTLINE:
        return assemble_outline(region, config, combine=combine_outlines)
    elif style is Style.PIN:
        return assemble_pin(region, config)
    raise ValueError(f"Unsupported style: {style!r}")


# =============================================================================
# FILLED
# =============================================================================

def assemble_filled(region: Region, config: PipelineConfig = DEFAULT_CONFIG) -> AssemblyResult:
    """
    Triangulate every polygon of a region onto the sphere.

    Small polygons are triangulated directly; larger ones are split
    into grid cells first. All pieces end up in one artifact, with
    normals pooled across the edges the pieces share.
    """
    projector = create_projector(config.radius, region.elevation)
    material = Material(color=config.color, double_sided=True)
    result = AssemblyResult(artifacts=[])

    pieces: List[MeshArtifact] = []

    for poly_idx, ring_set in enumerate(region.ring_sets):
        classification = classify(ring_set, region.method, config)
        result.classifications.append(classification)

        if classification.uses_grid:
            sub_polygons = tessellate(ring_set, classification.cell_side_km)
        else:
            sub_polygons = [ring_set]

        logger.debug(
            f"{region.region_id} polygon {poly_idx}: {classification.area_km2:.0f} km², "
            f"{classification.tier.value}, {len(sub_polygons)} piece(s)"
        )

        for sub_polygon in sub_polygons:
            artifact = _triangulate_piece(region.region_id, sub_polygon, projector, material)
            if artifact is None:
                result.skipped_polygons += 1
                continue
            pieces.append(artifact)

    result.sub_polygon_count = len(pieces)
    if result.skipped_polygons:
        result.warnings.append(
            f"{result.skipped_polygons} sub-polygon(s) of {region.region_id} "
            f"produced no triangles"
        )

    if pieces:
        merged = merge_artifacts(pieces)
        if len(pieces) > 1:
            merged = replace(merged, normals=tuple(compute_vertex_normals(
                merged.vertices, merged.indices, weld_decimals=NORMAL_WELD_DECIMALS,
            )))
        result.artifacts.append(merged)

    return result


def _triangulate_piece(
    region_id: str,
    ring_set: RingSet,
    projector: SphereProjector,
    material: Material
) -> Optional[MeshArtifact]:
    try:
        points, indices = triangulate_ring_set(ring_set)
    except TriangulationError as e:
        logger.warning(f"Skipping sub-polygon of {region_id}: {e}")
        return None

    if not indices:
        return None

    builder = MeshBuilder()
    builder.vertices = projector.project_many(points)
    builder.indices = indices
    builder.normals = compute_vertex_normals(builder.vertices, indices)

    return builder.build(
        region_id=region_id,
        style=Style.FILLED,
        radius=projector.radius,
        primitive=Primitive.TRIANGLES,
        material=material,
    )


# =============================================================================
# OUTLINE
# =============================================================================

def assemble_outline(
    region: Region,
    config: PipelineConfig = DEFAULT_CONFIG,
    combine: bool = False
) -> AssemblyResult:
    """
    Build line geometry tracing every ring of every polygon.

    Args:
        region: Normalized region
        config: Pipeline configuration
        combine: Merge all rings into one LINE_SEGMENTS artifact
    """
    projector = create_projector(config.radius, region.elevation)
    material = Material(color=config.color, double_sided=False)
    result = AssemblyResult(artifacts=[])

    loops: List[List[Tuple[float, float, float]]] = []
    for ring_set in region.ring_sets:
        for ring in ring_set.rings:
            # A line loop closes itself
            loops.append(projector.project_many(open_ring(ring)))

    result.sub_polygon_count = len(region.ring_sets)

    if combine:
        builder = MeshBuilder()
        for loop in loops:
            start = builder.vertex_count()
            builder.vertices.extend(loop)
            n = len(loop)
            for i in range(n):
                builder.add_segment(start + i, start + (i + 1) % n)
        if not builder.is_empty():
            result.artifacts.append(builder.build(
                region_id=region.region_id,
                style=Style.OUTLINE,
                radius=projector.radius,
                primitive=Primitive.LINE_SEGMENTS,
                material=material,
            ))
        return result

    for loop in loops:
        builder = MeshBuilder(vertices=list(loop))
        result.artifacts.append(builder.build(
            region_id=region.region_id,
            style=Style.OUTLINE,
            radius=projector.radius,
            primitive=Primitive.LINE_LOOP,
            material=material,
        ))

    return result


# =============================================================================
# PIN
# =============================================================================

def build_pin_mesh() -> trimesh.Trimesh:
    """
    Build the marker in its local frame.

    The marker stands on the origin pointing along +Y: a thin stick,
    a ball on top of it and a flat base just below the origin.
    """
    # trimesh primitives are built along +Z; turn them to +Y
    z_to_y = trimesh.transformations.rotation_matrix(-math.pi / 2.0, [1.0, 0.0, 0.0])

    stick = trimesh.creation.cylinder(
        radius=PIN_STICK_RADIUS,
        height=PIN_STICK_HEIGHT,
        sections=PIN_SECTIONS,
    )
    stick.apply_transform(z_to_y)
    stick.apply_translation([0.0, PIN_STICK_HEIGHT / 2.0, 0.0])

    ball = trimesh.creation.uv_sphere(
        radius=PIN_BALL_RADIUS,
        count=[PIN_SECTIONS, PIN_SECTIONS],
    )
    ball.apply_transform(z_to_y)
    ball.apply_translation([0.0, PIN_STICK_HEIGHT + PIN_BALL_RADIUS, 0.0])

    base = trimesh.creation.cylinder(
        radius=PIN_BASE_RADIUS,
        height=PIN_BASE_HEIGHT,
        sections=PIN_SECTIONS,
    )
    base.apply_transform(z_to_y)
    base.apply_translation([0.0, -PIN_BASE_HEIGHT / 2.0, 0.0])

    return trimesh.util.concatenate([stick, ball, base])


def pin_anchor(region: Region) -> Tuple[float, float]:
    """
    (lat, lng) where the pin stands.

    Plain average of every ring vertex of the first polygon of the
    first feature.

    Raises:
        ValueError: If the region has no usable polygon
    """
    ring_sets = first_feature_ring_sets(region)
    if not ring_sets:
        ring_sets = region.ring_sets[:1]
    if not ring_sets:
        raise ValueError(f"Region {region.region_id} has no polygon to place a pin on")
    return ring_vertex_centroid(ring_sets[0].rings)


def assemble_pin(region: Region, config: PipelineConfig = DEFAULT_CONFIG) -> AssemblyResult:
    """
    Place a marker on the region's centroid, pointing away from the globe.
    """
    projector = create_projector(config.radius, region.elevation)
    result = AssemblyResult(artifacts=[])

    lat, lng = pin_anchor(region)
    position = projector.project(lat, lng)
    orientation = quat_from_unit_vectors(UP, vec_normalize(position))

    mesh = build_pin_mesh()
    rotation = trimesh.transformations.quaternion_matrix(
        # trimesh takes (w, x, y, z)
        [orientation[3], orientation[0], orientation[1], orientation[2]]
    )[:3, :3]

    vertices = np.asarray(mesh.vertices) @ rotation.T + np.asarray(position)
    normals = np.asarray(mesh.vertex_normals) @ rotation.T

    builder = MeshBuilder(
        vertices=[tuple(float(c) for c in v) for v in vertices],
        indices=[int(i) for i in np.asarray(mesh.faces).reshape(-1)],
        normals=[tuple(float(c) for c in n) for n in normals],
    )

    result.sub_polygon_count = 1
    result.artifacts.append(builder.build(
        region_id=region.region_id,
        style=Style.PIN,
        radius=projector.radius,
        primitive=Primitive.TRIANGLES,
        material=Material(color=config.color, double_sided=False),
        position=position,
        orientation=orientation,
    ))

    logger.debug(f"Pin for {region.region_id} at lat={lat:.4f}, lng={lng:.4f}")
    return result
