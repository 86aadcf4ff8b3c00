"""
OBJ mesh exporter for Region Mesher.

Writes MeshArtifacts to Wavefront OBJ:
- Triangles become 'f' records (with 'vn' normals when present)
- Line loops and segments become 'l' records
- One 'g' group per artifact
"""

import os
from typing import List, Optional, Sequence
from dataclasses import dataclass
import logging

from ..models.mesh import MeshArtifact, Primitive

logger = logging.getLogger(__name__)


@dataclass
class ExportStats:
    """Statistics from OBJ export."""
    total_vertices: int = 0
    total_normals: int = 0
    total_faces: int = 0
    total_lines: int = 0
    total_groups: int = 0
    file_size_bytes: int = 0


def _group_name(artifact: MeshArtifact, index: int) -> str:
    return f"{artifact.region_id}_{artifact.style.value}_{index}"


def export_obj(
    artifacts: Sequence[MeshArtifact],
    filepath: str,
    comment: Optional[str] = None
) -> ExportStats:
    """
    Export artifacts to a single OBJ file.

    Args:
        artifacts: Artifacts to export (empty ones are skipped)
        filepath: Output file path (.obj)
        comment: Optional comment to include in file header

    Returns:
        ExportStats with export statistics
    """
    stats = ExportStats()
    kept = [a for a in artifacts if not a.is_empty()]

    os.makedirs(os.path.dirname(filepath) or '.', exist_ok=True)

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write("# Region Mesher OBJ Export\n")
        f.write(f"# Artifacts: {len(kept)}\n")
        if comment:
            f.write(f"# {comment}\n")
        f.write("\n")

        vertex_offset = 0
        normal_offset = 0

        for index, artifact in enumerate(kept):
            f.write(f"g {_group_name(artifact, index)}\n")

            for x, y, z in artifact.vertices:
                f.write(f"v {x:.6f} {y:.6f} {z:.6f}\n")

            has_normals = (
                artifact.primitive is Primitive.TRIANGLES and
                len(artifact.normals) == len(artifact.vertices)
            )
            if has_normals:
                for nx, ny, nz in artifact.normals:
                    f.write(f"vn {nx:.6f} {ny:.6f} {nz:.6f}\n")

            # OBJ indices are 1-based
            if artifact.primitive is Primitive.TRIANGLES:
                idx = artifact.indices
                for t in range(0, len(idx) - 2, 3):
                    a = idx[t] + vertex_offset + 1
                    b = idx[t + 1] + vertex_offset + 1
                    c = idx[t + 2] + vertex_offset + 1
                    if has_normals:
                        na = idx[t] + normal_offset + 1
                        nb = idx[t + 1] + normal_offset + 1
                        nc = idx[t + 2] + normal_offset + 1
                        f.write(f"f {a}//{na} {b}//{nb} {c}//{nc}\n")
                    else:
                        f.write(f"f {a} {b} {c}\n")
                    stats.total_faces += 1

            elif artifact.primitive is Primitive.LINE_LOOP:
                refs = [str(i + vertex_offset + 1) for i in range(len(artifact.vertices))]
                refs.append(refs[0])
                f.write(f"l {' '.join(refs)}\n")
                stats.total_lines += 1

            elif artifact.primitive is Primitive.LINE_SEGMENTS:
                idx = artifact.indices
                for s in range(0, len(idx) - 1, 2):
                    f.write(f"l {idx[s] + vertex_offset + 1} {idx[s + 1] + vertex_offset + 1}\n")
                    stats.total_lines += 1

            f.write("\n")

            vertex_offset += len(artifact.vertices)
            if has_normals:
                normal_offset += len(artifact.normals)
            stats.total_groups += 1

    stats.total_vertices = vertex_offset
    stats.total_normals = normal_offset
    stats.file_size_bytes = os.path.getsize(filepath)

    logger.info(
        f"Exported OBJ: {filepath} "
        f"({stats.total_vertices} vertices, {stats.total_faces} faces, "
        f"{stats.total_lines} lines, {stats.file_size_bytes / 1024:.1f} KB)"
    )

    return stats


def validate_obj_file(filepath: str) -> List[str]:
    """
    Validate an OBJ file for common issues.

    Args:
        filepath: Path to OBJ file

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if not os.path.exists(filepath):
        errors.append(f"File does not exist: {filepath}")
        return errors

    vertex_count = 0
    element_count = 0
    max_vertex_ref = 0

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()

                if not line or line.startswith('#'):
                    continue

                parts = line.split()

                if parts[0] == 'v':
                    vertex_count += 1
                    if len(parts) < 4:
                        errors.append(f"Line {line_num}: Vertex has < 3 coordinates")

                elif parts[0] in ('f', 'l'):
                    element_count += 1
                    minimum = 3 if parts[0] == 'f' else 2
                    if len(parts) - 1 < minimum:
                        errors.append(
                            f"Line {line_num}: Element has < {minimum} vertices"
                        )

                    for part in parts[1:]:
                        # Handle v/vt/vn format
                        idx_str = part.split('/')[0]
                        try:
                            idx = int(idx_str)
                        except ValueError:
                            errors.append(f"Line {line_num}: Invalid vertex index '{idx_str}'")
                            continue
                        if idx > 0:
                            max_vertex_ref = max(max_vertex_ref, idx)
                        elif idx == 0 or vertex_count + idx < 0:
                            errors.append(f"Line {line_num}: Invalid index {idx}")

    except OSError as e:
        errors.append(f"Failed to read file: {e}")
        return errors

    if max_vertex_ref > vertex_count:
        errors.append(
            f"Element references vertex {max_vertex_ref} but only {vertex_count} vertices exist"
        )

    if vertex_count == 0:
        errors.append("File contains no vertices")

    if element_count == 0:
        errors.append("File contains no faces or lines")

    return errors
