"""
Region Mesher - Main CLI

Converts one region document into globe geometry and writes it as OBJ.

Usage:
    python -m region_mesher.main --region <code> --regions-dir <path>

Example:
    python -m region_mesher.main --region fr --regions-dir ./country --style outline
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from . import __version__
from .cache.mesh_cache import MeshCache
from .config import (
    PipelineConfig,
    DEFAULT_RADIUS,
    DEFAULT_CACHE_DB,
    LARGE_CELL_SIDE_KM,
    VERY_LARGE_CELL_SIDE_KM,
)
from .io.allow_list import AllowListError, load_allow_list
from .io.obj_exporter import export_obj, validate_obj_file
from .io.region_loader import RegionLoadError, load_region
from .models.region import Style, TessellationMethod
from .pipeline import ConversionError, RegionPipeline


@dataclass
class PipelineStats:
    """Statistics from the pipeline run."""
    polygons: int = 0
    sub_polygons: int = 0
    artifacts: int = 0
    vertices: int = 0
    triangles: int = 0
    area_km2: float = 0.0
    tier: Optional[str] = None
    strategy: Optional[str] = None
    cache_tier: Optional[str] = None
    processing_time_ms: int = 0
    cache_stats: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class PipelineReport:
    """Report from pipeline run."""
    region_id: str
    style: str
    version: str
    success: bool
    stats: PipelineStats
    output_files: List[str]
    errors: List[str] = field(default_factory=list)
    config_used: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineResult:
    """
    Complete result of a CLI run.

    Attributes:
        success: Whether the run completed without errors
        report: Detailed statistics and metadata
        obj_path: Path to the OBJ file (None on failure)
    """
    success: bool
    report: PipelineReport
    obj_path: Optional[str] = None


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure logging to console and optionally to file.

    Args:
        verbose: If True, use DEBUG level; otherwise INFO
        log_file: Optional path to log file
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
        file_formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)


async def run_pipeline(
    config: PipelineConfig,
    region_code: str,
    style: Style = Style.FILLED,
    method: Optional[TessellationMethod] = None
) -> PipelineResult:
    """
    Load, convert and export one region.

    Args:
        config: Pipeline configuration
        region_code: Region to convert
        style: Rendering style
        method: Tessellation override (None = use the document's)

    Returns:
        PipelineResult with report and OBJ path
    """
    logger = logging.getLogger(__name__)
    start_time = time.time()

    stats = PipelineStats()
    errors: List[str] = []
    output_files: List[str] = []
    obj_path = None

    config_used = {
        'radius': config.radius,
        'large_cell_side_km': config.large_cell_side_km,
        'very_large_cell_side_km': config.very_large_cell_side_km,
        'cache_db': config.cache_db,
        'assets_base': config.assets_base,
    }

    def finish() -> PipelineResult:
        stats.processing_time_ms = int((time.time() - start_time) * 1000)
        report = PipelineReport(
            region_id=region_code,
            style=style.value,
            version=__version__,
            success=len(errors) == 0,
            stats=stats,
            output_files=output_files,
            errors=errors,
            config_used=config_used,
        )

        report_path = os.path.join(config.output_dir, f"{region_code.lower()}_{style.value}_report.json")
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(asdict(report), f, indent=2)
        output_files.append(report_path)
        logger.info(f"Report saved to {report_path}")
        logger.info(f"Pipeline completed in {stats.processing_time_ms}ms")

        return PipelineResult(success=report.success, report=report, obj_path=obj_path)

    # Step 1: Allow-list
    try:
        allow_list = load_allow_list(config.allow_list_path)
    except AllowListError as e:
        errors.append(str(e))
        return finish()

    # Step 2: Load region
    logger.info(f"Step 1: Loading region {region_code}")
    try:
        region = await load_region(region_code, config.regions_base, style, method)
    except RegionLoadError as e:
        errors.append(str(e))
        return finish()

    stats.polygons = len(region.ring_sets)
    stats.warnings.extend(region.diagnostics)

    # Step 3: Convert
    logger.info(f"Step 2: Converting {region_code} ({style.value})")
    cache = MeshCache.from_config(config, allow_list)
    pipeline = RegionPipeline(config, cache)

    try:
        conversion = await pipeline.convert(region)
    except ConversionError as e:
        errors.append(str(e))
        return finish()

    stats.artifacts = len(conversion.artifacts)
    stats.vertices = conversion.vertex_count
    stats.triangles = conversion.triangle_count
    stats.area_km2 = conversion.area_km2 or 0.0
    stats.tier = conversion.tier.value if conversion.tier else None
    stats.strategy = conversion.strategy.value if conversion.strategy else None
    stats.sub_polygons = conversion.sub_polygon_count or 0
    stats.cache_tier = conversion.cache_tier.value if conversion.cache_tier else None
    stats.cache_stats = cache.stats().to_dict()
    stats.warnings.extend(d for d in conversion.diagnostics if d not in stats.warnings)

    # Step 4: Export
    logger.info("Step 3: Exporting OBJ")
    obj_path = os.path.join(config.output_dir, f"{region_code.lower()}_{style.value}.obj")
    try:
        export_obj(
            conversion.artifacts,
            obj_path,
            comment=f"Region {region_code}, style {style.value}, radius {config.radius}",
        )
    except OSError as e:
        errors.append(f"Failed to export OBJ: {e}")
        obj_path = None
        return finish()

    validation_errors = validate_obj_file(obj_path)
    if validation_errors:
        for err in validation_errors[:5]:
            logger.warning(f"OBJ validation: {err}")
        stats.warnings.extend(validation_errors)

    output_files.append(obj_path)
    return finish()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Region Mesher - Convert region boundaries into globe geometry'
    )

    parser.add_argument(
        '--region',
        required=True,
        help='Region code (e.g., fr)'
    )

    parser.add_argument(
        '--regions-dir',
        required=True,
        help='Directory or http(s) base URL holding {code}.json region documents'
    )

    parser.add_argument(
        '--style',
        choices=[s.value for s in Style],
        default=Style.FILLED.value,
        help='Rendering style (default: filled)'
    )

    parser.add_argument(
        '--method',
        choices=[m.value for m in TessellationMethod],
        default=None,
        help='Tessellation override (default: from region document)'
    )

    parser.add_argument(
        '--radius',
        type=float,
        default=DEFAULT_RADIUS,
        help=f'Globe radius (default: {DEFAULT_RADIUS})'
    )

    parser.add_argument(
        '--large-cell-km',
        type=float,
        default=LARGE_CELL_SIDE_KM,
        help=f'Grid cell side for large regions, 20-30 km (default: {LARGE_CELL_SIDE_KM})'
    )

    parser.add_argument(
        '--very-large-cell-km',
        type=float,
        default=VERY_LARGE_CELL_SIDE_KM,
        help=f'Grid cell side for very large regions, 75-100 km (default: {VERY_LARGE_CELL_SIDE_KM})'
    )

    parser.add_argument(
        '--cache-db',
        default=DEFAULT_CACHE_DB,
        help=f'Persistent cache file (default: {DEFAULT_CACHE_DB})'
    )

    parser.add_argument(
        '--no-cache-db',
        action='store_true',
        help='Disable the persistent cache'
    )

    parser.add_argument(
        '--assets-dir',
        default=None,
        help='Directory or http(s) base URL holding precomputed {code}.glb assets'
    )

    parser.add_argument(
        '--allow-list',
        default=None,
        help='JSON array of region codes with precomputed assets (default: packaged list)'
    )

    parser.add_argument(
        '--output-dir',
        default='./output',
        help='Output directory for generated files (default: ./output)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable log file output (only console)'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    args = parser.parse_args()

    os.makedirs(args.output_dir, exist_ok=True)

    log_file = None
    if not args.no_log_file:
        log_file = os.path.join(args.output_dir, f"{args.region.lower()}.log")

    setup_logging(args.verbose, log_file)

    style = Style.parse(args.style)
    method = TessellationMethod(args.method) if args.method else None

    try:
        config = PipelineConfig(
            radius=args.radius,
            large_cell_side_km=args.large_cell_km,
            very_large_cell_side_km=args.very_large_cell_km,
            regions_base=args.regions_dir,
            assets_base=args.assets_dir,
            allow_list_path=args.allow_list,
            cache_db=None if args.no_cache_db else args.cache_db,
            output_dir=args.output_dir,
            verbose=args.verbose,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        return 1

    try:
        result = asyncio.run(run_pipeline(config, args.region, style, method))
        report = result.report

        if result.success:
            stats = report.stats
            print(f"\nSuccess! Converted {report.region_id} ({report.style})")
            print(f"Polygons: {stats.polygons}, sub-polygons: {stats.sub_polygons}")
            print(f"Area (first polygon): {stats.area_km2:,.0f} km² [{stats.tier}, {stats.strategy}]")
            print(f"Artifacts: {stats.artifacts}, {stats.vertices} vertices, {stats.triangles} triangles")
            print(f"Served from: {stats.cache_tier}")
            if stats.warnings:
                print(f"\nWarnings: {len(stats.warnings)}")
                for warning in stats.warnings[:10]:
                    print(f"  - {warning}")
            print(f"Output files: {', '.join(report.output_files)}")
            if log_file:
                print(f"Log file: {log_file}")
            return 0
        else:
            print(f"\nPipeline failed with errors:")
            for error in report.errors:
                print(f"  - {error}")
            if log_file:
                print(f"See log file for details: {log_file}")
            return 1

    except Exception as e:
        logging.exception(f"Pipeline failed: {e}")
        if log_file:
            print(f"See log file for details: {log_file}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
