# bake_mesh.py

"""
================================================================================
OFFLINE MESH BAKER SCRIPT
================================================================================
This script is a command-line tool for generating terrain meshes ahead of
time and saving them as mesh packages (NPZ buffers, OBJ, heightmap PNG and a
manifest) that a renderer can load without running the noise generator.

Usage:
    python bake_mesh.py --config path/to/your/config.json
    python bake_mesh.py --config cfg.json --seed 1 --seed 2 --workers 4
================================================================================
"""
import os
import sys
import json
import logging
import logging.config
import argparse
import time
import multiprocessing
from tqdm import tqdm

from heightfield import GridConfig, HeightfieldService, HeightfieldError, InvalidConfig
from heightfield import config as DEFAULTS
from heightfield.export import save_mesh_package

PARAMETERS_KEY = 'heightfield_parameters'
RUN_KEYS = ('seed', 'grid_width', 'grid_height')


def load_config(config_path: str) -> dict:
    """Loads the heightfield parameters from a JSON configuration file."""
    with open(config_path, 'r') as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise InvalidConfig(f"Config file must hold a JSON object, got {type(config).__name__}.")
    params = config.get(PARAMETERS_KEY, {})
    if not isinstance(params, dict):
        raise InvalidConfig(f"'{PARAMETERS_KEY}' must be a JSON object, got {type(params).__name__}.")
    return params


def split_parameters(params: dict):
    """Separates the per-run keys (seed, grid) from the service overrides."""
    service_config = {k: v for k, v in params.items() if k not in RUN_KEYS}
    grid_config = GridConfig(
        width=params.get('grid_width', DEFAULTS.DEFAULT_GRID_WIDTH),
        height=params.get('grid_height', DEFAULTS.DEFAULT_GRID_HEIGHT),
    )
    return service_config, grid_config


def setup_logging(log_config_path: str = None):
    """Configures logging from a dictConfig JSON file, or a plain stdout format."""
    if log_config_path:
        with open(log_config_path, 'rt') as f:
            log_config = json.load(f)
        logging.config.dictConfig(log_config)
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s',
            stream=sys.stdout
        )


def bake_mesh(service: HeightfieldService, grid_config: GridConfig, output_dir: str, logger: logging.Logger) -> dict:
    """
    Generates one mesh and writes it as a mesh package.
    """
    start_time = time.perf_counter()
    mesh = service.generate(grid_config)

    generation_settings = dict(service.settings)
    generation_settings['seed'] = service.seed
    generation_settings['grid_width'] = grid_config.width
    generation_settings['grid_height'] = grid_config.height

    manifest = save_mesh_package(mesh, output_dir, generation_settings, logger=logger)
    logger.info(f"Baked {grid_config.width}x{grid_config.height} mesh in {time.perf_counter() - start_time:.2f} seconds.")
    return manifest


# --- Global variables for worker processes ---
worker_service_config = None
worker_grid_config = None
worker_output_root = None


def init_worker(service_config, grid_config, output_root):
    """Initializes the global state for each worker process."""
    global worker_service_config, worker_grid_config, worker_output_root
    worker_service_config = service_config
    worker_grid_config = grid_config
    worker_output_root = output_root


def process_seed(seed):
    """Bakes the package for a single seed. Returns minimal metadata."""
    worker_logger = logging.getLogger(f"Worker-{os.getpid()}")
    service = HeightfieldService(seed, config=worker_service_config, logger=worker_logger)
    output_dir = os.path.join(worker_output_root, f"seed_{seed}")
    manifest = bake_mesh(service, worker_grid_config, output_dir, worker_logger)
    return seed, manifest['content_hash']


def bake_many(service_config: dict, grid_config: GridConfig, seeds, output_root: str,
              workers: int, logger: logging.Logger) -> dict:
    """
    Bakes one mesh package per seed, in parallel. Returns {seed: content_hash}.
    """
    # Repeated seeds would race on the same output directory.
    seeds = list(dict.fromkeys(seeds))
    logger.info(f"Starting bake of {len(seeds)} meshes using {workers} worker processes.")
    init_args = (service_config, grid_config, output_root)

    results = {}
    if workers <= 1:
        init_worker(*init_args)
        for seed in tqdm(seeds, desc="Baking Meshes"):
            seed, content_hash = process_seed(seed)
            results[seed] = content_hash
        return results

    # Forked children inherit numba's threading layer in an unusable state.
    context = multiprocessing.get_context("spawn")
    with context.Pool(processes=workers, initializer=init_worker, initargs=init_args) as pool:
        for seed, content_hash in tqdm(pool.imap_unordered(process_seed, seeds), total=len(seeds), desc="Baking Meshes"):
            results[seed] = content_hash
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Offline mesh baker for the heightfield terrain generator.")
    parser.add_argument("--config", type=str, required=True,
                        help="Path to the JSON configuration file.")
    parser.add_argument("--output", type=str, default="baked_meshes",
                        help="Root directory for the baked mesh packages.")
    parser.add_argument("--seed", type=int, action="append", dest="seeds",
                        help="Seed to bake. Repeat to bake several meshes. Overrides the config seed.")
    parser.add_argument("--workers", type=int, default=max(1, multiprocessing.cpu_count() - 1),
                        help="Worker processes used when baking several seeds.")
    parser.add_argument("--log-config", type=str, default=None,
                        help="Optional logging dictConfig JSON file.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # 1. --- Setup Logging ---
    try:
        setup_logging(args.log_config)
    except (OSError, ValueError) as e:
        print(f"Failed to configure logging: {e}", file=sys.stderr)
        return 1
    logger = logging.getLogger("MeshBaker")

    # 2. --- Load Configuration ---
    logger.info(f"Loading configuration from: {args.config}")
    try:
        params = load_config(args.config)
        service_config, grid_config = split_parameters(params)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.critical(f"Failed to load or parse config file: {e}")
        return 1
    except HeightfieldError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    # 3. --- Bake ---
    try:
        if args.seeds and len(args.seeds) > 1:
            results = bake_many(service_config, grid_config, args.seeds, args.output, args.workers, logger)
            for seed in args.seeds:
                logger.info(f"  - seed {seed}: {results[seed]}")
            return 0

        if args.seeds:
            service = HeightfieldService(args.seeds[0], config=service_config, logger=logger)
        elif 'seed' in params:
            service = HeightfieldService(params['seed'], config=service_config, logger=logger)
        else:
            logger.warning("No seed given; seeding from the clock. Record the logged seed to reproduce this mesh.")
            service = HeightfieldService.from_clock(config=service_config, logger=logger)

        bake_mesh(service, grid_config, os.path.join(args.output, f"seed_{service.seed}"), logger)
    except (HeightfieldError, TypeError, ValueError) as e:
        logger.critical(f"Bake failed: {e}")
        return 1
    return 0


# --- Command-Line Interface ---
if __name__ == "__main__":
    sys.exit(main())
