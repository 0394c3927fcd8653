# main.py
"""
Command-line pipeline for converting physical keyboard layouts into logical
row/column grids.

The input is a physical layout (keys with position, size and rotation),
and the output is the same layout with each key's logical row and column,
ordered row by row.

Modes:
- convert: derive the logical layout and write it (info.json or CSV)
- check: report whether the stored row/col assignment is usable
  (info.json and CSV only; devicetree layouts carry no assignment)
- plot: render the layout with its row/col labels to an image

Supported inputs: QMK-style info.json, ZMK devicetree physical layouts
(.dtsi/.dts/.overlay/.keymap) and CSV.

Usage: python main.py --config config.yaml --mode MODE --input FILE [--output FILE]
"""
import argparse
import sys
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from keygrid.utils.config import Config, LayoutError
from keygrid.data import DTS_SUFFIXES, KeyboardLayout
from keygrid.grid import is_logically_ordered
from keygrid.utils.logging import LoggingManager
logger = LoggingManager.getLogger(__name__)


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file; a missing file means defaults."""
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, 'r') as f:
        config = yaml.safe_load(f)
    return config or {}

def default_output(config: Config, input_path: Path, suffix: str) -> Path:
    return Path(config.paths.output_dir) / f"{input_path.stem}_logical{suffix}"

def run(args: argparse.Namespace, config: Config) -> int:
    input_path = Path(args.input)
    thresholds = config.thresholds

    #---------------------------------
    # Check stored assignment
    #---------------------------------
    if args.mode == 'check':
        if input_path.suffix.lower() in DTS_SUFFIXES:
            raise LayoutError(f"{input_path.name}: devicetree layouts have no stored row/col to check")
        layout = KeyboardLayout.from_file(input_path, thresholds, repair=False)
        ordered = is_logically_ordered(layout.keys)
        logger.info(f"{layout!r}")
        if ordered:
            logger.info("Logical layout is valid")
            return 0
        logger.warning("Logical layout is not valid")
        return 2

    if args.keep_order:
        layout = KeyboardLayout.from_file(input_path, thresholds)
    else:
        layout = KeyboardLayout.from_file(input_path, thresholds, repair=False).physical_to_logical(thresholds)
    logger.info(f"{layout!r}")

    #---------------------------------
    # Convert
    #---------------------------------
    if args.mode == 'convert':
        output = Path(args.output) if args.output else default_output(config, input_path, '.json')
        layout.save(output)

    #---------------------------------
    # Plot
    #---------------------------------
    elif args.mode == 'plot':
        from keygrid.visualization import LayoutVisualizer
        output = Path(args.output) if args.output else default_output(config, input_path, '.png')
        visualizer = LayoutVisualizer(config.visualization)
        visualizer.save(visualizer.plot_layout(layout), output)

    return 0

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Physical to logical keyboard layout conversion')
    parser.add_argument('--config', default='config.yaml', help='Path to configuration file')
    parser.add_argument('--mode', choices=['convert', 'check', 'plot'], required=True,
                        help='convert: write logical layout, '
                             'check: validate stored row/col (info.json and CSV only), '
                             'plot: render layout')
    parser.add_argument('--input', required=True, help='Layout file (.json, .dtsi, .csv, ...)')
    parser.add_argument('--output', help='Output file (.json or .csv for convert, image for plot)')
    parser.add_argument('--keep-order', action='store_true',
                        help='Keep a valid stored row/col assignment instead of re-deriving it')
    args = parser.parse_args(argv)

    try:
        config = Config(**load_config(args.config))
    except (ValidationError, yaml.YAMLError) as e:
        LoggingManager.handle_error(e, f"Invalid configuration {args.config}", logger)
        return 1

    LoggingManager(config).setup_logging(run_name=args.mode)

    try:
        return run(args, config)
    except LayoutError as e:
        LoggingManager.handle_error(e, f"Cannot process {args.input}", logger)
        return 1

if __name__ == "__main__":
    sys.exit(main())
