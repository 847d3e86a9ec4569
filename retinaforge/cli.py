"""Command-line interface for RetinaForge.

This module provides CLI commands for generating moving-bar stimuli,
running the stimulus/response experiment, building inner-retina models,
validating configurations and listing available components.

Example:
    $ retinaforge bar --set bar_width=10 --set os=biophys --output bar.pt
    $ retinaforge bar config.yml --progress
    $ retinaforge create-inner-retina config.yml --output inner_retina.pt
    $ retinaforge experiment config.yml
    $ retinaforge validate config.yml
    $ retinaforge list-components
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from retinaforge.config.schema import BarStimulusParams, RetinaForgeConfig
from retinaforge.display.display import list_displays
from retinaforge.exceptions import ConfigurationError
from retinaforge.experiments.bar_response import BarResponseExperiment, create_inner_retina
from retinaforge.registry import MOSAIC_REGISTRY, OUTER_SEGMENT_REGISTRY, RGC_MODEL_REGISTRY
from retinaforge.stimuli.bar import moving_bar_stimulus


def load_config_file(config_path: str) -> RetinaForgeConfig:
    """Load and parse a YAML configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If the file is empty, not a mapping or has duplicate keys.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return RetinaForgeConfig.from_file(path)


def parse_overrides(pairs: Optional[Sequence[str]]) -> Dict[str, Any]:
    """Parse ``key=value`` pairs; values are read as YAML scalars.

    Raises:
        ConfigurationError: For a malformed pair.
    """
    overrides: Dict[str, Any] = {}
    for pair in pairs or []:
        if '=' not in pair:
            raise ConfigurationError(f"Override must look like key=value, got '{pair}'")
        key, raw = pair.split('=', 1)
        key = key.strip()
        if not key:
            raise ConfigurationError(f"Override has an empty key: '{pair}'")
        overrides[key] = yaml.safe_load(raw) if raw.strip() else None
    return overrides


def cmd_bar(args: argparse.Namespace) -> int:
    """Generate a moving-bar stimulus and its cone-mosaic response.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    try:
        params = BarStimulusParams()
        if args.config:
            print(f"Loading stimulus parameters from {args.config}...")
            params = load_config_file(args.config).stimulus
        overrides = parse_overrides(args.set)
        unknown = sorted(set(overrides) - set(params.to_dict()))
        if unknown:
            raise ConfigurationError(f"Unknown stimulus parameter(s): {', '.join(unknown)}")
        if overrides:
            params = BarStimulusParams.from_dict({**params.to_dict(), **overrides})

        print(f"Generating moving bar (os={params.os}, bar_width={params.bar_width})...")
        result = moving_bar_stimulus(params, show_progress=args.progress)

        summary = result.to_dict()
        print("\nStimulus generated successfully!")
        print(f"Frames: {summary['n_frames']}")
        print(f"Sweep frames: {summary['sweep_frames'][0]}-{summary['sweep_frames'][1]}")
        print(f"Cone mosaic: {summary['cone_mosaic']['rows']}x{summary['cone_mosaic']['cols']}")
        print(f"Mean photocurrent: {summary['mean_current']:.3f} pA")

        if args.output:
            output_path = result.save(args.output, save_format=args.format)
            print(f"Results saved to {output_path}")
        return 0

    except Exception as e:
        print(f"Error generating stimulus: {e}", file=sys.stderr)
        return 1


def cmd_experiment(args: argparse.Namespace) -> int:
    """Run the bar stimulus/response experiment from a YAML config."""
    try:
        config = load_config_file(args.config)
        experiment = BarResponseExperiment(config)
        experiment.run(show_progress=args.progress)
        return 0
    except Exception as e:
        print(f"Error running experiment: {e}", file=sys.stderr)
        return 1


def cmd_create_inner_retina(args: argparse.Namespace) -> int:
    """Build the configured inner retina and save it."""
    try:
        config = load_config_file(args.config)
        path = create_inner_retina(config, args.output)
        types = ', '.join(spec.cell_type for spec in config.inner_retina.mosaics)
        print(f"Inner retina '{config.inner_retina.name}' ({types}) saved to {path}")
        return 0
    except Exception as e:
        print(f"Error creating inner retina: {e}", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a YAML configuration without running.

    Returns:
        Exit code (0 for valid, 1 for invalid).
    """
    try:
        config = load_config_file(args.config)
    except FileNotFoundError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ Error loading config: {e}", file=sys.stderr)
        return 1

    print(f"Validating {args.config}...")
    errors: List[str] = []
    try:
        config.stimulus.validate()
    except ConfigurationError as e:
        errors.append(f"stimulus: {e}")
    if config.stimulus.display not in list_displays():
        errors.append(
            f"stimulus: unknown display '{config.stimulus.display}'. "
            f"Available: {', '.join(list_displays())}"
        )
    try:
        config.inner_retina.validate()
    except ConfigurationError as e:
        errors.append(f"inner_retina: {e}")
    for spec in config.inner_retina.mosaics:
        if not RGC_MODEL_REGISTRY.is_registered(spec.model):
            errors.append(f"inner_retina: unknown RGC model '{spec.model}'")
    if config.experiment.inner_retina_path or config.experiment.output_path:
        try:
            config.experiment.validate()
        except ConfigurationError as e:
            errors.append(f"experiment: {e}")

    if errors:
        for error in errors:
            print(f"Validation error: {error}", file=sys.stderr)
        print(f"❌ Configuration validation failed: {args.config}", file=sys.stderr)
        return 1

    stim = config.stimulus
    print("✓ Configuration is valid!")
    print(f"\nStimulus:")
    print(f"  Display: {stim.display}")
    print(f"  Image: {stim.row}x{stim.col}, fov {stim.fov} deg")
    print(f"  Frames: {stim.total_frames()} ({stim.start_frames} + {stim.resolved_stim_frames()} + {stim.end_frames})")
    print(f"  Mosaic: {stim.os}")
    print(f"Inner retina: {len(config.inner_retina.mosaics)} mosaic(s)")
    return 0


def cmd_list_components(args: argparse.Namespace) -> int:
    """List available displays, mosaics, outer segments and RGC models."""
    print("Available RetinaForge Components:")
    print("=" * 50)

    print("\nDisplays:")
    for name in list_displays():
        print(f"  - {name}")

    print("\nCone mosaic variants (stimulus 'os'):")
    for name in MOSAIC_REGISTRY.list_registered():
        print(f"  - {name}")

    print("\nOuter segments:")
    for name in OUTER_SEGMENT_REGISTRY.list_registered():
        print(f"  - {name}")

    print("\nRGC models:")
    for name in RGC_MODEL_REGISTRY.list_registered():
        print(f"  - {name}")

    print("\nUse 'retinaforge bar --help' for usage examples")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog='retinaforge',
        description='RetinaForge: moving-bar stimuli through a simulated retina'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Bar command
    bar_parser = subparsers.add_parser(
        'bar',
        help='Generate a moving-bar stimulus and cone response'
    )
    bar_parser.add_argument(
        'config',
        nargs='?',
        help='Optional YAML configuration file (stimulus section is used)'
    )
    bar_parser.add_argument(
        '--output',
        help='Output file path'
    )
    bar_parser.add_argument(
        '--format',
        choices=['pytorch', 'hdf5'],
        default='pytorch',
        help='Output format (default: pytorch)'
    )
    bar_parser.add_argument(
        '--progress',
        action='store_true',
        help='Show a per-frame progress bar'
    )
    bar_parser.add_argument(
        '--set',
        action='append',
        metavar='KEY=VALUE',
        help='Override a stimulus parameter (repeatable)'
    )

    # Experiment command
    exp_parser = subparsers.add_parser(
        'experiment',
        help='Run the bar stimulus/response experiment'
    )
    exp_parser.add_argument(
        'config',
        help='Path to YAML configuration file'
    )
    exp_parser.add_argument(
        '--progress',
        action='store_true',
        help='Show a per-frame progress bar'
    )

    # Inner retina command
    ir_parser = subparsers.add_parser(
        'create-inner-retina',
        help='Build and save an inner-retina model'
    )
    ir_parser.add_argument(
        'config',
        help='Path to YAML configuration file'
    )
    ir_parser.add_argument(
        '--output',
        required=True,
        help='Checkpoint path for the inner retina'
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        'validate',
        help='Validate YAML config without running'
    )
    validate_parser.add_argument(
        'config',
        help='Path to YAML configuration file'
    )

    # List components command
    subparsers.add_parser(
        'list-components',
        help='List displays, mosaic variants, outer segments and RGC models'
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        'bar': cmd_bar,
        'experiment': cmd_experiment,
        'create-inner-retina': cmd_create_inner_retina,
        'validate': cmd_validate,
        'list-components': cmd_list_components,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
