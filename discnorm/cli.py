"""Command-line interface for discnorm."""

import sys
import signal
import logging
import argparse
import asyncio
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

from discnorm import __version__
from discnorm.catalog.dat import load_dat_from_path
from discnorm.config.loader import load_config, get_config_value, ConfigError
from discnorm.config.validator import validate_config, ValidationError
from discnorm.errors import DiscnormError
from discnorm.external.toolchain import Toolchain
from discnorm.pipeline.runner import DirectoryRunner, DiscRunner, PipelineSettings
from discnorm.workflow.progress import ProgressTracker, ErrorLogger
from discnorm.workflow.rename_runner import RenameRunner
from discnorm.workflow.verify_runner import VerificationRunner, VerifySettings

COMPRESS_ERROR_LOG = 'compress_errors.log'


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog='discnorm',
        description='Normalize optical disc dumps to CHD and verify them against DAT catalogs',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert every disc in a directory to CHD
  discnorm compress -s ./dumps -o ./chd

  # Verify CHDs against a Redump DAT and write metadata sidecars
  discnorm verify -s ./chd -d "Sony - PlayStation.zip"

  # Rename verified CHDs to their catalog names
  discnorm rename -s ./chd
        """
    )

    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument(
        '--config',
        type=Path,
        metavar='PATH',
        help='Path to YAML config (default: ./discnorm.yaml if present)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Log level. Overrides config.'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')

    compress = subparsers.add_parser('compress', help='Unwrap source dumps and compress them to CHD')
    compress.add_argument('-s', '--source-dir', type=Path, required=True,
                          help='Source directory (or a single source file)')
    compress.add_argument('-o', '--output-dir', type=Path, required=True, help='Directory for CHD output')
    compress.add_argument('-t', '--temp-dir', type=Path, help='Root for scratch directories. Overrides config.')
    compress.add_argument('-w', '--overwrite', action='store_true', help='Replace existing CHD files')
    compress.add_argument('-r', '--remove-source', action='store_true',
                          help='Delete source files after a successful conversion')

    verify = subparsers.add_parser('verify', help='Verify CHD files against a DAT catalog')
    verify.add_argument('-s', '--source-dir', type=Path, required=True, help='Directory holding CHD files')
    verify.add_argument('-d', '--dat', type=Path, required=True, help='DAT file (.dat, .xml or .zip)')
    verify.add_argument('-t', '--temp-dir', type=Path, help='Root for scratch directories. Overrides config.')
    verify.add_argument('--strict-cue', action='store_true',
                        help='Fail verification when the cue sheet does not match the DAT')
    verify.add_argument('--accept-closest', action='store_true',
                        help='Count size-based (partial) matches as success')

    rename = subparsers.add_parser('rename', help='Rename verified CHD files to their game names')
    rename.add_argument('-s', '--source-dir', type=Path, required=True, help='Directory holding CHD files')
    rename.add_argument('-f', '--force', action='store_true', help='Overwrite existing targets')
    rename.add_argument('--accept-closest', action='store_true',
                        help='Also rename CHDs with partial (size-based) matches')

    help_parser = subparsers.add_parser('help', help='Show help for a command')
    help_parser.add_argument('topic', nargs='?', choices=['compress', 'verify', 'rename'],
                             help='Command to describe')

    return parser


def _print_help(parser: argparse.ArgumentParser, topic: Optional[str]) -> None:
    """Print top-level help, or a subcommand's help when topic is given."""
    if topic:
        for action in parser._actions:
            if isinstance(action, argparse._SubParsersAction):
                action.choices[topic].print_help()
                return
    parser.print_help()


def _setup_logging(config: dict) -> None:
    """
    Setup logging configuration from config.

    Args:
        config: Configuration dictionary
    """
    logging_config = config.get('logging', {})

    level_str = (logging_config.get('level') or 'INFO').upper()
    level = getattr(logging, level_str, logging.INFO)

    handlers = []

    if logging_config.get('console', True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        handlers.append(console_handler)

    log_file = logging_config.get('file')
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
            handlers.append(file_handler)
        except OSError as e:
            print(f"Error: Could not create log file '{log_file}': {e}", file=sys.stderr)
            sys.exit(1)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )


def _raise_system_exit(signum, frame) -> None:
    """Turn SIGTERM into SystemExit so scratch directories are cleaned up."""
    raise SystemExit(128 + signum)


def _temp_dir(args: argparse.Namespace, config: dict) -> Optional[Path]:
    if getattr(args, 'temp_dir', None):
        return args.temp_dir
    configured = get_config_value(config, 'paths.temp_dir')
    return Path(configured).expanduser() if configured else None


def _finish_compress(error_logger: ErrorLogger, output_dir: Path) -> int:
    """Write the error log beside the outputs when anything failed."""
    if not error_logger.has_errors():
        return 0

    output_dir.mkdir(parents=True, exist_ok=True)
    error_logger.write_summary(str(output_dir / COMPRESS_ERROR_LOG))
    return 1


async def run_compress(config: dict, args: argparse.Namespace) -> int:
    """Run the compress command; 1 when any disc failed."""
    settings = PipelineSettings(
        temp_dir=_temp_dir(args, config),
        overwrite=args.overwrite or get_config_value(config, 'compress.overwrite', False),
        remove_source=args.remove_source or get_config_value(config, 'compress.remove_source', False),
    )
    toolchain = Toolchain.from_config(config)
    progress = ProgressTracker()
    error_logger = ErrorLogger()

    source: Path = args.source_dir
    if source.is_file():
        progress.start_run('compress', 1)
        runner = DiscRunner(source.stem, [source], args.output_dir, toolchain, settings)
        try:
            result = await runner.start()
        except DiscnormError as e:
            progress.log_item(source.name, 'failed', str(e))
            error_logger.log_error(source.name, str(e))
        else:
            if result.status and settings.remove_source:
                source.unlink()
            progress.log_item(source.name, 'success' if result.status else 'failed',
                              ', '.join(p.name for p in result.files))
        progress.finish_run()
        return _finish_compress(error_logger, args.output_dir)

    if not source.is_dir():
        print(f"Error: Source does not exist: {source}", file=sys.stderr)
        return 1

    results = await DirectoryRunner(source, args.output_dir, toolchain, settings).start()

    progress.start_run('compress', len(results))
    for result in results:
        if result.skipped:
            progress.log_item(result.name, 'skipped', result.error or '')
        elif result.status:
            progress.log_item(result.name, 'success', ', '.join(p.name for p in result.outputs))
        else:
            progress.log_item(result.name, 'failed', result.error or '')
            error_logger.log_error(result.name, result.error or 'failed')
    progress.finish_run()

    return _finish_compress(error_logger, args.output_dir)


async def run_verify(config: dict, args: argparse.Namespace) -> int:
    """Run the verify command; 1 when any CHD is unidentified."""
    dat = load_dat_from_path(args.dat)
    allow_cue_mismatches = (
        not args.strict_cue and get_config_value(config, 'verify.allow_cue_mismatches', True)
    )
    accept_closest = args.accept_closest or get_config_value(config, 'verify.accept_closest_matches', False)

    runner = VerificationRunner(
        args.source_dir,
        dat,
        Toolchain.from_config(config),
        VerifySettings(temp_dir=_temp_dir(args, config), allow_cue_mismatches=allow_cue_mismatches)
    )
    results = await runner.start()

    progress = ProgressTracker()
    failed = 0
    progress.start_run('verify', len(results))
    for result in results:
        game_name = result.metadata.game.name if result.metadata.game else ''
        if result.status == 'match' or (result.status == 'partial' and accept_closest):
            progress.log_item(result.chd_path.name, 'success', f"{result.status}: {game_name}")
        else:
            failed += 1
            progress.log_item(result.chd_path.name, 'failed', result.metadata.message)
    progress.finish_run()

    return 1 if failed else 0


def run_rename(config: dict, args: argparse.Namespace) -> int:
    accept_closest = args.accept_closest or get_config_value(config, 'verify.accept_closest_matches', False)
    results = RenameRunner(args.source_dir, force=args.force, accept_closest_matches=accept_closest).start()

    progress = ProgressTracker()
    progress.start_run('rename', len(results))
    for result in results:
        if result.failed:
            progress.log_item(result.source.name, 'failed', result.reason)
        elif result.renamed:
            progress.log_item(result.source.name, 'success', result.target.name)
        else:
            progress.log_item(result.source.name, 'skipped', result.reason)
    progress.finish_run()

    return 1 if any(result.failed for result in results) else 0


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for discnorm CLI.

    Args:
        argv: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, 1 for failure, 130 when interrupted)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == 'help':
        _print_help(parser, args.topic)
        return 0

    try:
        config = load_config(args.config)
        if args.log_level:
            config['logging']['level'] = args.log_level
        validate_config(config)
    except (ConfigError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    _setup_logging(config)
    signal.signal(signal.SIGTERM, _raise_system_exit)

    try:
        if args.command == 'compress':
            return asyncio.run(run_compress(config, args))
        if args.command == 'verify':
            return asyncio.run(run_verify(config, args))
        return run_rename(config, args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        logger.debug("Fatal error", exc_info=True)
        print(f"\nFatal error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
