"""Command line entry point: ``razor-localizer localize|translate|restore``."""
import argparse
import asyncio
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

from razor_localizer.app_config import AppConfig, ConfigurationError, load_app_config, validate_app_config
from razor_localizer.backup_service import BackupService
from razor_localizer.localization_service import LocalizationService
from razor_localizer.translation_service import TranslationService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

VERBOSITY_LEVELS = ['debug', 'info', 'warning', 'error']


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('-i', '--include', nargs='+', action='extend', metavar='PATTERN',
                        help='Glob patterns of files to process.')
    parser.add_argument('-x', '--exclude', nargs='+', action='extend', metavar='PATTERN',
                        help='Glob patterns of files to leave alone.')
    parser.add_argument('-t', '--dry-run', action='store_true', default=None,
                        help='Run the whole pipeline and log the changes without writing anything.')
    parser.add_argument('-v', '--verbosity', choices=VERBOSITY_LEVELS, type=str.lower,
                        help='Log level for this run (overrides the settings file).')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='razor-localizer',
        description='Localize Blazor projects: move UI strings into a .resx catalog and translate it.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    localize = subparsers.add_parser('localize', help='Replace UI strings in .razor and .razor.cs files.')
    localize.add_argument('-p', '--project', help='The .csproj file or the folder containing it.')
    localize.add_argument('-r', '--resource', help='Base .resx file, relative to the project folder.')
    localize.add_argument('-b', '--backup', action=argparse.BooleanOptionalAction, default=None,
                          help='Archive every changed file before writing it (default: on).')
    _add_common_arguments(localize)

    translate = subparsers.add_parser('translate', help='Translate .resx files into the target languages.')
    translate.add_argument('-s', '--source', help='Folder searched for base .resx files.')
    translate.add_argument('-o', '--output', help='Folder for translated files (default: next to the source).')
    translate.add_argument('-l', '--target-languages', nargs='+', metavar='CODE',
                           help='Culture codes or language names, e.g. de fr pt-BR.')
    _add_common_arguments(translate)

    restore = subparsers.add_parser('restore', help='Restore files from the most recent backup.')
    restore.add_argument('-p', '--project', help='The .csproj file or the folder containing it.')
    restore.add_argument('-f', '--force', action='store_true', default=None,
                         help='Restore files even if they changed after the backup.')
    _add_common_arguments(restore)

    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed arguments to ``load_app_config`` override keys."""
    overrides: Dict[str, Any] = {
        'dry_run': args.dry_run,
        'log_level': args.verbosity,
    }
    if args.command == 'localize':
        overrides.update(project=args.project, resource=args.resource, backup=args.backup,
                         include=args.include, exclude=args.exclude)
    elif args.command == 'translate':
        overrides.update(source_folder=args.source, output_folder=args.output,
                         target_languages=args.target_languages,
                         resource_include=args.include, resource_exclude=args.exclude)
    elif args.command == 'restore':
        overrides.update(project=args.project, force=args.force)
    return overrides


def run_localize(config: AppConfig, args: argparse.Namespace) -> int:
    summary = LocalizationService(config).localize()
    if not summary.ok:
        for path, error in summary.failures.items():
            logger.error("Failed: %s (%s)", path, error)
        return EXIT_FAILURE
    return EXIT_OK


def run_translate(config: AppConfig, args: argparse.Namespace) -> int:
    completed = asyncio.run(TranslationService(config).translate_all())
    return EXIT_OK if completed else EXIT_FAILURE


def run_restore(config: AppConfig, args: argparse.Namespace) -> int:
    backup = BackupService(config.project_dir, enabled=False, dry_run=config.dry_run)
    restored = backup.restore(force=config.force, include=args.include, exclude=args.exclude)
    logger.info("Restored %d files", len(restored))
    return EXIT_OK if backup.latest_archive() is not None else EXIT_FAILURE


COMMAND_HANDLERS = {
    'localize': run_localize,
    'translate': run_translate,
    'restore': run_restore,
}


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse ``argv``, load and validate the configuration, then run the command.

    Returns:
        int: 0 on success, 1 on configuration errors or failed files, 130 when interrupted.
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_app_config(args.command, _overrides(args))
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    errors = validate_app_config(config, args.command)
    if errors:
        for error in errors:
            logger.error(error)
        return EXIT_FAILURE

    previous_handler = signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)
    try:
        return COMMAND_HANDLERS[args.command](config, args)
    except KeyboardInterrupt:
        logger.warning("Interrupted; the backup archive has been closed")
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGTERM, previous_handler)


if __name__ == '__main__':
    sys.exit(main())
