"""Application configuration for the localizer."""
import glob
import logging
import os
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
import yaml
from dotenv import load_dotenv
from openai import AsyncOpenAI

from razor_localizer.logging_config import setup_logger

CONFIG_FILE_ENV = 'RAZOR_LOCALIZER_CONFIG'
DEFAULT_CONFIG_FILE = 'razor_localizer.yaml'

COMMANDS = ('localize', 'translate', 'restore')

DEFAULT_RESOURCE_FILE = os.path.join('Resources', 'SharedResources.resx')
DEFAULT_INCLUDE_PATTERNS = ['*.razor']
DEFAULT_RESOURCE_PATTERNS = ['*.resx']
DEFAULT_EXCLUDE_PATTERNS = ['App.razor', '_Imports.razor', 'RedirectToLogin.razor', 'CulturePicker.razor']
DEFAULT_MODEL_NAME = 'gpt-4o-mini'
DEFAULT_REQUESTS_PER_MINUTE = 60

DEFAULT_SUPPORTED_LOCALES = [
    {'code': 'en', 'name': 'English'},
    {'code': 'cs', 'name': 'Czech'},
    {'code': 'de', 'name': 'German'},
    {'code': 'es', 'name': 'Spanish'},
    {'code': 'fr', 'name': 'French'},
    {'code': 'it', 'name': 'Italian'},
    {'code': 'ja', 'name': 'Japanese'},
    {'code': 'nl', 'name': 'Dutch'},
    {'code': 'pl', 'name': 'Polish'},
    {'code': 'pt-BR', 'name': 'Portuguese (Brazil)'},
    {'code': 'ru', 'name': 'Russian'},
    {'code': 'sk', 'name': 'Slovak'},
    {'code': 'uk', 'name': 'Ukrainian'},
    {'code': 'zh-Hans', 'name': 'Chinese (Simplified)'},
]

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "project": {"type": "string"},
        "resource": {"type": "string"},
        "include": _STRING_LIST,
        "exclude": _STRING_LIST,
        "backup": {"type": "boolean"},
        "dry_run": {"type": "boolean"},
        "translation": {
            "type": "object",
            "properties": {
                "source_folder": {"type": "string"},
                "output_folder": {"type": ["string", "null"]},
                "source_language": {"type": "string"},
                "target_languages": _STRING_LIST,
                "model_name": {"type": "string"},
                "requests_per_minute": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": False,
        },
        "supported_locales": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"code": {"type": "string"}, "name": {"type": "string"}},
                "required": ["code", "name"],
            },
        },
        "logging": {
            "type": "object",
            "properties": {
                "log_level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
                                                         "debug", "info", "warning", "error", "critical"]},
                "log_file_path": {"type": ["string", "null"]},
                "log_to_console": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


class ConfigurationError(Exception):
    """Raised when the settings file cannot be parsed or violates the schema."""


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Project
    project_file: Optional[str]
    project_dir: str
    resource_file: str
    include_patterns: List[str]
    exclude_patterns: List[str]

    # Run mode
    backup: bool
    dry_run: bool
    force: bool

    # Translation
    source_folder: str
    output_folder: Optional[str]
    source_language: str
    target_languages: List[str]
    model_name: str
    requests_per_minute: int
    resource_include_patterns: List[str]
    resource_exclude_patterns: List[str]

    # Language configuration
    language_codes: Dict[str, str]
    name_to_code: Dict[str, str]

    # Logging
    log_level: str = 'INFO'
    log_file_path: Optional[str] = None
    log_to_console: bool = True

    # OpenAI client
    openai_client: Optional[AsyncOpenAI] = field(default=None, repr=False)

    @property
    def resource_class_name(self) -> str:
        return os.path.splitext(os.path.basename(self.resource_file))[0]


def _load_dotenv_files(working_dir: str) -> Optional[str]:
    """Load a .env file from the working directory; returns its path when found."""
    dotenv_path = os.path.join(working_dir, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)
        return dotenv_path
    return None


def _load_yaml_config(working_dir: str) -> Dict[str, Any]:
    """
    Load and validate the YAML settings file.

    A missing or empty file means defaults. Invalid YAML or a document that
    does not match ``CONFIG_SCHEMA`` raises ``ConfigurationError``.
    """
    config_file = os.environ.get(CONFIG_FILE_ENV, os.path.join(working_dir, DEFAULT_CONFIG_FILE))
    if not os.path.isabs(config_file):
        config_file = os.path.abspath(os.path.join(working_dir, config_file))

    if not os.path.exists(config_file):
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file '{config_file}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read configuration file '{config_file}': {e}") from e

    if loaded_config is None:
        print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
              file=sys.stderr)
        return {}

    try:
        jsonschema.validate(instance=loaded_config, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '.'.join(str(part) for part in e.absolute_path) or '<root>'
        raise ConfigurationError(f"Invalid configuration file '{config_file}' at {location}: {e.message}") from e

    print(f"Loaded configuration from: {config_file}", file=sys.stderr)
    return loaded_config


def _setup_logger_from_config(config: Dict[str, Any], log_level_override: Optional[str]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging', {})
    log_level_str = (log_level_override or log_config.get('log_level', 'INFO')).upper()
    return setup_logger(log_level_str, log_config.get('log_file_path'), log_config.get('log_to_console', True))


def _build_language_mappings(locales_list: List[Dict[str, str]]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Build language code mappings from supported locales."""
    language_codes: Dict[str, str] = {}
    name_to_code: Dict[str, str] = {}

    for locale in locales_list:
        code = locale.get('code')
        name = locale.get('name')
        if code and name:
            language_codes[code] = name
            name_to_code[name.lower()] = code

    return language_codes, name_to_code


def _normalize_language(value: str, language_codes: Dict[str, str], name_to_code: Dict[str, str]) -> str:
    """Accept a culture code in any casing or a language name; unknown values pass through for validation."""
    for code in language_codes:
        if code.lower() == value.lower():
            return code
    return name_to_code.get(value.lower(), value)


def resolve_project_file(project: Optional[str], working_dir: str) -> Optional[str]:
    """
    Resolve ``--project`` to a .csproj path.

    A directory resolves to the single .csproj it contains. A missing value
    means the working directory. Returns None when nothing unambiguous is found.
    """
    candidate = os.path.abspath(os.path.join(working_dir, project)) if project else os.path.abspath(working_dir)
    if os.path.isdir(candidate):
        project_files = sorted(glob.glob(os.path.join(candidate, '*.csproj')))
        return project_files[0] if len(project_files) == 1 else None
    return candidate


def _create_openai_client(command: str, dry_run: bool, logger: logging.Logger) -> Optional[AsyncOpenAI]:
    """Create the OpenAI client only for a real translation run."""
    if command != 'translate':
        return None
    if dry_run:
        logger.info("Running in dry-run mode, OpenAI client will not be initialized")
        return None

    api_key_from_env = os.environ.get('OPENAI_API_KEY')
    if not api_key_from_env:
        # Reported by validate_app_config
        return None
    if not api_key_from_env.startswith('sk-'):
        logger.warning("Warning: OPENAI_API_KEY does not start with 'sk-'. This may be invalid.")

    client = AsyncOpenAI(api_key=api_key_from_env)
    logger.info("OpenAI client initialized successfully")
    return client


def load_app_config(command: str = 'localize', overrides: Optional[Dict[str, Any]] = None,
                    working_dir: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from the YAML file, the environment and CLI overrides.

    Args:
        command (str): One of ``COMMANDS``.
        overrides (Optional[Dict[str, Any]]): CLI values; None values are ignored.
        working_dir (Optional[str]): Base folder for relative paths; defaults to the current directory.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ConfigurationError: If the settings file is malformed.
    """
    working_dir = os.path.abspath(working_dir or os.getcwd())
    overrides = {key: value for key, value in (overrides or {}).items() if value is not None}

    dotenv_path = _load_dotenv_files(working_dir)
    config = _load_yaml_config(working_dir)
    logger = _setup_logger_from_config(config, overrides.get('log_level'))
    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)

    language_codes, name_to_code = _build_language_mappings(
        config.get('supported_locales') or DEFAULT_SUPPORTED_LOCALES)

    translation = config.get('translation', {})

    project_file = resolve_project_file(overrides.get('project', config.get('project')), working_dir)
    project_dir = os.path.dirname(project_file) if project_file else working_dir

    resource_file = overrides.get('resource', config.get('resource', DEFAULT_RESOURCE_FILE))
    if not os.path.isabs(resource_file):
        resource_file = os.path.join(project_dir, resource_file)

    source_folder = overrides.get('source_folder', translation.get('source_folder', working_dir))
    output_folder = overrides.get('output_folder', translation.get('output_folder'))

    target_languages = [
        _normalize_language(language, language_codes, name_to_code)
        for language in overrides.get('target_languages', translation.get('target_languages', []))
    ]

    dry_run = bool(overrides.get('dry_run', config.get('dry_run', False)))
    log_config = config.get('logging', {})

    return AppConfig(
        project_file=project_file,
        project_dir=project_dir,
        resource_file=os.path.normpath(resource_file),
        include_patterns=list(overrides.get('include', config.get('include', DEFAULT_INCLUDE_PATTERNS))),
        exclude_patterns=list(overrides.get('exclude', config.get('exclude', DEFAULT_EXCLUDE_PATTERNS))),
        backup=bool(overrides.get('backup', config.get('backup', True))),
        dry_run=dry_run,
        force=bool(overrides.get('force', False)),
        source_folder=os.path.abspath(os.path.join(working_dir, source_folder)),
        output_folder=os.path.abspath(os.path.join(working_dir, output_folder)) if output_folder else None,
        source_language=translation.get('source_language', 'en'),
        target_languages=target_languages,
        model_name=translation.get('model_name', DEFAULT_MODEL_NAME),
        requests_per_minute=translation.get('requests_per_minute', DEFAULT_REQUESTS_PER_MINUTE),
        resource_include_patterns=list(overrides.get('resource_include', DEFAULT_RESOURCE_PATTERNS)),
        resource_exclude_patterns=list(overrides.get('resource_exclude', [])),
        language_codes=language_codes,
        name_to_code=name_to_code,
        log_level=logging.getLevelName(logger.getEffectiveLevel()),
        log_file_path=log_config.get('log_file_path'),
        log_to_console=log_config.get('log_to_console', True),
        openai_client=_create_openai_client(command, dry_run, logger),
    )


def _project_file_errors(project_file: Optional[str], project_dir: str) -> List[str]:
    if project_file is None:
        return [f"No unique .csproj project file found in '{project_dir}'. Use --project to select one."]
    if not os.path.isfile(project_file):
        return [f"Project file '{project_file}' does not exist."]
    if not project_file.endswith('.csproj'):
        return [f"Project file '{project_file}' is not a .csproj file."]
    try:
        root = ET.parse(project_file).getroot()
    except (ET.ParseError, OSError) as e:
        return [f"Project file '{project_file}' is not valid XML: {e}"]
    if root.tag.rsplit('}', 1)[-1] != 'Project':
        return [f"Project file '{project_file}' has no <Project> root element."]
    return []


def validate_app_config(config: AppConfig, command: str) -> List[str]:
    """
    Check the configuration for ``command`` before anything is touched.

    Returns:
        List[str]: Error messages. An empty list means the run may proceed.
    """
    errors: List[str] = []
    if command not in COMMANDS:
        return [f"Unknown command '{command}'. Expected one of: {', '.join(COMMANDS)}."]

    if command in ('localize', 'restore'):
        errors.extend(_project_file_errors(config.project_file, config.project_dir))

    if command == 'localize' and not config.include_patterns:
        errors.append("At least one include pattern is required.")

    if command == 'translate':
        if not os.path.isdir(config.source_folder):
            errors.append(f"Source folder '{config.source_folder}' does not exist.")
        if not config.target_languages:
            errors.append("No target languages configured. Use --target-languages or translation.target_languages.")
        for language in config.target_languages:
            if language not in config.language_codes:
                errors.append(f"Unsupported target language code '{language}'. "
                              f"Supported codes: {', '.join(sorted(config.language_codes))}.")
        if not config.dry_run and config.openai_client is None:
            errors.append("OPENAI_API_KEY environment variable not found. Set it or use --dry-run.")

    return errors
