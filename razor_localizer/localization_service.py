"""
The ``localize`` command: rewrite Razor markup and code-behind files, then
persist the resource catalog.
"""
import codecs
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from razor_localizer.app_config import AppConfig
from razor_localizer.backup_service import BackupService
from razor_localizer.catalog import ResourceCatalog
from razor_localizer.code_rewriter import CodeLiteralRewriter
from razor_localizer.file_processor import find_files, matches_pattern
from razor_localizer.literal_filters import LiteralFilters
from razor_localizer.markup_rules import MARKUP_FILE_TYPE, MarkupRuleEngine
from razor_localizer.resx_store import load_resources, render_resources
from razor_localizer.scaffold import generate_resource_stub

logger = logging.getLogger(__name__)

CODE_BEHIND_SUFFIX = '.cs'


@dataclass
class LocalizationSummary:
    processed: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    catalog_size: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures


def read_source(path: str) -> Tuple[str, str]:
    """
    Read a source file keeping its line endings.

    Returns:
        Tuple[str, str]: The text without any UTF-8 BOM, and the encoding
        (``utf-8-sig`` when the file starts with a BOM) to write it back with.
    """
    with open(path, 'rb') as f:
        data = f.read()
    encoding = 'utf-8-sig' if data.startswith(codecs.BOM_UTF8) else 'utf-8'
    return data.decode(encoding), encoding


def class_name_for(markup_path: str) -> str:
    """``Pages/Login.razor`` -> ``Login``."""
    return os.path.basename(markup_path).split('.', 1)[0]


class LocalizationService:
    """
    Drives one localization run over a project.

    Files are processed one at a time. A file that cannot be read or written
    is logged, recorded in the summary and skipped; the run continues.
    """

    def __init__(self, config: AppConfig, catalog: Optional[ResourceCatalog] = None,
                 backup: Optional[BackupService] = None, filters: Optional[LiteralFilters] = None):
        self.config = config
        self.catalog = catalog if catalog is not None else ResourceCatalog()
        self.backup = backup if backup is not None else BackupService(
            config.project_dir, enabled=config.backup, dry_run=config.dry_run)
        self.markup_engine = MarkupRuleEngine(self.catalog, resource_class=config.resource_class_name)
        self.code_rewriter = CodeLiteralRewriter(self.catalog, filters)

    def load_catalog(self) -> int:
        """Merge the persisted base catalog into memory; returns the number of keys loaded."""
        existing = load_resources(self.config.resource_file)
        added = self.catalog.merge(existing)
        if existing:
            logger.info("Loaded %d existing keys from %s", added, self.config.resource_file)
        return added

    def process_code_file(self, path: str, class_name: str) -> bool:
        """Rewrite literals in a code-behind file. Returns True if its content changed."""
        logger.debug("Processing file: %s", path)
        source, encoding = read_source(path)
        new_source, changed = self.code_rewriter.rewrite(source, default_scope=class_name)
        if not changed:
            logger.debug("No changes to %s", path)
            return False
        self.backup.write_with_backup(path, new_source, encoding)
        return True

    def process_markup_file(self, path: str) -> bool:
        """Apply the markup rules to a .razor file. Returns True if its content changed."""
        logger.debug("Processing file: %s", path)
        content, encoding = read_source(path)
        new_content = self.markup_engine.process(content, class_name_for(path), MARKUP_FILE_TYPE)
        if new_content == content:
            logger.debug("No changes to %s", path)
            return False
        self.backup.write_with_backup(path, new_content, encoding)
        return True

    def save_catalog(self) -> bool:
        """Write the catalog to the base .resx file when it holds any key."""
        if not len(self.catalog):
            logger.info("No resource keys collected; %s not written", self.config.resource_file)
            return False
        written = self.backup.write_with_backup(self.config.resource_file, render_resources(self.catalog.items()))
        if written:
            logger.info("Saved %d keys to %s", len(self.catalog), self.config.resource_file)
        return written

    def _process_file(self, path: str, summary: LocalizationSummary):
        class_name = class_name_for(path)
        code_behind = path + CODE_BEHIND_SUFFIX
        if os.path.isfile(code_behind):
            summary.processed.append(code_behind)
            if self.process_code_file(code_behind, class_name):
                summary.changed.append(code_behind)

        if matches_pattern(path, self.config.project_dir, self.config.exclude_patterns):
            logger.debug("Skipping excluded markup file %s", path)
            return
        summary.processed.append(path)
        if self.process_markup_file(path):
            summary.changed.append(path)

    def localize(self) -> LocalizationSummary:
        """
        Run the whole localize step.

        Returns:
            LocalizationSummary: What was processed, changed and what failed.
        """
        summary = LocalizationSummary()
        try:
            self.load_catalog()
            # Exclusion applies to markup only, so code-behind files of excluded pages are still rewritten
            files = find_files(self.config.project_dir, self.config.include_patterns)
            logger.info("Found %d files to localize in %s", len(files), self.config.project_dir)
            for path in files:
                try:
                    self._process_file(path, summary)
                except (OSError, UnicodeDecodeError) as e:
                    logger.exception("Failed to localize %s", path)
                    summary.failures[path] = str(e)

            if self.config.project_file:
                try:
                    generate_resource_stub(self.config.project_file, self.config.resource_file, self.backup)
                except (OSError, UnicodeDecodeError) as e:
                    logger.exception("Failed to generate the resource stub")
                    summary.failures[self.config.project_file] = str(e)

            self.save_catalog()
            summary.catalog_size = len(self.catalog)
        finally:
            self.backup.close()

        logger.info("Localization finished: %d files processed, %d changed, %d failed, %d keys",
                    len(summary.processed), len(summary.changed), len(summary.failures), summary.catalog_size)
        return summary
