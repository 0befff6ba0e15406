"""
Write-with-backup and restore for files the localizer touches.

Each run gets at most one zip archive under ``<project dir>/.localizer_backup``.
The archive is created on the first write that actually changes a file. Every
entry holds the file's bytes from before the write, and its comment holds the
MD5 of the content written, so a later restore can tell whether the file was
edited since.
"""
import fnmatch
import hashlib
import logging
import os
import zipfile
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

BACKUP_FOLDER_NAME = '.localizer_backup'
ARCHIVE_PREFIX = 'backup'
ARCHIVE_TIMESTAMP_FORMAT = '%Y-%m-%dT%H-%M-%S'


class BackupState(Enum):
    IDLE = 'idle'
    OPEN = 'open'
    CLOSED = 'closed'


def content_hash(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.md5(data).hexdigest()


def file_hash(path: str) -> str:
    digest = hashlib.md5()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(65536), b''):
            digest.update(chunk)
    return digest.hexdigest()


def _matches_any(path: str, patterns: Optional[Iterable[str]]) -> bool:
    name = os.path.basename(path)
    return any(fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(path, pattern) for pattern in patterns or ())


class BackupService:
    """
    Args:
        base_path (str): The project folder; archive entries are stored relative to it.
        enabled (bool): Archive pre-write content when True.
        dry_run (bool): Log instead of writing anything.
    """

    def __init__(self, base_path: str, enabled: bool = True, dry_run: bool = False):
        self.base_path = os.path.abspath(base_path)
        self.backup_path = os.path.join(self.base_path, BACKUP_FOLDER_NAME)
        self.enabled = enabled
        self.dry_run = dry_run
        self.state = BackupState.IDLE
        self.archive_path: Optional[str] = None
        self._archive: Optional[zipfile.ZipFile] = None
        self._archived: Set[str] = set()

    def _new_archive_path(self) -> str:
        stamp = datetime.now().strftime(ARCHIVE_TIMESTAMP_FORMAT)
        candidate = os.path.join(self.backup_path, f"{ARCHIVE_PREFIX}{stamp}.zip")
        counter = 1
        while os.path.exists(candidate):
            candidate = os.path.join(self.backup_path, f"{ARCHIVE_PREFIX}{stamp}-{counter}.zip")
            counter += 1
        return candidate

    def _open_archive(self) -> zipfile.ZipFile:
        if self._archive is None:
            os.makedirs(self.backup_path, exist_ok=True)
            self.archive_path = self._new_archive_path()
            self._archive = zipfile.ZipFile(self.archive_path, 'w', compression=zipfile.ZIP_DEFLATED)
            self._archived.clear()
            self.state = BackupState.OPEN
            logger.info("Created backup file %s", self.archive_path)
        return self._archive

    def _relative(self, path: str) -> str:
        return os.path.relpath(os.path.abspath(path), self.base_path).replace(os.sep, '/')

    def write_with_backup(self, path: str, new_content: str, encoding: str = 'utf-8') -> bool:
        """
        Write ``new_content`` to ``path``, archiving the previous content first.

        Args:
            path (str): The file to write.
            new_content (str): The complete new file content.
            encoding (str): ``utf-8-sig`` writes a leading BOM.

        Returns:
            bool: True if the file was written.
        """
        if self.dry_run:
            logger.info("Dry run: changes to %s not written to disk", path)
            logger.debug(new_content)
            return False

        new_hash = content_hash(new_content.encode(encoding))
        exists = os.path.exists(path)
        if exists and file_hash(path) == new_hash:
            logger.debug("Skipping unchanged file %s", path)
            return False

        relative_path = self._relative(path)
        if self.enabled and exists and relative_path not in self._archived:
            archive = self._open_archive()
            with open(path, 'rb') as f:
                original = f.read()
            info = zipfile.ZipInfo(relative_path, date_time=datetime.now().timetuple()[:6])
            info.compress_type = zipfile.ZIP_DEFLATED
            info.comment = new_hash.encode('ascii')
            archive.writestr(info, original)
            self._archived.add(relative_path)
            logger.debug("Archived %s", relative_path)

        with open(path, 'w', encoding=encoding, newline='') as f:
            f.write(new_content)
        logger.info("Updated %s", path)
        return True

    def close(self):
        """Finalize the archive. Safe to call more than once."""
        if self._archive is not None:
            logger.info("Closing backup file %s", self.archive_path)
            self._archive.close()
            self._archive = None
            self.state = BackupState.CLOSED

    def __enter__(self) -> 'BackupService':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def latest_archive(self) -> Optional[str]:
        if not os.path.isdir(self.backup_path):
            return None
        archives = [os.path.join(self.backup_path, name) for name in os.listdir(self.backup_path)
                    if name.startswith(ARCHIVE_PREFIX) and name.endswith('.zip')]
        if not archives:
            return None
        return max(archives, key=lambda archive: (os.path.getmtime(archive), os.path.basename(archive)))

    def restore(self, force: bool = False, include: Optional[Iterable[str]] = None,
                exclude: Optional[Iterable[str]] = None) -> List[str]:
        """
        Restore files from the most recent archive.

        A file whose current content no longer hashes to the value recorded at
        backup time was edited afterwards and is skipped unless ``force`` is set.

        Args:
            force (bool): Restore even files modified since the backup.
            include (Optional[Iterable[str]]): Only restore entries matching one of these patterns.
            exclude (Optional[Iterable[str]]): Skip entries matching one of these patterns.

        Returns:
            List[str]: The restored file paths.
        """
        self.close()
        archive_path = self.latest_archive()
        if archive_path is None:
            logger.error("No backup file found in %s", self.backup_path)
            return []

        restored: List[str] = []
        logger.info("Restoring backup file %s", archive_path)
        with zipfile.ZipFile(archive_path, 'r') as archive:
            for entry in archive.infolist():
                if entry.is_dir():
                    continue
                if include and not _matches_any(entry.filename, include):
                    continue
                if _matches_any(entry.filename, exclude):
                    continue
                full_path = os.path.join(self.base_path, *entry.filename.split('/'))
                recorded_hash = entry.comment.decode('ascii', errors='replace')
                if os.path.exists(full_path) and file_hash(full_path) != recorded_hash and not force:
                    logger.warning("Skipping modified file %s", full_path)
                    continue
                if self.dry_run:
                    logger.info("Dry run: would restore %s", full_path)
                    continue
                os.makedirs(os.path.dirname(full_path), exist_ok=True)
                with open(full_path, 'wb') as f:
                    f.write(archive.read(entry))
                logger.info("Restored %s", full_path)
                restored.append(full_path)
        return restored
