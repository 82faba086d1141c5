# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Archive Extraction

Single responsibility: Unpack plugin zip archives inside a target directory
"""

import io
import logging
import re
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import List, Tuple

from plugman.core.errors import ArchiveError

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def safe_entry_path(root: Path, entry_name: str) -> Path:
    """
    Map an archive entry name to a path under root.

    Args:
        root: Resolved extraction root
        entry_name: Entry name as stored in the archive

    Returns:
        Destination path inside root

    Raises:
        ArchiveError: If the entry is absolute or escapes root
    """
    normalized = entry_name.replace("\\", "/")
    if normalized.startswith("/") or _DRIVE_RE.match(normalized):
        raise ArchiveError(f"Archive entry has an absolute path: {entry_name}", entry=entry_name)

    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if ".." in parts:
        raise ArchiveError(f"Archive entry escapes target directory: {entry_name}", entry=entry_name)

    destination = root.joinpath(*parts).resolve()
    if destination != root and root not in destination.parents:
        raise ArchiveError(f"Archive entry escapes target directory: {entry_name}", entry=entry_name)
    return destination


def extract_archive(data: bytes, target_dir: Path) -> List[Path]:
    """
    Extract a zip archive into target_dir.

    Every entry is validated before anything is written, so an unsafe
    archive leaves the filesystem untouched. Intermediate directories are
    created as needed.

    Args:
        data: Raw archive bytes
        target_dir: Directory to extract into (created if missing)

    Returns:
        Paths of extracted files

    Raises:
        ArchiveError: If the archive is malformed or contains unsafe entries
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Invalid zip archive: {e}")

    with archive:
        root = Path(target_dir).resolve()
        plan: List[Tuple[zipfile.ZipInfo, Path]] = []
        for info in archive.infolist():
            destination = safe_entry_path(root, info.filename)
            if destination == root and not info.is_dir():
                raise ArchiveError(f"Archive entry has no file name: {info.filename}", entry=info.filename)
            plan.append((info, destination))

        root.mkdir(parents=True, exist_ok=True)
        written = []
        for info, destination in plan:
            if info.is_dir():
                destination.mkdir(parents=True, exist_ok=True)
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            try:
                with archive.open(info) as source, open(destination, "wb") as target:
                    shutil.copyfileobj(source, target)
            except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, zlib.error) as e:
                raise ArchiveError(f"Corrupt archive entry {info.filename}: {e}", entry=info.filename)
            except (NotImplementedError, RuntimeError) as e:
                # Unsupported compression method or encrypted entry
                raise ArchiveError(f"Cannot extract archive entry {info.filename}: {e}", entry=info.filename)
            written.append(destination)

    logger.debug(f"Extracted {len(written)} files into {root}")
    return written
