from pathlib import Path
from typing import Any, Optional, Union
import json
import logging
import shutil
import tarfile
import tempfile
import zipfile

import py7zr

from launcher.utils.errors import (
    ArchiveError,
    ExtractionPasswordError,
    UnsupportedArchiveFormatError,
)

try:
    shutil.register_archive_format(
        "7zip", py7zr.pack_7zarchive, description="7zip archive")
    shutil.register_unpack_format("7zip", [".7z"], py7zr.unpack_7zarchive)
except shutil.RegistryError:
    pass  # already registered

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MANIFEST_FILENAME = "mod.json"

# magic prefix -> (unpack format, suffix)
ARCHIVE_SIGNATURES = (
    (b"PK\x03\x04", "zip", ".zip"),
    (b"PK\x05\x06", "zip", ".zip"),  # empty zip
    (b"7z\xbc\xaf\x27\x1c", "7zip", ".7z"),
    (b"\x1f\x8b", "gztar", ".tar.gz"),
    (b"BZh", "bztar", ".tar.bz2"),
    (b"\xfd7zXZ\x00", "xztar", ".tar.xz"),
)

TAR_FORMATS = ("tar", "gztar", "bztar", "xztar")


def detect_archive_format(data: bytes) -> tuple[str, str]:
    for signature, unpack_format, suffix in ARCHIVE_SIGNATURES:
        if data.startswith(signature):
            return unpack_format, suffix

    if data[257:262] == b"ustar":
        return "tar", ".tar"

    raise UnsupportedArchiveFormatError("Downloaded data is not a supported archive.")


def is_zip_encrypted(source_path: Path) -> bool:
    try:
        with zipfile.ZipFile(source_path, 'r') as zf:
            for zinfo in zf.infolist():
                if zinfo.flag_bits & 0x1:
                    return True
    except zipfile.BadZipFile:
        return False
    return False


def is_7z_encrypted(source_path: Path) -> bool:
    try:
        with py7zr.SevenZipFile(source_path, 'r') as zf:
            return zf.needs_password()
    except py7zr.PasswordRequired:
        return True
    except py7zr.Bad7zFile:
        return False


def is_archive_encrypted(source_path: Path) -> bool:
    suffix = source_path.suffix.lower()
    if suffix == '.zip':
        return is_zip_encrypted(source_path)
    if suffix == '.7z':
        return is_7z_encrypted(source_path)

    return False


def check_tar_members(source_path: Path, output_path: Path) -> None:
    """Raises ArchiveError if a member of the tar archive would land outside output_path."""
    root = output_path.resolve()

    def inside(path: Path) -> bool:
        return path.resolve().is_relative_to(root)

    with tarfile.open(source_path) as archive:
        for member in archive.getmembers():
            target = root / member.name
            if member.isdev() or not inside(target):
                raise ArchiveError(f"Archive member '{member.name}' escapes the extraction directory.")
            if member.issym() and not inside(target.parent / member.linkname):
                raise ArchiveError(f"Archive link '{member.name}' points outside the extraction directory.")
            if member.islnk() and not inside(root / member.linkname):
                raise ArchiveError(f"Archive link '{member.name}' points outside the extraction directory.")


def extract_file(source_path: Union[str, Path], output_path: Union[str, Path], archive_format: Optional[str] = None) -> None:
    source_path = Path(source_path)
    output_path = Path(output_path)

    if not source_path.exists():
        raise FileNotFoundError(f"Source archive not found: {source_path}")

    if is_archive_encrypted(source_path):
        error_msg = f"Archive '{source_path.name}' is password-protected and cannot be extracted."
        logger.error(error_msg)
        raise ExtractionPasswordError(error_msg)

    output_path.mkdir(parents=True, exist_ok=True)

    unpack_options = {}
    if archive_format in TAR_FORMATS:
        check_tar_members(source_path, output_path)
        if hasattr(tarfile, "data_filter"):
            unpack_options["filter"] = "data"

    logger.info("Extracting archive: %s", source_path)
    try:
        shutil.unpack_archive(str(source_path), str(output_path), archive_format, **unpack_options)
        logger.info("Successfully extracted to: %s", output_path)
    except Exception as e:
        logger.error("Failed to extract %s: %s", source_path, e)
        raise


def extract_archive(data: bytes, output_path: Union[str, Path]) -> None:
    """Extracts an in-memory archive (a finished download) into output_path."""
    archive_format, suffix = detect_archive_format(data)
    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb", delete=False, dir=output_path.parent, suffix=suffix
        ) as temp_f:
            temp_f.write(data)
            temp_path = Path(temp_f.name)

        extract_file(temp_path, output_path, archive_format)
    finally:
        if temp_path and temp_path.exists():
            temp_path.unlink(missing_ok=True)


def find_mod_root(extracted_path: Path, max_depth: int = 2) -> Optional[Path]:
    """Returns the directory holding mod.json inside an extracted archive.

    Repository archives usually wrap the mod in a "<repo>-<branch>" folder,
    sometimes with the mod folder inside that one.
    """
    if (extracted_path / MANIFEST_FILENAME).is_file():
        return extracted_path

    if max_depth <= 0:
        return None

    for child in sorted(extracted_path.iterdir()):
        if not child.is_dir():
            continue
        found = find_mod_root(child, max_depth - 1)
        if found is not None:
            return found

    return None


def remove_folder(path: Path) -> None:
    try:
        if path.is_symlink():
            logger.debug("Removing symlink at %s", path)
            path.unlink()
        elif path.is_dir():
            logger.debug("Removing directory and its contents at %s", path)
            shutil.rmtree(path)
        else:
            if not path.exists():
                logger.debug(
                    "Path %s does not exist. Nothing to remove.", path)
            else:
                logger.warning(
                    "Path %s is a file, not a directory. Skipping removal.", path
                )
    except (OSError, PermissionError) as error:
        logger.error("Failed to remove path %s: %s", path, error)
        raise


def find_mod_directory(mods_directory: Path, mod_name: str) -> Optional[Path]:
    if not mods_directory.is_dir():
        return None

    for entry in sorted(mods_directory.iterdir()):
        if entry.is_dir() and entry.name.lower() == mod_name.lower():
            return entry

    return None


def remove_mod_directory(mods_directory: Path, mod_name: str) -> bool:
    """Removes every directory of mods_directory named mod_name (any case)."""
    removed = False

    if not mods_directory.is_dir():
        return removed

    for entry in mods_directory.iterdir():
        if entry.is_dir() and entry.name.lower() == mod_name.lower():
            remove_folder(entry)
            removed = True

    return removed


def load_json(path: Path) -> Any:
    with path.open("r", encoding="UTF-8") as file:
        return json.load(file)


def save_json(path: Path, data: Any) -> None:
    """Saves data to a JSON file atomically."""
    temp_path = None
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="UTF-8",
            delete=False,
            dir=path.parent,
            suffix=".tmp",
        ) as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
            temp_path = Path(f.name)

        shutil.move(temp_path, path)
    finally:
        if temp_path and temp_path.exists():
            temp_path.unlink()
