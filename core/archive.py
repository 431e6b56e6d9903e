"""Archive creation for packaged build output."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable
import gzip
import os
import shutil
import tarfile
import tempfile
import zipfile

import zstandard as zstd

_SUFFIX_FORMATS: list[tuple[str, str]] = [
    (".tar.zst", "zst"),
    (".tzst", "zst"),
    (".tar.gz", "gztar"),
    (".tgz", "gztar"),
    (".zip", "zip"),
]

_FORMAT_ALIASES: dict[str, str] = {
    "zst": "zst",
    "tar.zst": "zst",
    "tzst": "zst",
    "gztar": "gztar",
    "gz": "gztar",
    "tar.gz": "gztar",
    "tgz": "gztar",
    "zip": "zip",
}

_FORMAT_SUFFIXES: dict[str, str] = {
    "zst": ".tar.zst",
    "gztar": ".tar.gz",
    "zip": ".zip",
}


@runtime_checkable
class ArchiveConsole(Protocol):
    """Minimal console interface required by :class:`ArchiveManager`."""

    dry_run: bool

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def dry(self, message: str) -> None:
        ...


@dataclass(slots=True)
class ArchiveArtifact:
    """Description of filesystem content to package into an archive."""

    source_dir: Path
    label: str | None = None


def normalize_archive_format(value: str | None) -> str:
    """Return the canonical format name for *value* (``zip`` when blank)."""

    if value is None or not str(value).strip():
        return "zip"
    normalized = str(value).strip().lower().lstrip(".")
    if normalized not in _FORMAT_ALIASES:
        supported = ", ".join(sorted(_FORMAT_ALIASES))
        raise ValueError(f"Unsupported archive format '{value}'. Supported: {supported}")
    return _FORMAT_ALIASES[normalized]


def archive_suffix(archive_format: str | None) -> str:
    """Return the file suffix used for archives of *archive_format*."""

    return _FORMAT_SUFFIXES[normalize_archive_format(archive_format)]


class ArchiveManager:
    """Create compressed archives from directories.

    The base directory itself is never part of the archive: entries are
    stored relative to ``artifact.source_dir``.
    """

    def __init__(self, console: ArchiveConsole) -> None:
        self._console = console

    @staticmethod
    def _zstd_thread_count(source_size: int) -> int:
        cpu_count = os.cpu_count() or 1
        if cpu_count <= 1:
            return 1
        size_mb = max(1, source_size) / (1024 * 1024)
        if size_mb >= 1024:
            desired = 8
        elif size_mb >= 256:
            desired = 4
        elif size_mb >= 32:
            desired = 2
        else:
            desired = 1
        return max(1, min(desired, cpu_count))

    @classmethod
    def _zstd_compression_params(cls, source_size: int) -> zstd.ZstdCompressionParameters:
        size = max(1, source_size)
        window_log = max(10, min(27, (size - 1).bit_length()))
        return zstd.ZstdCompressionParameters.from_level(
            19,
            source_size=size,
            threads=cls._zstd_thread_count(size),
            write_checksum=True,
            write_content_size=True,
            window_log=window_log,
        )

    def create_archive(
        self,
        *,
        artifact: ArchiveArtifact,
        target_path: Path | str,
        format_hint: str | None = None,
        overwrite: bool = True,
    ) -> Path:
        """Create an archive for *artifact* at *target_path*.

        Parameters
        ----------
        artifact:
            Data describing the directory to archive.
        target_path:
            Exact path (including filename) for the archive that should be created.
        format_hint:
            Optional explicit archive format such as ``"zst"`` or ``"zip"``. When
            omitted, the format is inferred from *target_path*'s suffix.
        overwrite:
            When ``False`` and the target already exists, a :class:`FileExistsError`
            is raised instead of replacing the file.
        """

        target = Path(target_path).expanduser()
        source_dir = Path(artifact.source_dir).expanduser()

        if not source_dir.is_dir():
            raise FileNotFoundError(f"Archive source directory '{source_dir}' does not exist")

        archive_format = self._resolve_archive_format(target=target, format_hint=format_hint)

        if self._console.dry_run:
            label = artifact.label or source_dir.name
            self._console.dry(f"Would archive {label} to {target}")
            return target

        if target.exists():
            if not overwrite:
                raise FileExistsError(f"Archive target '{target}' already exists")
            target.unlink()

        target.parent.mkdir(parents=True, exist_ok=True)

        if archive_format == "zip":
            self._make_zip_archive(target_path=target, source_dir=source_dir)
        elif archive_format == "gztar":
            self._make_gzip_archive(target_path=target, source_dir=source_dir)
        elif archive_format == "zst":
            self._make_zst_archive(target_path=target, source_dir=source_dir)
        else:  # pragma: no cover - guarded by _resolve_archive_format
            raise RuntimeError(f"Unsupported archive format '{archive_format}'")

        self._console.info(f"Archived {artifact.label or source_dir.name} to {target}")
        return target

    def _resolve_archive_format(self, *, target: Path, format_hint: str | None) -> str:
        if format_hint:
            return normalize_archive_format(format_hint)

        filename = target.name.lower()
        for suffix, fmt in sorted(_SUFFIX_FORMATS, key=lambda item: len(item[0]), reverse=True):
            if filename.endswith(suffix):
                return fmt

        raise ValueError(
            "Unable to determine archive format from target path. "
            "Provide an explicit format_hint or use a supported suffix."
        )

    @staticmethod
    def _iter_files(source_dir: Path) -> Iterator[tuple[Path, str]]:
        for dirpath, dirnames, filenames in os.walk(source_dir, topdown=True):
            dirnames.sort()
            filenames.sort()
            current_dir = Path(dirpath)
            relative_dir = current_dir.relative_to(source_dir)
            for filename in filenames:
                yield current_dir / filename, (relative_dir / filename).as_posix()

    def _make_zip_archive(self, *, target_path: Path, source_dir: Path) -> None:
        with zipfile.ZipFile(
            target_path,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=9,
            allowZip64=True,
            strict_timestamps=False,
        ) as archive:
            for file_path, arcname in self._iter_files(source_dir):
                archive.write(file_path, arcname)

    def _make_gzip_archive(self, *, target_path: Path, source_dir: Path) -> None:
        temp_tar = self._create_pax_tar(root_dir=source_dir, temp_dir=target_path.parent)
        try:
            with temp_tar.open("rb") as src, gzip.open(target_path, "wb", compresslevel=9, mtime=0) as dst:
                shutil.copyfileobj(src, dst)
        finally:
            temp_tar.unlink(missing_ok=True)

    def _make_zst_archive(self, *, target_path: Path, source_dir: Path) -> None:
        temp_tar = self._create_pax_tar(root_dir=source_dir, temp_dir=target_path.parent)
        try:
            params = self._zstd_compression_params(temp_tar.stat().st_size)
            compressor = zstd.ZstdCompressor(compression_params=params)
            with temp_tar.open("rb") as src, target_path.open("wb") as dst:
                compressor.copy_stream(src, dst)
        finally:
            temp_tar.unlink(missing_ok=True)

    @staticmethod
    def _create_pax_tar(*, root_dir: Path, temp_dir: Path) -> Path:
        with tempfile.NamedTemporaryFile(dir=temp_dir, suffix=".tar", delete=False) as temp_handle:
            temp_path = Path(temp_handle.name)

        try:
            with tarfile.open(temp_path, mode="w", format=tarfile.PAX_FORMAT) as tar:
                for item in sorted(root_dir.iterdir()):
                    tar.add(item, arcname=item.name)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

        return temp_path


__all__ = [
    "ArchiveArtifact",
    "ArchiveConsole",
    "ArchiveManager",
    "archive_suffix",
    "normalize_archive_format",
]
