"""Persist compiled documents for an external publisher."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib
import json
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Mapping
from zipfile import ZIP_DEFLATED, ZipFile

from sitebake import __version__
from sitebake.compiler.errors import SitebakeError
from sitebake.compiler.models import CompileResult, OutputDocument
from sitebake.core.logging import get_logger

__all__ = [
    "MANIFEST_FILENAME",
    "ManifestEntry",
    "OutputError",
    "WriteReport",
    "archive_output",
    "hash_text",
    "manifest_payload",
    "write_documents",
]

MANIFEST_FILENAME = "manifest.json"
DEFAULT_HASH_ALGORITHM = "sha256"


class OutputError(SitebakeError):
    """Raised when documents cannot be written to the output directory."""


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    route: str
    path: str
    title: str
    sha256: str
    bytes: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "route": self.route,
            "path": self.path,
            "title": self.title,
            "sha256": self.sha256,
            "bytes": self.bytes,
        }


@dataclass(frozen=True, slots=True)
class WriteReport:
    """Where the documents, the manifest and the archive ended up."""

    output_dir: Path
    entries: tuple[ManifestEntry, ...]
    manifest_path: Path
    archive_path: Path | None = None


def hash_text(text: str, *, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    digest = hashlib.new(algorithm)
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


def _safe_relative(output_path: str) -> PurePosixPath:
    relative = PurePosixPath(output_path)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise OutputError(f"Refusing to write outside the output directory: {output_path!r}")
    return relative


def _entry_for(document: OutputDocument) -> ManifestEntry:
    return ManifestEntry(
        route=document.route_path,
        path=document.output_path,
        title=document.title,
        sha256=hash_text(document.html),
        bytes=len(document.html.encode("utf-8")),
    )


def manifest_payload(
    entries: Iterable[ManifestEntry],
    dependencies: Mapping[str, str],
) -> dict[str, Any]:
    """Return the ``manifest.json`` body."""

    return {
        "generator": f"sitebake {__version__}",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "documents": [entry.as_dict() for entry in entries],
        "dependencies": dict(sorted(dependencies.items())),
    }


def _generate_archive_name(archive_root: Path, timestamp: str) -> Path:
    suffix = 0
    while True:
        suffix_part = "" if suffix == 0 else f"-{suffix:02d}"
        candidate = archive_root / f"site-{timestamp}{suffix_part}.zip"
        if not candidate.exists():
            return candidate
        suffix += 1


def archive_output(
    output_dir: Path,
    paths: Iterable[str],
    *,
    archive_root: Path | None = None,
) -> Path:
    """Zip the written files into a timestamped archive.

    Args:
        output_dir: Directory the files were written to.
        paths: Output-relative paths to include.
        archive_root: Directory receiving the archive; defaults to
            ``<output_dir>/archives``.

    Returns:
        Path of the new ``.zip`` file.
    """

    archive_root = archive_root or output_dir / "archives"
    archive_root.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    archive_path = _generate_archive_name(archive_root, timestamp)
    with ZipFile(archive_path, mode="w", compression=ZIP_DEFLATED) as zf:
        for relative in sorted(paths):
            zf.write(output_dir / relative, relative)
    return archive_path


def write_documents(
    result: CompileResult,
    output_dir: Path,
    *,
    archive: bool = False,
) -> WriteReport:
    """Write every document plus ``manifest.json`` under ``output_dir``.

    Raises:
        OutputError: If a document path escapes ``output_dir`` or a write fails.
    """

    logger = get_logger(__name__, component="output")
    entries: list[ManifestEntry] = []
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        for document in result.documents:
            relative = _safe_relative(document.output_path)
            target = output_dir.joinpath(*relative.parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(document.html, encoding="utf-8")
            entries.append(_entry_for(document))
            logger.debug("document-written", path=str(target))

        manifest_path = output_dir / MANIFEST_FILENAME
        manifest_path.write_text(
            json.dumps(
                manifest_payload(entries, result.dependencies),
                indent=2,
            )
            + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise OutputError(f"Failed to write output to {output_dir}: {exc}") from exc

    archive_path = None
    if archive:
        archive_path = archive_output(
            output_dir,
            [entry.path for entry in entries] + [MANIFEST_FILENAME],
        )

    logger.info(
        "output-written",
        output_dir=str(output_dir),
        documents=len(entries),
        archive=str(archive_path) if archive_path else None,
    )
    return WriteReport(
        output_dir=output_dir,
        entries=tuple(entries),
        manifest_path=manifest_path,
        archive_path=archive_path,
    )
