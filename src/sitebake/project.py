"""Read project input from a directory tree or a JSON payload."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Sequence

from pathspec import PathSpec
from pydantic import BaseModel, Field, ValidationError

from sitebake.compiler.errors import ProjectLoadError
from sitebake.compiler.models import ProjectFile
from sitebake.core.logging import get_logger

__all__ = [
    "DEFAULT_SKIP_DIRS",
    "PackageManifest",
    "ProjectPayload",
    "ProjectSource",
    "ProjectWalker",
    "load_project",
    "read_directory",
    "read_payload",
]

DEFAULT_SKIP_DIRS: frozenset[str] = frozenset(
    {"node_modules", ".next", ".git", ".turbo", ".vercel", "dist", "out"}
)
_BINARY_SNIFF_BYTES = 8192


class PayloadFile(BaseModel):
    path: str = Field(min_length=1, description="Project-relative file path.")
    content: str = Field(default="", description="UTF-8 file text.")

    model_config = {"str_strip_whitespace": False}


class ProjectPayload(BaseModel):
    """JSON document handed over by an upstream generator."""

    files: list[PayloadFile] = Field(
        default_factory=list,
        description="Ordered project files.",
    )
    title: str | None = Field(default=None, description="Site title.")
    dependencies: dict[str, str] = Field(
        default_factory=dict,
        description="Dependency-version map passed through to the manifest.",
    )


class PackageManifest(BaseModel):
    """The parts of a ``package.json`` the loader cares about."""

    name: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)

    model_config = {"extra": "ignore"}


@dataclass(frozen=True, slots=True)
class ProjectSource:
    """Files plus optional title and dependency map for one compile."""

    files: tuple[ProjectFile, ...]
    title: str | None = None
    dependencies: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    origin: Path | None = None

    def __len__(self) -> int:
        return len(self.files)


def _looks_binary(data: bytes) -> bool:
    return b"\x00" in data[:_BINARY_SNIFF_BYTES]


class ProjectWalker:
    """Enumerate text files under a project root honoring ``.gitignore``."""

    def __init__(
        self,
        root: Path,
        *,
        skip_dirs: Sequence[str] = tuple(DEFAULT_SKIP_DIRS),
        follow_symlinks: bool = False,
    ) -> None:
        if not root.exists():
            raise ProjectLoadError(f"Project path not found: {root}")
        if not root.is_dir():
            raise ProjectLoadError(f"Project path must be a directory: {root}")
        self._root = root.resolve()
        self._skip_dirs = frozenset(skip_dirs)
        self._follow_symlinks = follow_symlinks
        self._logger = get_logger(__name__, component="project")

    @property
    def root(self) -> Path:
        return self._root

    def iter_paths(self) -> Iterator[Path]:
        yield from self._walk(self._root, [])

    def _walk(
        self,
        directory: Path,
        stack: list[tuple[Path, PathSpec]],
    ) -> Iterator[Path]:
        local_spec = self._load_gitignore(directory)
        if local_spec is not None:
            stack = [*stack, (directory, local_spec)]

        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except PermissionError:
            self._logger.warning("directory-unreadable", path=str(directory))
            return

        for entry in entries:
            if entry.is_symlink() and not self._follow_symlinks:
                continue
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue
            if is_dir and entry.name in self._skip_dirs:
                continue
            if self._is_ignored(entry, stack, is_dir=is_dir):
                continue
            if is_dir:
                yield from self._walk(entry, stack)
            elif entry.is_file():
                yield entry

    @staticmethod
    def _is_ignored(
        path: Path,
        stack: Sequence[tuple[Path, PathSpec]],
        *,
        is_dir: bool,
    ) -> bool:
        for base, spec in stack:
            candidate = path.relative_to(base).as_posix()
            if is_dir:
                candidate = f"{candidate}/"
            if spec.match_file(candidate):
                return True
        return False

    def _load_gitignore(self, directory: Path) -> PathSpec | None:
        gitignore = directory / ".gitignore"
        if not gitignore.is_file():
            return None
        try:
            lines = gitignore.read_text(encoding="utf-8").splitlines()
        except OSError:
            return None
        return PathSpec.from_lines("gitwildmatch", lines)

    def read_files(self) -> list[ProjectFile]:
        """Return every text file as a :class:`ProjectFile`, binaries skipped."""

        files: list[ProjectFile] = []
        for path in self.iter_paths():
            relative = path.relative_to(self._root).as_posix()
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise ProjectLoadError(f"Failed to read {relative}: {exc}") from exc
            if _looks_binary(data):
                self._logger.debug("file-skipped", path=relative, reason="binary")
                continue
            try:
                content = data.decode("utf-8")
            except UnicodeDecodeError:
                self._logger.debug("file-skipped", path=relative, reason="encoding")
                continue
            files.append(ProjectFile(path=relative, content=content))
        return files


def _package_dependencies(root: Path) -> dict[str, str]:
    manifest_path = root / "package.json"
    if not manifest_path.is_file():
        return {}
    try:
        manifest = PackageManifest.model_validate_json(
            manifest_path.read_text(encoding="utf-8")
        )
    except (OSError, ValidationError) as exc:
        get_logger(__name__, component="project").warning(
            "package-manifest-invalid",
            path=str(manifest_path),
            error=str(exc),
        )
        return {}
    return dict(manifest.dependencies)


def read_directory(
    root: Path,
    *,
    skip_dirs: Sequence[str] = tuple(DEFAULT_SKIP_DIRS),
) -> ProjectSource:
    """Load a project directory.

    Dependencies come from the root ``package.json`` when present.

    Raises:
        ProjectLoadError: If ``root`` is missing or a file cannot be read.
    """

    walker = ProjectWalker(root, skip_dirs=skip_dirs)
    files = walker.read_files()
    get_logger(__name__, component="project").info(
        "project-loaded",
        root=str(walker.root),
        files=len(files),
    )
    return ProjectSource(
        files=tuple(files),
        dependencies=MappingProxyType(_package_dependencies(walker.root)),
        origin=walker.root,
    )


def read_payload(path: Path) -> ProjectSource:
    """Load a ``{files, title, dependencies}`` JSON payload.

    Raises:
        ProjectLoadError: If the file is unreadable or fails validation.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProjectLoadError(f"Failed to read payload {path}: {exc}") from exc
    try:
        payload = ProjectPayload.model_validate_json(text)
    except ValidationError as exc:
        raise ProjectLoadError(f"Invalid project payload {path}: {exc}") from exc
    return ProjectSource(
        files=tuple(
            ProjectFile(path=item.path, content=item.content) for item in payload.files
        ),
        title=payload.title,
        dependencies=MappingProxyType(dict(payload.dependencies)),
        origin=path,
    )


def load_project(source: Path) -> ProjectSource:
    """Load ``source`` as a directory or, for a ``.json`` file, a payload.

    Raises:
        ProjectLoadError: If ``source`` is neither.
    """

    if source.is_dir():
        return read_directory(source)
    if source.is_file() and source.suffix.lower() == ".json":
        return read_payload(source)
    if not source.exists():
        raise ProjectLoadError(f"Project path not found: {source}")
    raise ProjectLoadError(
        f"Unsupported project input {source}: expected a directory or a .json payload"
    )
