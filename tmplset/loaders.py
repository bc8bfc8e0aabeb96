"""Template loaders.

A loader turns a logical template name into raw source bytes. Names are
independent of file extension and storage root; each loader appends its
configured extension and resolves the result against its own store.

Built-in loaders:
- ``FileSystemLoader``: read from a directory on disk
- ``MemoryLoader``: read from an in-memory mapping (tests, embedded trees)
- ``PackageLoader``: read from an installed package via importlib.resources

Loaders are stateless and do no caching; the template set owns caching.
"""

import importlib.resources
from collections.abc import Mapping
from difflib import get_close_matches
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Protocol, runtime_checkable

from jinja2 import TemplateNotFound
from jinja2.loaders import split_template_path

from tmplset.config import DEFAULT_EXTENSION, DEFAULT_ROOT
from tmplset.exceptions import ErrorCode, LoadException


@runtime_checkable
class Loader(Protocol):
    """Protocol for template source loaders."""

    def load(self, name: str) -> bytes:
        """Return the source of the template named by name.

        Raises:
            LoadException: If the template is missing or unreadable
        """
        ...


def _split(name: str) -> list[str]:
    """Split a template name into path segments, rejecting '..' traversal."""
    try:
        return split_template_path(name)
    except TemplateNotFound as e:
        raise LoadException(f"Invalid template name '{name}'", name=name) from e


class FileSystemLoader:
    """Load templates from a directory on disk.

    Names are file names relative to the root directory without the
    extension: ``FileSystemLoader("templates", ".html").load("pages/about")``
    reads ``templates/pages/about.html``.
    """

    __slots__ = ("_extension", "_root")

    def __init__(self, root: str | Path = DEFAULT_ROOT, extension: str = DEFAULT_EXTENSION):
        self._root = Path(root)
        self._extension = extension

    @property
    def root(self) -> Path:
        return self._root

    @property
    def extension(self) -> str:
        return self._extension

    def load(self, name: str) -> bytes:
        path = self._root.joinpath(*_split(name + self._extension))
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise LoadException(
                f"Template '{name}' not found in {self._root}",
                name=name,
                details={"path": str(path)},
            ) from e
        except OSError as e:
            raise LoadException(
                f"Failed to read template '{name}': {e}",
                name=name,
                code=ErrorCode.TEMPLATE_IO_ERROR,
                details={"path": str(path)},
            ) from e

    def __repr__(self) -> str:
        return f"FileSystemLoader(root={str(self._root)!r}, extension={self._extension!r})"


class MemoryLoader:
    """Load templates from an in-memory mapping of path to source.

    Keys are full paths including the extension, so the same mapping can
    mirror a directory tree:

        >>> loader = MemoryLoader({"layout.html": "<title>{{ title }}</title>"}, ".html")
        >>> loader.load("layout")
        b'<title>{{ title }}</title>'

    ``str`` sources are encoded with ``encoding``.
    """

    __slots__ = ("_encoding", "_extension", "_mapping")

    def __init__(
        self,
        mapping: Mapping[str, str | bytes],
        extension: str = "",
        encoding: str = "utf-8",
    ):
        self._mapping = mapping
        self._extension = extension
        self._encoding = encoding

    def load(self, name: str) -> bytes:
        key = "/".join(_split(name + self._extension))
        try:
            source = self._mapping[key]
        except KeyError as e:
            msg = f"Template '{name}' not found"
            matches = get_close_matches(key, sorted(self._mapping), n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            raise LoadException(msg, name=name) from e
        if isinstance(source, str):
            return source.encode(self._encoding)
        return bytes(source)


class PackageLoader:
    """Load templates bundled inside an installed Python package.

    Args:
        package_name: Dotted package name (e.g. ``"my_app"``)
        package_path: Subdirectory within the package holding templates
        extension: Extension appended to template names
    """

    __slots__ = ("_extension", "_package_name", "_package_path")

    def __init__(
        self,
        package_name: str,
        package_path: str = "templates",
        extension: str = DEFAULT_EXTENSION,
    ):
        self._package_name = package_name
        self._package_path = package_path
        self._extension = extension

    def _get_root(self) -> Traversable:
        root = importlib.resources.files(self._package_name)
        for part in self._package_path.split("/"):
            if part:
                root = root.joinpath(part)
        return root

    def load(self, name: str) -> bytes:
        resource = self._get_root()
        for part in _split(name + self._extension):
            resource = resource.joinpath(part)
        try:
            return resource.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise LoadException(
                f"Template '{name}' not found in package '{self._package_name}/{self._package_path}'",
                name=name,
            ) from e
        except OSError as e:
            raise LoadException(
                f"Failed to read template '{name}' from package '{self._package_name}': {e}",
                name=name,
                code=ErrorCode.TEMPLATE_IO_ERROR,
            ) from e
