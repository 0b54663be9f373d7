"""
Resolution of source files to the component (core, plugin, theme, ...) that ships them.
"""

from pathlib import PurePosixPath
from typing import Dict, Mapping, Optional, Tuple
import logging

from .interfaces import LocationResolver
from ..models import SourceLocation

logger = logging.getLogger(__name__)


class FileLocator(LocationResolver):
    """
    Identifies the origin of a file from a set of root directories.

    Roots are given as ``{type: directory}``, e.g.
    ``{"plugin": "/srv/app/plugins", "theme": "/srv/app/themes", "core": "/srv/app"}``.
    When roots are nested, the longest matching root wins, so the ``core`` root
    may contain the others. The name of the origin is the first path component
    below the root (the file name itself for single-file components).
    """

    def __init__(self, roots: Mapping[str, str]):
        self.roots: Tuple[Tuple[str, PurePosixPath], ...] = tuple(
            sorted(
                ((origin_type, PurePosixPath(directory)) for origin_type, directory in roots.items()),
                key=lambda item: len(item[1].parts),
                reverse=True,
            )
        )
        self._cache: Dict[str, Optional[SourceLocation]] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def identify(self, source_file: Optional[str]) -> Optional[SourceLocation]:
        """
        Identify the origin of a file.

        Args:
            source_file: Absolute path of the file

        Returns:
            SourceLocation or None if the file is outside every root
        """
        if not source_file:
            return None
        if source_file in self._cache:
            return self._cache[source_file]

        location = self._locate(PurePosixPath(source_file.replace("\\", "/")))
        if location is None:
            self.logger.debug(f"No origin found for '{source_file}'")
        self._cache[source_file] = location
        return location

    def _locate(self, path: PurePosixPath) -> Optional[SourceLocation]:
        for origin_type, root in self.roots:
            try:
                relative = path.relative_to(root)
            except ValueError:
                continue
            if not relative.parts:
                continue
            return SourceLocation(
                type=origin_type,
                name=relative.parts[0],
                data={"root": str(root), "path": str(relative)},
            )
        return None
