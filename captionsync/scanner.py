"""Discovers media assets that still need captions."""

import logging
import os
from typing import Iterable, Iterator, List, Optional, Tuple

from .exceptions import ScanError
from .models import MediaAsset

logger = logging.getLogger(__name__)

DEFAULT_SUPPORTED_EXTENSIONS = ('.mp4', '.webm', '.mkv', '.mov', '.mp3', '.wav')
DEFAULT_IGNORED_NAMES = ('.DS_Store',)

class AssetScanner:
    """
    Walks a directory tree depth-first and yields supported media assets.

    Traversal uses an explicit stack of open directory listings, so deep trees
    do not hit the recursion limit. Each call to ``scan`` starts a fresh walk;
    a walk that was abandoned part way cannot be resumed.
    """

    def __init__(
        self,
        supported_extensions: Iterable[str] = DEFAULT_SUPPORTED_EXTENSIONS,
        ignored_names: Iterable[str] = DEFAULT_IGNORED_NAMES,
        artifact_suffix: str = '.json',
    ):
        self.supported_extensions = tuple(ext.lower() for ext in supported_extensions)
        self.ignored_names = frozenset(ignored_names)
        self.artifact_suffix = artifact_suffix
        self.errors: List[ScanError] = []

    def is_supported(self, path: str) -> bool:
        name = os.path.basename(path)
        if name in self.ignored_names:
            return False
        return os.path.splitext(name)[1].lower() in self.supported_extensions

    def to_asset(self, path: str) -> MediaAsset:
        return MediaAsset.from_path(path, artifact_suffix=self.artifact_suffix)

    def is_transcribed(self, asset: MediaAsset) -> bool:
        """An asset counts as done as soon as its sibling artifact exists."""
        return os.path.exists(asset.artifact_path)

    def _list_dir(self, directory: str) -> Optional[Iterator[str]]:
        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            error = ScanError(f"Cannot read directory {directory}: {e}")
            error.__cause__ = e
            self.errors.append(error)
            logger.error(f"Skipping unreadable directory {directory}: {e}")
            return None
        return iter(name for name in names if name not in self.ignored_names)

    def scan(self, root: str, skip_transcribed: bool = True) -> Iterator[MediaAsset]:
        """
        Lazily yields assets under ``root`` in depth-first order.

        Args:
            root: Directory to walk.
            skip_transcribed: Leave out assets whose artifact already exists.

        Raises:
            ScanError: If ``root`` is not a directory. Unreadable subdirectories
                       are logged and collected in ``errors`` instead.
        """
        if not os.path.isdir(root):
            raise ScanError(f"Scan root is not a directory: {root}")
        self.errors = []

        listing = self._list_dir(root)
        if listing is None:
            return
        stack: List[Tuple[str, Iterator[str]]] = [(root, listing)]

        while stack:
            directory, entries = stack[-1]
            name = next(entries, None)
            if name is None:
                stack.pop()
                continue

            full_path = os.path.join(directory, name)
            if os.path.isdir(full_path) and not os.path.islink(full_path):
                child = self._list_dir(full_path)
                if child is not None:
                    stack.append((full_path, child))
                continue

            if not self.is_supported(full_path):
                continue
            asset = self.to_asset(full_path)
            if skip_transcribed and self.is_transcribed(asset):
                logger.debug(f"Already transcribed, skipping: {full_path}")
                continue
            yield asset
