"""Static asset resolution for the viewer pages.

Assets are looked up under the operator's asset root first, then in the
bundled default set shipped with the package.
"""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .exceptions import AssetNotFoundError

logger = logging.getLogger(__name__)

BUNDLED_ASSET_ROOT = Path(__file__).resolve().parent / "static"
INDEX_FILE = "index.html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Asset:
    """A resolved static file."""

    path: Path
    content: bytes
    content_type: str


def content_type_for(path: str) -> str:
    """Content type derived from the file extension."""
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


class AssetResolver:
    """Resolves request paths to asset bytes."""

    def __init__(
        self,
        asset_root: Callable[[], Optional[Path]],
        bundled_root: Path = BUNDLED_ASSET_ROOT,
    ):
        """Initialize asset resolver.

        Args:
            asset_root: Returns the current operator override directory, or None.
                Called per lookup so that config reloads apply immediately.
            bundled_root: Directory with the default assets.
        """
        self._asset_root = asset_root
        self.bundled_root = bundled_root

    def roots(self):
        override = self._asset_root()
        if override is not None:
            yield Path(override)
        yield self.bundled_root

    @staticmethod
    def _locate(root: Path, relative: str) -> Optional[Path]:
        try:
            base = root.resolve()
            candidate = (base / relative).resolve()
        except OSError:
            return None

        # Reject paths escaping the root, e.g. "../config.toml"
        if candidate != base and base not in candidate.parents:
            return None

        if candidate.is_file():
            return candidate
        return None

    def resolve(self, path: str) -> Asset:
        """Resolve a request path to an asset.

        Args:
            path: URL path without the leading slash; empty means index.html.

        Returns:
            Asset: Resolved file contents and content type.

        Raises:
            AssetNotFoundError: If no root holds the file.
        """
        relative = path.strip("/") or INDEX_FILE

        for root in self.roots():
            located = self._locate(root, relative)
            if located is None:
                continue

            try:
                content = located.read_bytes()
            except OSError as e:
                logger.warning(f"Failed to read asset {located}: {e}")
                continue

            return Asset(path=located, content=content, content_type=content_type_for(relative))

        raise AssetNotFoundError(relative)
