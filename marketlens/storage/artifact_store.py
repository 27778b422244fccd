"""
Model artifact stores.

The blob service that holds model documents is an external collaborator;
this module defines the seam it plugs into plus two implementations:
- InMemoryArtifactStore: dict-backed, for tests and embedding
- LocalArtifactStore: a directory tree mirroring the bucket layout

Keys look like "trend-model/model.json". Uploads overwrite (upsert); no
version history is kept.
"""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..exceptions import ArtifactStoreError

logger = logging.getLogger(__name__)


def artifact_key(name: str) -> str:
    """Blob store key for a named model"""
    return f"{name}-model/model.json"


class ArtifactStore(ABC):
    """Blob storage for serialized models."""

    @abstractmethod
    def download(self, key: str) -> Optional[str]:
        """
        Read a document.

        Returns:
            The document, or None when the key does not exist

        Raises:
            ArtifactStoreError: The store could not be read
        """

    @abstractmethod
    def upload(self, key: str, document: str) -> None:
        """
        Write a document, replacing any existing one.

        Raises:
            ArtifactStoreError: The store could not be written
        """

    def exists(self, key: str) -> bool:
        return self.download(key) is not None


class InMemoryArtifactStore(ArtifactStore):
    """Dict-backed store."""

    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self._documents: Dict[str, str] = dict(documents or {})
        self._lock = threading.Lock()

    def download(self, key: str) -> Optional[str]:
        with self._lock:
            return self._documents.get(key)

    def upload(self, key: str, document: str) -> None:
        with self._lock:
            self._documents[key] = document

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._documents)


class LocalArtifactStore(ArtifactStore):
    """
    Filesystem store rooted at a directory.

    Writes go to a temp file in the destination directory and are moved into
    place with os.replace, so readers never see a half-written document.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ArtifactStoreError(key, "key escapes the store root")
        return path

    def download(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            if not path.exists():
                return None
            return path.read_text(encoding='utf-8')
        except OSError as e:
            raise ArtifactStoreError(key, str(e)) from e

    def upload(self, key: str, document: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name + '.', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(document)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise ArtifactStoreError(key, str(e)) from e

        logger.info("Wrote %s (%d bytes)", path, len(document))
