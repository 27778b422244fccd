"""
Model Registry - owns the served instance of each named model.

Each model is loaded once from the artifact store, or built fresh and
untrained when no artifact exists or loading fails. Inference reads an
immutable ModelEntry snapshot; retraining replaces the entry wholesale via
swap(), so an in-flight prediction always runs against one complete model.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import torch.nn as nn

from ..config import MarketLensConfig
from ..exceptions import ArtifactStoreError, ModelUnavailableError
from ..storage.artifact_store import ArtifactStore, artifact_key
from .factory import MODEL_NAMES, build_model
from .serialization import model_from_document, model_to_document

logger = logging.getLogger(__name__)


SOURCE_ARTIFACT = 'artifact'
SOURCE_FRESH = 'fresh'
SOURCE_TRAINED = 'trained'


@dataclass(frozen=True)
class ModelEntry:
    """Snapshot of a served model"""
    name: str
    model: Optional[nn.Module]
    is_trained: bool = False
    source: str = SOURCE_FRESH
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.model is not None


class ModelRegistry:
    """
    Named model instances with load-or-create and swap-on-success semantics.

    Args:
        store: Artifact store models are loaded from and saved to
        config: MarketLens configuration (topologies of fresh models)
    """

    def __init__(self, store: ArtifactStore, config: Optional[MarketLensConfig] = None):
        self.store = store
        self.config = config or MarketLensConfig()
        self._entries: Dict[str, ModelEntry] = {}
        self._lock = threading.Lock()

    def load_all(self, names: Iterable[str] = MODEL_NAMES) -> Dict[str, ModelEntry]:
        return {name: self.load(name) for name in names}

    def load(self, name: str) -> ModelEntry:
        """
        Load name from the store, falling back to a fresh untrained model.

        Storage and parse failures are logged and treated as "no persisted
        model". If even the fresh topology cannot be built the entry is
        registered as unavailable.
        """
        key = artifact_key(name)
        entry = None
        try:
            document = self.store.download(key)
            if document is not None:
                model = model_from_document(document)
                entry = ModelEntry(name, self._prepare(model), is_trained=True, source=SOURCE_ARTIFACT)
                logger.info("Loaded saved %s model from storage", name)
            else:
                logger.info("No saved %s model found, creating new model", name)
        except (ArtifactStoreError, ValueError) as e:
            logger.warning("Could not load saved %s model, creating new one: %s", name, e)

        if entry is None:
            try:
                entry = ModelEntry(name, self._prepare(build_model(name, self.config)),
                                   is_trained=False, source=SOURCE_FRESH)
                logger.info("Created new untrained %s model", name)
            except Exception as e:
                logger.error("Error initializing %s model: %s", name, e, exc_info=True)
                entry = ModelEntry(name, None, error=str(e))

        with self._lock:
            self._entries[name] = entry
        return entry

    def get(self, name: str) -> Optional[ModelEntry]:
        with self._lock:
            return self._entries.get(name)

    def require(self, name: str) -> ModelEntry:
        """
        Entry for name with a usable model.

        Raises:
            ModelUnavailableError: Model never loaded or marked unavailable
        """
        entry = self.get(name)
        if entry is None:
            raise ModelUnavailableError(name, "not initialized")
        if entry.model is None:
            raise ModelUnavailableError(name, entry.error)
        return entry

    def swap(self, name: str, model: nn.Module, is_trained: bool = True) -> ModelEntry:
        """Atomically replace the served instance of name"""
        entry = ModelEntry(name, self._prepare(model), is_trained=is_trained, source=SOURCE_TRAINED)
        with self._lock:
            self._entries[name] = entry
        logger.info("Swapped in new %s model", name)
        return entry

    def mark_unavailable(self, name: str, reason: str) -> None:
        with self._lock:
            self._entries[name] = ModelEntry(name, None, error=reason)
        logger.warning("%s model marked unavailable: %s", name, reason)

    def persist(self, name: str) -> bool:
        """
        Save the served instance of name to the store.

        Returns:
            True when the upload succeeded; failures are logged
        """
        entry = self.require(name)
        try:
            self.store.upload(artifact_key(name), model_to_document(name, entry.model))
        except ArtifactStoreError as e:
            logger.error("Error saving %s model: %s", name, e)
            return False
        logger.info("%s model saved to storage", name)
        return True

    def status(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            entries = dict(self._entries)
        return {
            name: {
                'available': entry.available,
                'trained': entry.is_trained,
                'source': entry.source,
                'error': entry.error,
            }
            for name, entry in entries.items()
        }

    def _prepare(self, model: nn.Module) -> nn.Module:
        # Served models never train in place
        return model.to(self.config.device).eval()
