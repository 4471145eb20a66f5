"""
Vocabulary cache - reuse classifications across generation runs.

Classifying a 150k-token vocabulary takes a noticeable amount of time, and the
result depends only on the vocabulary. A VocabularyCache is an explicit arena
owned by whoever owns the backend (usually a StructuredGenerator); it is
passed into each run instead of living in module-level state, so its lifetime
and invalidation stay visible.

Cache Keys:
    ``backend.vocabulary_key()`` -> (vocab_size, end tokens, tokenizer name)
    Backends without a ``vocabulary_id`` have no such key; their entries are
    held per backend instance (weakly, so they go away with the backend) and
    are never shared with another backend.

Optional on-disk persistence (only for backends with a stable
``vocabulary_id``):
    <cache_dir>/
    ├── {hash1}.pkl
    ├── {hash2}.pkl
    └── metadata.json     # hit/miss/save counters

Usage:
    ```python
    from guided_json.decoding import VocabularyCache

    cache = VocabularyCache()
    vocabulary = cache.get_or_classify(backend)   # classifies (slow)
    vocabulary = cache.get_or_classify(backend)   # memory hit (fast)

    print(cache.get_stats()["hit_rate"])
    ```
"""

import dataclasses
import hashlib
import json
import logging
import pickle
import weakref
from pathlib import Path
from typing import Any, Dict, Hashable, Optional

from guided_json.decoding.vocabulary import VocabularyClassification, classify_vocabulary

logger = logging.getLogger(__name__)


class VocabularyCache:
    """
    In-memory (optionally disk-backed) store of vocabulary classifications.

    Attributes:
        cache_dir: Directory for persisted classifications (None = memory only)
        entries: Classifications keyed by vocabulary key (named backends)
        instance_entries: Classifications of unnamed backends, weakly keyed
            by the backend object
    """

    def __init__(self, cache_dir: Optional[Path] = None):
        """
        Initialize the cache.

        Args:
            cache_dir: Where to persist classifications; None keeps them in
                memory for the lifetime of this object only
        """
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.entries: Dict[Hashable, VocabularyClassification] = {}
        self.instance_entries = weakref.WeakKeyDictionary()
        self.metadata = self._load_metadata()

        if self.cache_dir is not None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

        logger.debug(f"VocabularyCache initialized (cache_dir={self.cache_dir})")

    def get_or_classify(self, backend: Any) -> VocabularyClassification:
        """
        Return the classification for ``backend``'s vocabulary.

        Args:
            backend: TokenBackend to classify

        Returns:
            VocabularyClassification: Cached or freshly computed sets

        Raises:
            InvalidVocabSize, InvalidQuoteToken: From classification
        """
        key = backend.vocabulary_key()
        if key is None:
            return self._get_or_classify_instance(backend)

        vocabulary = self.entries.get(key)
        if vocabulary is not None:
            self._record('hits')
            logger.debug(f"Vocabulary cache hit for {key[:2]}")
            return vocabulary

        vocabulary = self._load_from_disk(backend)
        if vocabulary is not None:
            self.entries[key] = vocabulary
            self._record('hits')
            return vocabulary

        self._record('misses')
        vocabulary = classify_vocabulary(backend)
        self.entries[key] = vocabulary
        self._save_to_disk(backend, vocabulary)
        return vocabulary

    def _get_or_classify_instance(self, backend: Any) -> VocabularyClassification:
        vocabulary = self.instance_entries.get(backend)
        if vocabulary is not None:
            self._record('hits')
            logger.debug(f"Vocabulary cache hit for {backend!r}")
            return vocabulary

        self._record('misses')
        vocabulary = classify_vocabulary(backend)
        self.instance_entries[backend] = vocabulary
        return vocabulary

    def _disk_path(self, backend: Any) -> Optional[Path]:
        if self.cache_dir is None or backend.vocabulary_id is None:
            return None
        key_str = json.dumps(
            [backend.vocabulary_id, backend.vocab_size, sorted(backend.end_tokens)]
        )
        digest = hashlib.sha256(key_str.encode()).hexdigest()
        return self.cache_dir / f"{digest}.pkl"

    def _load_from_disk(self, backend: Any) -> Optional[VocabularyClassification]:
        path = self._disk_path(backend)
        if path is None or not path.exists():
            return None

        try:
            with open(path, 'rb') as f:
                vocabulary = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError) as e:
            logger.warning(f"Failed to load cached vocabulary from {path}: {e}")
            return None

        if not isinstance(vocabulary, VocabularyClassification) or not all(
            hasattr(vocabulary, field.name) for field in dataclasses.fields(VocabularyClassification)
        ):
            logger.warning(f"Ignoring unexpected cache entry at {path}")
            return None

        logger.info(f"Loaded vocabulary classification from {path}")
        return vocabulary

    def _save_to_disk(self, backend: Any, vocabulary: VocabularyClassification) -> None:
        path = self._disk_path(backend)
        if path is None:
            return

        try:
            with open(path, 'wb') as f:
                pickle.dump(vocabulary, f, protocol=pickle.HIGHEST_PROTOCOL)
        except OSError as e:
            logger.warning(f"Failed to save vocabulary classification: {e}")
            return

        self._record('saves')
        logger.info(f"Saved vocabulary classification to {path}")

    @property
    def metadata_path(self) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        return self.cache_dir / "metadata.json"

    def _load_metadata(self) -> Dict[str, int]:
        path = self.metadata_path
        if path is not None and path.exists():
            try:
                with open(path) as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load cache metadata: {e}")

        return {'hits': 0, 'misses': 0, 'saves': 0}

    def _record(self, counter: str) -> None:
        self.metadata[counter] = self.metadata.get(counter, 0) + 1

        path = self.metadata_path
        if path is None:
            return
        try:
            with open(path, 'w') as f:
                json.dump(self.metadata, f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save cache metadata: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """
        Cache statistics.

        Example:
            ```python
            stats = cache.get_stats()
            print(f"Hit rate: {stats['hit_rate']:.1%}")
            ```
        """
        hits = self.metadata.get('hits', 0)
        misses = self.metadata.get('misses', 0)
        total = hits + misses

        return {
            'cache_dir': str(self.cache_dir) if self.cache_dir else None,
            'num_entries': len(self),
            'hits': hits,
            'misses': misses,
            'saves': self.metadata.get('saves', 0),
            'hit_rate': hits / total if total > 0 else 0,
        }

    def clear(self) -> None:
        """Drop all in-memory entries and any persisted classifications."""
        self.entries.clear()
        self.instance_entries.clear()

        if self.cache_dir is not None:
            for path in self.cache_dir.glob("*.pkl"):
                path.unlink()
            logger.info(f"Cleared vocabulary cache directory: {self.cache_dir}")

        self.metadata = {'hits': 0, 'misses': 0, 'saves': 0}

    def __len__(self) -> int:
        return len(self.entries) + len(self.instance_entries)

    def __repr__(self) -> str:
        return f"VocabularyCache(entries={len(self)}, cache_dir={self.cache_dir})"
