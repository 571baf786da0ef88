"""Deterministic feature-hashing embedder.

Maps a text to a fixed-size vector without any model or network call:
every lowercased word and every character trigram of each word is hashed
with SHA-256 into a signed bucket, then the vector is L2-normalised.
Texts sharing vocabulary land close together, and the same text always
yields a bit-identical vector, which makes this provider the default for
offline use and for tests.
"""

from __future__ import annotations

import hashlib
import re

import numpy as np
import structlog

from klay.config.settings import Settings
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.utils.similarity import l2_normalize

logger = structlog.get_logger(logger_name=__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

# Whole words carry more signal than their trigrams.
_WORD_WEIGHT = 1.0
_TRIGRAM_WEIGHT = 0.5


class HashEmbeddingProvider(IEmbeddingProvider):
    strategy_id = "hash"
    version = 1

    def __init__(self, settings: Settings) -> None:
        self._dimension = settings.embedding_dimensions

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors = [self._embed_one(text) for text in texts]
        logger.debug("hash_embedding_batch", batch_size=len(texts), dimensions=self._dimension)
        return vectors

    def _embed_one(self, text: str) -> list[float]:
        vector = np.zeros(self._dimension, dtype=np.float64)
        for token in _TOKEN_RE.findall(text.lower()):
            self._add_feature(vector, f"w:{token}", _WORD_WEIGHT)
            padded = f" {token} "
            for i in range(len(padded) - 2):
                self._add_feature(vector, f"c:{padded[i : i + 3]}", _TRIGRAM_WEIGHT)
        return l2_normalize(vector)

    def _add_feature(self, vector: np.ndarray, feature: str, weight: float) -> None:
        digest = hashlib.sha256(feature.encode("utf-8")).digest()
        bucket = int.from_bytes(digest[:8], "big") % self._dimension
        sign = 1.0 if digest[8] & 1 == 0 else -1.0
        vector[bucket] += sign * weight

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"hash-{self._dimension}"

    def is_available(self) -> bool:
        return True
