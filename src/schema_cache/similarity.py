"""Cosine similarity and candidate ranking.

The linear-scan index used by the in-memory repository and the final
selection step shared by every repository live here. A specialised index
(Redis HNSW) may produce the candidates instead; :func:`select_best` then
applies the same ordering to whatever it returned.
"""

from collections.abc import Iterable, Sequence

import numpy as np

from schema_cache.entities import CacheEntryEntity, CacheMatchEntity


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, in [-1, 1].

    Zero vectors have similarity 0.0 to everything.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def rank_entries(
    query: Sequence[float],
    entries: Iterable[CacheEntryEntity],
    embedding_model: str,
    limit: int = 5,
) -> list[CacheMatchEntity]:
    """Score every comparable entry against ``query`` and keep the best ones.

    Entries from another embedding model or with another vector length are
    skipped.

    Args:
        query: The query embedding
        entries: Snapshot of stored entries
        embedding_model: Model that produced ``query``
        limit: Maximum number of candidates to return

    Returns:
        Candidates in selection order (best first)
    """
    dimension = len(query)
    candidates = [e for e in entries if e.is_comparable(embedding_model, dimension)]
    if not candidates or dimension == 0:
        return []

    matrix = np.asarray([e.embedding for e in candidates], dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, matrix @ q / norms, 0.0)
    scores = np.clip(scores, -1.0, 1.0)

    matches = [
        CacheMatchEntity(entry=entry, similarity=float(score))
        for entry, score in zip(candidates, scores)
    ]
    return order_matches(matches)[:limit]


def order_matches(matches: Iterable[CacheMatchEntity]) -> list[CacheMatchEntity]:
    """Sort candidates best first.

    Highest similarity wins; ties go to the most recently created entry,
    then to the greater id so the order is total.
    """
    return sorted(
        matches,
        key=lambda m: (m.similarity, m.entry.created_at, m.entry.id),
        reverse=True,
    )


def select_best(matches: Iterable[CacheMatchEntity]) -> CacheMatchEntity | None:
    """Pick the single best candidate, or None when there are none."""
    ordered = order_matches(matches)
    return ordered[0] if ordered else None
