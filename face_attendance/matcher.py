"""Cosine-similarity matcher for attendance recognition.

The matcher compares a probe descriptor against a snapshot of enrolled
identities and picks the best candidate above a similarity threshold.
It holds no state besides its threshold and never touches the store.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from face_attendance.config import DEFAULT_MATCH_THRESHOLD
from face_attendance.interfaces import Identity, Match
from face_attendance.logging_config import get_logger
from face_attendance.utils import DescriptorLike, as_descriptor

logger = get_logger(__name__)


def validate_threshold(threshold: float) -> float:
    """Coerce a similarity threshold to float and check it is in [-1, 1].

    Raises:
        ValueError: If threshold is not in valid range.
    """
    threshold = float(threshold)
    if not -1.0 <= threshold <= 1.0:
        raise ValueError(f"Threshold must be in [-1, 1], got {threshold}")
    return threshold


def _scale_rows(values: np.ndarray) -> np.ndarray:
    # Divide each row by its largest magnitude so norms neither overflow
    # nor underflow; all-zero rows stay zero
    peaks = np.max(np.abs(values), axis=-1, keepdims=True)
    scaled = np.zeros_like(values, dtype=np.float64)
    np.divide(values, peaks, out=scaled, where=peaks > 0)
    return scaled


def cosine_similarities(probe: np.ndarray, descriptors: np.ndarray) -> np.ndarray:
    """Compute cosine similarity between a probe and a batch of descriptors.

    Cosine similarity is scale invariant, so the probe and every row are
    rescaled to a max-abs of 1 first. Any finite input gives a finite result.

    Args:
        probe: Probe descriptor, shape [D]
        descriptors: Candidate descriptors, shape [N, D]

    Returns:
        Similarities, shape [N], each in [-1, 1]. Rows where either norm is
        zero get 0.0.

    Example:
        >>> sims = cosine_similarities(np.array([1.0, 0.0]), np.eye(2))
        >>> sims.tolist()
        [1.0, 0.0]
    """
    probe = _scale_rows(np.asarray(probe, dtype=np.float64))
    descriptors = _scale_rows(np.asarray(descriptors, dtype=np.float64))

    norms = np.linalg.norm(descriptors, axis=1) * np.linalg.norm(probe)
    dots = descriptors @ probe

    similarities = np.zeros(len(descriptors), dtype=np.float64)
    np.divide(dots, norms, out=similarities, where=norms > 0)

    # Clamp to valid range (numerical stability)
    return np.clip(similarities, -1.0, 1.0)


class CosineMatcher:
    """Threshold-gated nearest-identity matcher using cosine similarity.

    Selection rule: a candidate wins only if its similarity strictly exceeds
    the threshold and strictly exceeds every candidate before it. Ties keep
    the earliest candidate, so results depend on snapshot order only.

    Attributes:
        threshold: Similarity a candidate must strictly exceed

    Example:
        >>> matcher = CosineMatcher(threshold=0.4)
        >>> result = matcher.match(probe, store.snapshot())
        >>> if result is not None:
        ...     print(f"{result.identity.name}: {result.similarity:.3f}")
    """

    def __init__(self, threshold: float = DEFAULT_MATCH_THRESHOLD):
        """Initialize matcher.

        Args:
            threshold: Similarity threshold in [-1, 1]

        Raises:
            ValueError: If threshold is not in valid range.
        """
        self.threshold = validate_threshold(threshold)

    def best(
        self,
        probe: DescriptorLike,
        candidates: Sequence[Identity],
    ) -> Optional[Match]:
        """Find the most similar identity regardless of the threshold.

        Candidates whose descriptor length differs from the probe are skipped.

        Args:
            probe: Probe descriptor, shape [D]
            candidates: Identities in deterministic (enrollment) order

        Returns:
            Match with the raw similarity, or None if no candidate has the
            probe's length.

        Raises:
            InvalidInputError: If the probe is empty or malformed.
        """
        probe = as_descriptor(probe)
        dim = probe.shape[0]

        comparable = [c for c in candidates if c.dimension == dim]
        skipped = len(candidates) - len(comparable)
        if skipped:
            logger.debug(f"Skipped {skipped} candidate(s) with descriptor length != {dim}")

        if not comparable:
            logger.debug("No comparable candidates")
            return None

        similarities = cosine_similarities(
            probe, np.stack([c.descriptor for c in comparable])
        )

        for candidate, similarity in zip(comparable, similarities):
            logger.debug(
                f"Similarity with {candidate.name} ({candidate.roll_number}): "
                f"{similarity:.3f}"
            )

        # argmax returns the first maximum, which keeps first-seen on ties
        best = int(np.argmax(similarities))
        return Match(identity=comparable[best], similarity=float(similarities[best]))

    def accepts(self, candidate: Optional[Match]) -> bool:
        """Check whether a candidate strictly exceeds the threshold."""
        return candidate is not None and candidate.similarity > self.threshold

    def match(
        self,
        probe: DescriptorLike,
        candidates: Sequence[Identity],
    ) -> Optional[Match]:
        """Find the best matching identity for a probe descriptor.

        Args:
            probe: Probe descriptor, shape [D]
            candidates: Identities in deterministic (enrollment) order

        Returns:
            Match with the raw similarity, or None if no candidate clears
            the threshold.

        Raises:
            InvalidInputError: If the probe is empty or malformed.
        """
        candidate = self.best(probe, candidates)
        if not self.accepts(candidate):
            if candidate is not None:
                logger.debug(
                    f"No match (best similarity={candidate.similarity:.3f}, "
                    f"threshold={self.threshold:.3f})"
                )
            return None
        return candidate

    def __repr__(self) -> str:
        """String representation."""
        return f"CosineMatcher(threshold={self.threshold:.2f})"
