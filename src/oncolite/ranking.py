"""Ranking of probability vectors into labelled results."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence

import numpy as np

from .constants import TOP_K
from .taxonomy import CLASS_LABELS, check_label_table

_ONE_DECIMAL = Decimal("0.1")


def _percent(score: float) -> Decimal:
    # Exact value of the float, ties rounded away from zero: 0.0625 -> 6.3
    return Decimal(score * 100).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RankedResult:
    """A class label paired with its score."""

    label: str
    index: int
    score: float

    @property
    def confidence(self) -> float:
        """Score as a percentage rounded half-up to one decimal."""
        return float(_percent(self.score))

    def format_main(self) -> str:
        return f"{self.label} (Confidence: {_percent(self.score)}%)"

    def format_entry(self) -> str:
        return f"{self.label} ({_percent(self.score)}%)"

    def as_dict(self) -> dict:
        return {"label": self.label, "index": self.index, "confidence": self.confidence}


@dataclass(frozen=True)
class Ranking:
    """Main prediction plus the ranked top-k list."""

    main: RankedResult
    top: List[RankedResult]

    @property
    def result_text(self) -> str:
        return format_result_text(self.main)

    @property
    def top_entries(self) -> List[str]:
        return [r.format_entry() for r in self.top]


def _as_vector(probs: Sequence[float], labels: Sequence[str]) -> np.ndarray:
    vector = np.asarray(probs, dtype=np.float64).reshape(-1)
    if vector.size == 0:
        raise ValueError("Probability vector is empty")
    check_label_table(vector.size, labels)
    return vector


def argmax_result(probs: Sequence[float], labels: Sequence[str] = CLASS_LABELS) -> RankedResult:
    """
    Return the highest-scoring class.

    When several classes share the maximum score only one of them is
    reported; which one is not specified.
    """
    vector = _as_vector(probs, labels)
    idx = int(np.argmax(vector))
    return RankedResult(label=labels[idx], index=idx, score=float(vector[idx]))


def top_k(probs: Sequence[float], labels: Sequence[str] = CLASS_LABELS, k: int = TOP_K) -> List[RankedResult]:
    """
    Return the ``k`` highest-scoring classes, best first.

    Equal scores keep label-table order and every class appears at most once.
    """
    if k < 1:
        raise ValueError(f"k must be positive, got {k}")
    vector = _as_vector(probs, labels)
    order = np.argsort(-vector, kind="stable")[:k]
    return [RankedResult(label=labels[i], index=int(i), score=float(vector[i])) for i in order]


def rank(probs: Sequence[float], labels: Sequence[str] = CLASS_LABELS, k: int = TOP_K) -> Ranking:
    """Compute the main prediction and the top-k list in one pass."""
    return Ranking(main=argmax_result(probs, labels), top=top_k(probs, labels, k))


def format_result_text(main: RankedResult) -> str:
    """Text shown in the result area after a successful prediction."""
    return f"Prediction: {main.format_main()}"
