"""OncoLite: a small multi-cancer image classifier with PDF reporting."""

from .classifier import CancerClassifier
from .config import OncoLiteConfig
from .ranking import RankedResult, Ranking, argmax_result, rank, top_k
from .session import Session
from .taxonomy import CLASS_LABELS

__version__ = "0.1.0"
__all__ = [
    "CancerClassifier",
    "OncoLiteConfig",
    "RankedResult",
    "Ranking",
    "Session",
    "CLASS_LABELS",
    "argmax_result",
    "rank",
    "top_k",
]
