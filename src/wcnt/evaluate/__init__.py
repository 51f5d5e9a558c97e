from .evaluator import Evaluation, LimitPair, evaluate_limits
from .verdicts import Verdict, verdict_sort_key

__all__ = [
    "Evaluation",
    "LimitPair",
    "Verdict",
    "evaluate_limits",
    "verdict_sort_key",
]
