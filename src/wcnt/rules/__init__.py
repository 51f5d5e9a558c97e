from .errors import RuleErrorCode, RuleErrorDetail, RuleSetError
from .loader import KindSettings, load_rule_set, parse_rule_document
from .models import Kind, RuleSet, glob_matches

__all__ = [
    "Kind",
    "KindSettings",
    "RuleErrorCode",
    "RuleErrorDetail",
    "RuleSet",
    "RuleSetError",
    "glob_matches",
    "load_rule_set",
    "parse_rule_document",
]
