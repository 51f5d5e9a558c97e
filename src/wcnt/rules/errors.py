from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class RuleErrorCode(StrEnum):
    E_RULES_FILE_UNREADABLE = "E_RULES_FILE_UNREADABLE"
    E_RULES_TOML_INVALID = "E_RULES_TOML_INVALID"
    E_RULES_SCHEMA_INVALID = "E_RULES_SCHEMA_INVALID"
    E_RULES_REGEX_INVALID = "E_RULES_REGEX_INVALID"
    E_RULES_FILE_GROUP_MISSING = "E_RULES_FILE_GROUP_MISSING"
    E_RULES_KIND_UNKNOWN = "E_RULES_KIND_UNKNOWN"


@dataclass(frozen=True, slots=True)
class RuleErrorDetail:
    code: str
    message: str
    source: str
    witness: tuple[str, ...] | None = None


class RuleSetError(ValueError):
    def __init__(self, detail: RuleErrorDetail) -> None:
        super().__init__(f"{detail.code}: {detail.message}")
        self.detail = detail


def build_rule_error(
    code: RuleErrorCode,
    message: str,
    source: str,
    witness: tuple[str, ...] | None = None,
) -> RuleSetError:
    return RuleSetError(
        RuleErrorDetail(
            code=code.value,
            message=message,
            source=source,
            witness=witness,
        )
    )
