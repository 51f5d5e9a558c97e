from __future__ import annotations

import logging
import re
import tomllib
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wcnt.interning import StringInterner

from .errors import RuleErrorCode, build_rule_error
from .models import Kind, RuleSet

logger = logging.getLogger(__name__)


class KindSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    regex: str = Field(min_length=1)
    files: tuple[str, ...]


def _validation_summary(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def _compile_pattern(name: str, regex: str, source: str) -> re.Pattern[str]:
    try:
        return re.compile(regex, re.MULTILINE)
    except re.error as exc:
        raise build_rule_error(
            RuleErrorCode.E_RULES_REGEX_INVALID,
            f"regex for kind '{name}' does not compile: {exc}",
            source,
            witness=(name, regex),
        ) from exc


def parse_rule_document(
    document: Mapping[str, object],
    interner: StringInterner,
    *,
    source: str = "<settings>",
) -> RuleSet:
    kinds: list[Kind] = []
    for name, raw_settings in document.items():
        if not isinstance(raw_settings, Mapping):
            raise build_rule_error(
                RuleErrorCode.E_RULES_SCHEMA_INVALID,
                f"kind '{name}' must be a table with `regex` and `files`",
                source,
                witness=(name,),
            )
        try:
            settings = KindSettings.model_validate(raw_settings)
        except ValidationError as exc:
            raise build_rule_error(
                RuleErrorCode.E_RULES_SCHEMA_INVALID,
                f"invalid settings for kind '{name}': {_validation_summary(exc)}",
                source,
                witness=(name,),
            ) from exc
        kind = Kind(
            name=name,
            handle=interner.intern(name),
            pattern=_compile_pattern(name, settings.regex, source),
            files=settings.files,
        )
        logger.debug(
            "kind %s: regex=%r files=[%s] categorizable=%s",
            name,
            settings.regex,
            ", ".join(settings.files),
            kind.categorizable,
        )
        kinds.append(kind)
    return RuleSet(tuple(kinds))


def load_rule_set(path: Path, interner: StringInterner) -> RuleSet:
    source = str(path)
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise build_rule_error(
            RuleErrorCode.E_RULES_FILE_UNREADABLE,
            f"could not read settings file: {exc.strerror or exc}",
            source,
        ) from exc
    try:
        document = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise build_rule_error(
            RuleErrorCode.E_RULES_TOML_INVALID,
            f"settings file is not valid TOML: {exc}",
            source,
        ) from exc
    return parse_rule_document(document, interner, source=source)
