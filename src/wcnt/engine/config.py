from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Final

from wcnt.limits import LIMITS_FILENAME
from wcnt.scan import DEFAULT_QUEUE_SIZE

SETTINGS_FILENAME: Final[str] = "Wcnt.toml"


class RunConfigErrorCode(StrEnum):
    E_RUN_START_DIR_INVALID = "E_RUN_START_DIR_INVALID"
    E_RUN_OPTIONS_INVALID = "E_RUN_OPTIONS_INVALID"


@dataclass(frozen=True, slots=True)
class RunConfigErrorDetail:
    code: str
    message: str
    witness: tuple[str, ...] | None = None


class RunConfigError(ValueError):
    def __init__(self, detail: RunConfigErrorDetail) -> None:
        super().__init__(f"{detail.code}: {detail.message}")
        self.detail = detail


def build_run_config_error(
    code: RunConfigErrorCode,
    message: str,
    witness: tuple[str, ...] | None = None,
) -> RunConfigError:
    return RunConfigError(RunConfigErrorDetail(code=code.value, message=message, witness=witness))


@dataclass(frozen=True, slots=True)
class RunConfig:
    start_dir: Path
    config_file: Path | None = None
    only_kinds: tuple[str, ...] | None = None
    update_limits: bool = False
    prune: bool = False
    verbosity: int = 0
    max_workers: int | None = None
    queue_size: int = DEFAULT_QUEUE_SIZE
    limits_filename: str = LIMITS_FILENAME

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_dir", Path(self.start_dir))
        if self.config_file is None:
            object.__setattr__(self, "config_file", self.start_dir / SETTINGS_FILENAME)
        else:
            object.__setattr__(self, "config_file", Path(self.config_file))
        if self.only_kinds is not None:
            object.__setattr__(self, "only_kinds", tuple(dict.fromkeys(self.only_kinds)))
        if self.prune and not self.update_limits:
            raise build_run_config_error(
                RunConfigErrorCode.E_RUN_OPTIONS_INVALID,
                "pruning limits requires updating limits",
                witness=("prune", "update_limits"),
            )
        if self.verbosity < 0:
            raise build_run_config_error(
                RunConfigErrorCode.E_RUN_OPTIONS_INVALID, "verbosity must be >= 0"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise build_run_config_error(
                RunConfigErrorCode.E_RUN_OPTIONS_INVALID, "max_workers must be >= 1"
            )
        if self.queue_size < 1:
            raise build_run_config_error(
                RunConfigErrorCode.E_RUN_OPTIONS_INVALID, "queue_size must be >= 1"
            )
        if not self.limits_filename:
            raise build_run_config_error(
                RunConfigErrorCode.E_RUN_OPTIONS_INVALID, "limits_filename must be non-empty"
            )

    @property
    def settings_file(self) -> Path:
        assert self.config_file is not None
        return self.config_file

    @property
    def is_verbose(self) -> bool:
        return self.verbosity > 0

    @property
    def is_very_verbose(self) -> bool:
        return self.verbosity > 1
