from .config import (
    SETTINGS_FILENAME,
    RunConfig,
    RunConfigError,
    RunConfigErrorCode,
    RunConfigErrorDetail,
    build_run_config_error,
)
from .run import EXIT_ERRORS, EXIT_OK, EXIT_VIOLATIONS, RunResult, run_wcnt

__all__ = [
    "EXIT_ERRORS",
    "EXIT_OK",
    "EXIT_VIOLATIONS",
    "SETTINGS_FILENAME",
    "RunConfig",
    "RunConfigError",
    "RunConfigErrorCode",
    "RunConfigErrorDetail",
    "RunResult",
    "build_run_config_error",
    "run_wcnt",
]
