from __future__ import annotations

import logging
from dataclasses import dataclass

from wcnt.aggregate import WarningAggregator
from wcnt.diagnostics import (
    DiagnosticEvent,
    build_diagnostic_event,
    has_error_diagnostics,
    unique_diagnostics,
)
from wcnt.evaluate import Evaluation, evaluate_limits
from wcnt.interning import StringInterner
from wcnt.limits import (
    LimitFileUpdate,
    LimitTreeResolver,
    canonical_path,
    plan_limit_updates,
    write_limit_file,
)
from wcnt.rules import RuleSet, load_rule_set
from wcnt.scan import LogScanner, discover_files

from .config import RunConfig, RunConfigErrorCode, build_run_config_error

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERRORS = 2


@dataclass(frozen=True, slots=True)
class RunResult:
    config: RunConfig
    rules: RuleSet
    interner: StringInterner
    evaluation: Evaluation
    updates: tuple[LimitFileUpdate, ...]
    diagnostics: tuple[DiagnosticEvent, ...]

    @property
    def violation_count(self) -> int:
        return len(self.evaluation.violations)

    @property
    def exit_code(self) -> int:
        if has_error_diagnostics(self.diagnostics):
            return EXIT_ERRORS
        if self.evaluation.violations:
            return EXIT_VIOLATIONS
        return EXIT_OK


def run_wcnt(config: RunConfig, *, interner: StringInterner | None = None) -> RunResult:
    """Scan, count and judge every warning below ``config.start_dir``.

    Rule set errors propagate as ``RuleSetError``; a start directory that does
    not exist raises ``RunConfigError``. Everything else is reported through
    diagnostics on the result.
    """
    if not config.start_dir.is_dir():
        raise build_run_config_error(
            RunConfigErrorCode.E_RUN_START_DIR_INVALID,
            f"start directory `{config.start_dir}` does not exist or is not a directory",
            witness=(str(config.start_dir),),
        )
    root = canonical_path(config.start_dir)
    interner = interner if interner is not None else StringInterner()

    rules = load_rule_set(config.settings_file, interner)
    kinds = rules.restricted_to(config.only_kinds)
    logger.info("loaded %d kind(s) from `%s`", len(rules), config.settings_file)

    resolver = LimitTreeResolver(
        root, rules, interner, limits_filename=config.limits_filename
    )
    discovered = discover_files(root, limits_filename=config.limits_filename)
    for limits_file in discovered.limits_files:
        resolver.resolve_directory(limits_file.parent)

    scanner = LogScanner(
        rules,
        interner,
        root=root,
        kinds=kinds,
        max_workers=config.max_workers,
        queue_size=config.queue_size,
    )
    aggregator = WarningAggregator(resolver, interner, kinds=kinds)
    logger.info(
        "scanning %d file(s) with %d worker(s)", len(discovered.candidates), scanner.max_workers
    )
    aggregator.consume(scanner.scan(discovered.candidates))

    evaluation = evaluate_limits(
        aggregator.counts(), resolver.locations(), rules, interner, kinds=kinds
    )

    written: list[LimitFileUpdate] = []
    rewrite_failures: list[DiagnosticEvent] = []
    if config.update_limits:
        planned = plan_limit_updates(
            evaluation, resolver.locations(), interner, kinds=kinds, prune=config.prune
        )
        for update in planned:
            try:
                write_limit_file(update, interner)
            except OSError as exc:
                rewrite_failures.append(_rewrite_failure(update, exc))
            else:
                written.append(update)
    updates = tuple(written)

    diagnostics = unique_diagnostics(
        [
            *discovered.diagnostics,
            *resolver.diagnostics(),
            *aggregator.diagnostics(),
            *evaluation.diagnostics,
            *rewrite_failures,
        ]
    )
    logger.info(
        "%d verdict(s), %d violation(s), %d limits file(s) updated",
        len(evaluation.verdicts),
        len(evaluation.violations),
        len(updates),
    )
    return RunResult(
        config=config,
        rules=rules,
        interner=interner,
        evaluation=evaluation,
        updates=updates,
        diagnostics=tuple(diagnostics),
    )


def _rewrite_failure(update: LimitFileUpdate, exc: OSError) -> DiagnosticEvent:
    source = str(update.path)
    logger.error("could not write `%s`: %s", source, exc)
    return build_diagnostic_event(
        code="E_LIMITS_REWRITE_FAILED",
        message=f"could not write `{source}`: {exc.strerror or exc}; its limits are unchanged",
        path=source,
        witness={"error_type": type(exc).__name__},
    )
