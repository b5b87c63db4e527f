#!/usr/bin/env python3
"""
Console output for Obsidize runs.

The pipeline never prints by itself; it hands its reports to a reporter.
ConsoleReporter prints them in the same plain style as the rest of the
tool. Any object with these methods can stand in (tests pass a recorder).
"""
import sys

from schemas import ItemOutcome, Plan, PlanAction, RunReport, ValidationReport


class ConsoleReporter:
    """Print-based reporter with normal, verbose and debug levels."""

    def __init__(self, verbose: bool = False, debug: bool = False, stream=None):
        self.verbose_enabled = verbose or debug
        self.debug_enabled = debug
        self.stream = stream

    def _print(self, message: str = ""):
        print(message, file=self.stream or sys.stdout)

    def info(self, message: str):
        self._print(message)

    def verbose(self, message: str):
        if self.verbose_enabled:
            self._print(f"  {message}")

    def debug(self, message: str):
        if self.debug_enabled:
            self._print(f"  [debug] {message}")

    def warn(self, message: str):
        self._print(f"Warning: {message}")

    def error(self, message: str):
        print(f"Error: {message}", file=sys.stderr)

    # -------------------------------------------------------------------------
    # Report sections
    # -------------------------------------------------------------------------

    def validation_report(self, report: ValidationReport):
        self._print()
        self._print("Validation")
        self._print("-" * 30)
        for label, category in (("Conversations", report.conversations),
                                ("Projects", report.projects)):
            self._print(
                f"{label + ':':<16}{category.valid}/{category.total} valid "
                f"({category.success_rate:.1f}%)"
            )
            for issue in category.invalid_items[:10]:
                ident = issue.uuid or f"record #{issue.index}"
                self._print(f"  - {ident}: {issue.reason}")
            if len(category.invalid_items) > 10:
                self._print(f"  ... and {len(category.invalid_items) - 10} more")
            for repair in category.repairs:
                self.debug(f"repaired {repair.uuid}: {repair.note}")
        for load_error in report.load_errors:
            self.warn(load_error)

    def plan_summary(self, plan: Plan):
        counts = plan.counts()
        self._print()
        self._print("Plan")
        self._print("-" * 30)
        self._print(f"{'':<16}{'create':>8}{'update':>8}{'unchanged':>11}")
        for kind, label in (("conversation", "Conversations"), ("project", "Projects")):
            row = counts[kind]
            self._print(
                f"{label:<16}{row['create']:>8}{row['update']:>8}{row['unchanged']:>11}"
            )
        for entry in plan.entries:
            if entry.action != PlanAction.UNCHANGED:
                self.verbose(f"{entry.action.value:<7} {entry.kind} \"{entry.title[:50]}\" ({entry.reason})")

    def item_outcome(self, outcome: ItemOutcome, title: str = ""):
        label = f"\"{title[:50]}\"" if title else outcome.uuid
        if outcome.status == "failed":
            self.warn(f"{outcome.kind} {label} failed: {outcome.error}")
        elif outcome.status == "refreshed":
            self.verbose(f"refreshed {outcome.kind} {label} (no new content)")
        elif outcome.kind == "conversation" and outcome.action == PlanAction.UPDATE:
            self.verbose(f"appended {outcome.messages_appended} messages to {label}")
        elif outcome.kind == "project" and outcome.action == PlanAction.UPDATE:
            self.verbose(f"added {outcome.documents_added} documents to project {label}")
        else:
            self.verbose(f"{outcome.status} {outcome.kind} {label}")

    def run_summary(self, report: RunReport):
        self._print()
        self._print("=" * 50)
        self._print("DRY RUN COMPLETE (no files written)" if report.dry_run else "SYNC COMPLETE")
        self._print("=" * 50)

        counts = report.plan.counts()
        for kind, label in (("conversation", "Conversations"), ("project", "Projects")):
            row = counts[kind]
            self._print(
                f"{label + ':':<16}{row['create']} new, {row['update']} updated, "
                f"{row['unchanged']} unchanged"
            )
        if not report.dry_run:
            self._print(f"Files written:  {report.files_written}")
        if report.ignored_files:
            self._print(f"Ignored files:  {len(report.ignored_files)}")
            for ignored in report.ignored_files:
                self.debug(f"ignored {ignored.path}: {ignored.reason}")

        failures = report.failures
        if failures:
            self._print(f"\nFailures ({len(failures)}):")
            for outcome in failures[:10]:
                self._print(f"  - {outcome.kind} {outcome.uuid}: {outcome.error}")
            if len(failures) > 10:
                self._print(f"  ... and {len(failures) - 10} more")
