#!/usr/bin/env python3
"""
Obsidize runner - syncs a Claude data export into an Obsidian vault.

Runs validate -> index -> plan -> execute. The plan is computed completely
before anything is written; unchanged items are never touched.

Usage:
    python runner.py --input data-2024-01-15.zip            # Sync into the configured vault
    python runner.py -i export/ -o ~/Vault/Claude           # Sync into a specific folder
    python runner.py -i export.zip --dry-run                # Show the plan only
    python runner.py --status                               # Show vault status
"""
import argparse
import sys
import traceback
from datetime import datetime
from pathlib import Path

from config import get_output_dir, load_config, render_options, validate_config
from data_management import format_status, get_vault_status
from data_pack import load_data_pack
from errors import ObsidizeError
from merger import merge_conversation, merge_project
from obsidian_exporter import ensure_output_root, write_conversation, write_project
from parser import validate_export
from planner import build_plan
from reporting import ConsoleReporter
from schemas import (
    Conversation,
    FolderEntry,
    FolderIndex,
    ItemOutcome,
    PlanAction,
    PlanEntry,
    RenderOptions,
    RunReport,
)
from templates import OBSIDIZE_VERSION
from timestamps import later, utc_now
from vault_scanner import project_folders, scan_vault


def execute_entry(plan_entry: PlanEntry, item, existing: FolderEntry | None, vault_dir: Path,
                  now: datetime, options: RenderOptions, claimed: dict[str, str]) -> ItemOutcome:
    """
    Carry out one create/update plan entry.

    Filesystem errors are caught and returned as a failed outcome so the
    remaining items still run.
    """
    outcome = ItemOutcome(
        uuid=plan_entry.uuid,
        kind=plan_entry.kind,
        action=plan_entry.action,
        status="created" if plan_entry.action == PlanAction.CREATE else "updated",
    )
    # obsidized_at never trails the item's own updated_at
    obsidized_at = later(now, item.updated_at)

    try:
        if plan_entry.action == PlanAction.CREATE:
            if isinstance(item, Conversation):
                outcome.files_written = write_conversation(item, vault_dir, obsidized_at, options, existing)
                outcome.messages_appended = len(item.messages)
            else:
                outcome.files_written = write_project(item, vault_dir, obsidized_at, options, claimed, existing)
                outcome.documents_added = len(item.documents)
        elif isinstance(item, Conversation):
            written, appended = merge_conversation(item, existing, obsidized_at, options)
            outcome.files_written = written
            outcome.messages_appended = appended
            if not appended:
                outcome.status = "refreshed"
        else:
            written, added, rewritten = merge_project(item, existing, obsidized_at, options)
            outcome.files_written = written
            outcome.documents_added = added
            if not added and not rewritten:
                outcome.status = "refreshed"
    except (OSError, ValueError) as e:
        outcome.status = "failed"
        outcome.error = str(e)

    return outcome


def run_pipeline(conversations, projects, output_dir, *, dry_run: bool = False,
                 force_full: bool = False, options: RenderOptions = None,
                 clock=utc_now, reporter=None, load_errors: list[str] = None) -> RunReport:
    """
    Reconcile raw export collections against the vault at `output_dir`.

    Args:
        conversations: Raw conversations.json records (None if absent)
        projects: Raw projects.json records (None if absent)
        output_dir: Vault folder; created on the first real run
        dry_run: Stop after planning, touching nothing on disk
        force_full: Plan every item as create (notes are rewritten in place)
        options: Tags, links and labels for rendered notes
        clock: Returns "now"; called once per run
        reporter: Receives the reports for display

    Returns:
        RunReport with the validation report, the plan and per-item outcomes

    Raises:
        ExportStructureError: neither collection is usable
        OutputRootError: the vault folder cannot be created
    """
    options = options or RenderOptions()
    reporter = reporter or ConsoleReporter()
    vault_dir = Path(output_dir)

    validated = validate_export(conversations, projects, load_errors)
    reporter.validation_report(validated.report)

    index = scan_vault(vault_dir)
    reporter.verbose(f"Indexed {len(index.entries)} notes in {vault_dir} ({index.scanned} files scanned)")
    plan = build_plan(validated, FolderIndex() if force_full else index)
    reporter.plan_summary(plan)

    report = RunReport(
        validation=validated.report,
        plan=plan,
        ignored_files=index.ignored,
        dry_run=dry_run,
    )
    if dry_run:
        reporter.run_summary(report)
        return report

    ensure_output_root(vault_dir)
    now = clock()
    report.run_at = now
    claimed = project_folders(index)
    items = {(item.kind, item.uuid): item for item in validated.items}

    for plan_entry in plan.entries:
        if plan_entry.action == PlanAction.UNCHANGED:
            continue
        outcome = execute_entry(
            plan_entry,
            items[(plan_entry.kind, plan_entry.uuid)],
            index.get(plan_entry.uuid),
            vault_dir,
            now,
            options,
            claimed,
        )
        report.outcomes.append(outcome)
        reporter.item_outcome(outcome, plan_entry.title)

    reporter.run_summary(report)
    return report


def run(input_path, output_dir, *, dry_run: bool = False, force_full: bool = False,
        options: RenderOptions = None, clock=utc_now, reporter=None) -> RunReport:
    """Load a data pack (folder or archive) and sync it into the vault."""
    reporter = reporter or ConsoleReporter()
    reporter.info(f"Loading {input_path}...")
    with load_data_pack(input_path) as export:
        if export.temp_dir:
            reporter.verbose(f"Extracted archive to {export.temp_dir}")
        return run_pipeline(
            export.conversations,
            export.projects,
            output_dir,
            dry_run=dry_run,
            force_full=force_full,
            options=options,
            clock=clock,
            reporter=reporter,
            load_errors=export.errors,
        )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Sync a Claude data export into an Obsidian vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python runner.py -i data-2024-01-15.zip          Sync into the configured vault
  python runner.py -i export/ -o ~/Vault/Claude    Sync into a specific folder
  python runner.py -i export.zip --dry-run         Preview the plan
  python runner.py --status                        Show vault status
        """
    )

    parser.add_argument('-i', '--input', metavar='PATH',
                        help='Claude export folder or .zip/.dms archive')
    parser.add_argument('-o', '--output-dir', metavar='DIR',
                        help='Vault folder (default: config.json output_dir)')
    parser.add_argument('-t', '--tags', metavar='TAGS',
                        help='Comma-separated tags added to new notes')
    parser.add_argument('-l', '--links', metavar='LINKS',
                        help='Comma-separated note names linked from new notes')
    parser.add_argument('-n', '--dry-run', action='store_true',
                        help='Show what would change without writing')
    parser.add_argument('-f', '--force-full', action='store_true',
                        help='Re-render every item instead of syncing incrementally')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Print a line per changed item')
    parser.add_argument('--debug', action='store_true',
                        help='Print repairs, ignored files and tracebacks')
    parser.add_argument('--status', action='store_true',
                        help='Show vault status and exit')
    parser.add_argument('--version', action='version',
                        version=f'obsidize {OBSIDIZE_VERSION}')

    args = parser.parse_args(argv)
    config = load_config()

    is_valid, error = validate_config(config)
    if not is_valid:
        print(f"Configuration error: {error}")
        return 1

    output_dir = args.output_dir or get_output_dir(config)

    if args.status:
        try:
            status = get_vault_status(output_dir)
        except ObsidizeError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(format_status(status, output_dir))
        return 0

    if not args.input:
        parser.error("--input is required unless --status is given")

    debug = args.debug or config.get("debug", False)
    reporter = ConsoleReporter(verbose=args.verbose or config.get("verbose", False), debug=debug)
    options = render_options(config, args.tags, args.links)

    try:
        report = run(
            args.input,
            output_dir,
            dry_run=args.dry_run,
            force_full=args.force_full,
            options=options,
            reporter=reporter,
        )
    except ObsidizeError as e:
        reporter.error(str(e))
        if debug:
            traceback.print_exc()
        return 1

    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
