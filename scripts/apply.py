#!/usr/bin/env python3

import argparse
import logging
import os
import sys

from audit_logger import AuditLogger
from config_loader import DEFAULT_CONFIG_PATH, RunConfig, load_config, parse_bool
from errors import ConfigurationError, GitHubAPIError
from formatters import (
    format_plan_terminal,
    format_result_terminal,
    format_step_summary,
)
from github_client import GitHubClient
from models import SyncResult
from reconciler import Reconciler
from utils import setup_logging, write_results_file
from workflow_utils import append_step_summary, set_github_output


def execute(config: RunConfig, client=None) -> SyncResult:
    """Load the config and run one reconciliation pass.

    Raises ConfigurationError or GitHubAPIError on fatal failures.
    """
    if not config.token and client is None:
        raise ConfigurationError("Missing GITHUB_TOKEN")
    if not config.org:
        raise ConfigurationError("Organization not set (use --org or the 'org' input)")

    logging.info(f"Using config: {config.config_path}")
    if config.dry_run:
        logging.info("Dry-run mode enabled. No changes will be made.")

    teams, errors, warnings = load_config(config.config_path, validate=True)
    if errors:
        raise ConfigurationError(errors)
    for w in warnings:
        logging.warning(f"  - {w}")

    client = client or GitHubClient(config.token, config.api_url)
    reconciler = Reconciler(client, config.org, dry_run=config.dry_run)
    return reconciler.run(teams)


def report(result: SyncResult, output_dir: str = ".") -> None:
    """Print, persist and publish the outcome of a run, aborted runs included."""
    print(format_plan_terminal(result.plan))
    print(format_result_terminal(result))

    audit = AuditLogger(log_dir=output_dir, prefix="sync_audit")
    audit.log_result(result)
    logging.info(audit.get_summary())

    write_results_file(os.path.join(output_dir, "sync_results.json"), result.to_dict())

    if result.error:
        status = "failed"
    else:
        status = "dry_run" if result.dry_run else "success"
    set_github_output("sync_status", status)
    set_github_output("changes", str(len(result.plan.actions)))
    set_github_output("warnings", str(result.warning_count))
    append_step_summary(format_step_summary(result))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Sync GitHub teams to match the teams config file"
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the teams config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--dry-run",
        nargs="?",
        const="true",
        default="false",
        help="Report changes without applying them (--dry-run or --dry-run=true|false)",
    )
    parser.add_argument(
        "--org",
        default=None,
        help="Organization to sync (default: GITHUB_REPOSITORY_OWNER)",
    )
    parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory for the results file and audit log",
    )

    args = parser.parse_args(argv)

    setup_logging("team_sync")

    config = RunConfig.from_env(
        org=args.org,
        config_path=args.config,
        dry_run=parse_bool(args.dry_run),
    )

    try:
        result = execute(config)
    except ConfigurationError as e:
        logging.error("Configuration error, aborting:")
        for err in e.errors:
            logging.error(f"  - {err}")
        set_github_output("sync_status", "failed")
        return 1
    except GitHubAPIError as e:
        logging.error(f"Aborting on GitHub API error: {e}")
        if e.result is not None:
            report(e.result, args.output_dir)
        else:
            set_github_output("sync_status", "failed")
        return 1

    report(result, args.output_dir)

    if result.warning_count:
        logging.warning(f"Sync completed with {result.warning_count} warning(s).")
    else:
        logging.info("Sync completed successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
