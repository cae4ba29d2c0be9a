#!/usr/bin/env python3

import argparse
import json
import logging
import sys

from apply import execute
from config_loader import DEFAULT_CONFIG_PATH, RunConfig, load_config
from errors import ConfigurationError, GitHubAPIError
from formatters import format_plan_markdown, format_plan_terminal
from models import SyncPlan
from utils import setup_logging
from workflow_utils import append_step_summary


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Show what a team sync would change, without changing anything"
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the teams config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--org",
        default=None,
        help="Organization to compare against (default: GITHUB_REPOSITORY_OWNER)",
    )
    parser.add_argument(
        "--format",
        choices=["terminal", "markdown", "json"],
        default="terminal",
        help="Output format",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write output to file instead of stdout",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate the config file, don't query GitHub",
    )

    args = parser.parse_args(argv)

    setup_logging("plan", log_to_file=False)

    try:
        if args.validate_only:
            _, errors, warnings = load_config(args.config, validate=True)
            if errors:
                raise ConfigurationError(errors)
            for w in warnings:
                logging.warning(f"  - {w}")
            logging.info("Config validation passed.")
            return 0

        config = RunConfig.from_env(org=args.org, config_path=args.config, dry_run=True)
        result = execute(config)
    except ConfigurationError as e:
        logging.error("Validation errors found:")
        for err in e.errors:
            logging.error(f"  - {err}")
        return 1
    except GitHubAPIError as e:
        logging.error(f"GitHub API error: {e}")
        return 1

    _output(result.plan, args)

    if result.plan.has_changes:
        return 2
    return 0


def _output(plan: SyncPlan, args) -> None:
    formatters = {
        "terminal": format_plan_terminal,
        "markdown": format_plan_markdown,
        "json": lambda p: json.dumps(p.to_dict(), indent=2),
    }

    output = formatters[args.format](plan)

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        logging.info(f"Plan written to {args.output}")
    else:
        print(output)

    append_step_summary(format_plan_markdown(plan))


if __name__ == "__main__":
    sys.exit(main())
