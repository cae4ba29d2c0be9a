#!/usr/bin/env python3

import logging
import sys

from apply import execute, report
from config_loader import RunConfig
from errors import ConfigurationError, GitHubAPIError
from utils import setup_logging
from workflow_utils import set_failed, set_github_output

def main(env=None):
    """
    Entry point for the GitHub Action.

    Reads the ``config-path``, ``dry-run`` and ``org`` inputs from the
    environment (falling back to the repository owner for the
    organization) and runs one team sync.

    Returns:
        int: Process exit code
    """
    setup_logging("team_sync", log_to_file=False)

    logging.info("=== Starting GitHub Team Sync ===")

    config = RunConfig.from_env(env)

    try:
        result = execute(config)
    except (ConfigurationError, GitHubAPIError) as e:
        logging.error(f"Team sync failed: {e}")
        partial = getattr(e, "result", None)
        if partial is not None:
            report(partial)
        else:
            set_github_output("sync_status", "failed")
        set_failed(e)
        return 1

    report(result)

    logging.info("✅ Team sync completed")
    return 0

if __name__ == "__main__":
    sys.exit(main())
