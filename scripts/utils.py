#!/usr/bin/env python3

import json
import logging
from datetime import datetime

def setup_logging(prefix="team_sync", log_to_file=True):
    """
    Configure logging for scripts.

    Args:
        prefix (str): Prefix for the log file name
        log_to_file (bool): Also write a timestamped log file

    Returns:
        str: Path to the generated log file, or None
    """
    handlers = [logging.StreamHandler()]
    log_file = None
    if log_to_file:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"{prefix}_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )
    return log_file

def write_results_file(filename, results):
    """
    Write run results to a JSON file.

    Args:
        filename (str): Name of the output file
        results (dict): Serialized SyncResult

    Returns:
        bool: True if file was written successfully, False otherwise
    """
    try:
        with open(filename, "w") as f:
            json.dump(results, f, indent=2)
        logging.info(f"Wrote results to {filename}")
        return True
    except OSError as e:
        logging.error(f"Error writing results file: {e}")
        return False
