#!/usr/bin/env python3

import json
import os

def set_github_output(name, value):
    """
    Set a GitHub Actions output variable.
    Works with both the legacy ::set-output and the new $GITHUB_OUTPUT file approach.

    Args:
        name (str): Name of the output variable
        value (any): Value to set (will be converted to string or JSON)
    """
    if not isinstance(value, str):
        value = json.dumps(value)

    github_output = os.environ.get('GITHUB_OUTPUT')
    if github_output:
        with open(github_output, 'a') as f:
            f.write(f"{name}={value}\n")
    else:
        print(f"::set-output name={name}::{value}")

def append_step_summary(markdown):
    """Append markdown to the job summary when running inside Actions."""
    summary_file = os.environ.get('GITHUB_STEP_SUMMARY')
    if not summary_file:
        return False
    with open(summary_file, 'a') as f:
        f.write(markdown + "\n")
    return True

def set_failed(message):
    """Emit an error annotation, the Actions way of failing a step."""
    first_line = str(message).splitlines()[0] if str(message) else "failed"
    print(f"::error::{first_line}")
