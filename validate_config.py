#!/usr/bin/env python3
"""Validate fleet config YAML files against the schema."""
import os
import sys
from pathlib import Path

from backend.config import load_schema, validate_config_file


def main(argv=None):
    """Validate the given config files, or $FLEET_CONFIG / config.yaml."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        args = [os.environ.get("FLEET_CONFIG") or "config.yaml"]

    schema = load_schema()
    all_valid = True
    for name in args:
        filepath = Path(name)
        if not filepath.exists():
            print(f"FAIL: {filepath.name}")
            print(f"  Error: file not found: {filepath}")
            all_valid = False
            continue

        errors = validate_config_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
