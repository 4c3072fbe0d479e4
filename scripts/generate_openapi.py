#!/usr/bin/env python3
"""Dump the OpenAPI document of the Questline API.

The app is imported, not started, so no database is needed.

Usage:
    python scripts/generate_openapi.py [output_path]
"""

import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
API_PATH = REPO_ROOT / "apps" / "api"
DEFAULT_OUTPUT = REPO_ROOT / "docs" / "openapi.json"

log = logging.getLogger("generate_openapi")


def main() -> int:
    """Write the schema and return a process exit code."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    output_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_OUTPUT

    sys.path.insert(0, str(API_PATH))
    try:
        from app import app
    except ImportError:
        log.exception("Could not import the API app. Install the project first: pip install -e .")
        return 1

    schema = app.openapi_schema
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(schema.to_schema(), f, indent=2)

    log.info("Wrote %s (%s %s, %d paths)", output_path, schema.info.title, schema.info.version, len(schema.paths or {}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
