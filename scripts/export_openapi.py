"""Write the FastAPI-generated OpenAPI document for the snapshot API to disk."""

import argparse
import json
from pathlib import Path

from main import app

DEFAULT_PATH = Path(__file__).resolve().parent.parent / "openapi.json"


def main():
    parser = argparse.ArgumentParser(description="Export the Health Snapshot OpenAPI document")
    parser.add_argument("--out", type=Path, default=DEFAULT_PATH)
    args = parser.parse_args()

    document = app.openapi()
    args.out.write_text(json.dumps(document, indent=2) + "\n")
    print(f"Wrote {args.out} ({len(document.get('paths', {}))} paths)")


if __name__ == "__main__":
    main()
