"""Input validation for CLI arguments."""
import sys
from pathlib import Path
from typing import Optional

GEO_MODES = ("cleanup",)


def validate_geo_mode(mode: Optional[str]) -> None:
    """
    Validate the optional geo-lab positional argument.

    Only ``cleanup`` is accepted; omitting it provisions the lab.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if mode is None or mode in GEO_MODES:
        return

    print(f"Error: Unknown geo-lab mode '{mode}'", file=sys.stderr)
    print("\nUsage:", file=sys.stderr)
    print("  labkit geo-lab           provision the lab", file=sys.stderr)
    print("  labkit geo-lab cleanup   delete everything the lab created", file=sys.stderr)
    sys.exit(2)


def validate_config_file(path: Path) -> None:
    """
    Validate a config path given on the command line.

    Raises:
        SystemExit with code 2 if the path is missing or not a file
    """
    if not path.exists():
        print(f"Error: Config file does not exist: {path}", file=sys.stderr)
        sys.exit(2)

    if not path.is_file():
        print(f"Error: Path is not a file: {path}", file=sys.stderr)
        sys.exit(2)
