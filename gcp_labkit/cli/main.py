"""CLI entrypoint for gcp-labkit."""
import sys
import argparse
import logging
from dataclasses import asdict
from pathlib import Path

import yaml

from gcp_labkit.common.domains.errors import LabkitError
from .validators import validate_config_file, validate_geo_mode

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        stream=sys.stderr
    )


def cmd_version(args):
    """Show version information."""
    print(f"gcp-labkit {VERSION}")


def cmd_vault_lab(args):
    """Bootstrap a Vault dev server and populate it."""
    from gcp_labkit.common.domains.config_loader import load_config
    from gcp_labkit.vault.workflows.bootstrap import run_vault_lab

    config = load_config()
    report = run_vault_lab(config.vault_lab)
    if not report.uploaded_uri:
        print(f"Secret saved locally to {report.artifact_path} (not uploaded)")


def cmd_geo_lab(args):
    """Provision or tear down the geo-routing lab."""
    from gcp_labkit.common.domains.config_loader import load_config

    validate_geo_mode(args.mode)
    config = load_config()

    if args.mode == "cleanup":
        from gcp_labkit.georouting.workflows.cleanup import run_geo_cleanup
        run_geo_cleanup(config.geo_routing)
        return

    from gcp_labkit.georouting.workflows.provision import run_geo_lab
    result = run_geo_lab(config.geo_routing)
    for line in result.instructions:
        print(line)


def cmd_config_set_path(args):
    """Set config file path preference."""
    from gcp_labkit.common.domains.preferences import set_preference

    config_path = Path(args.path).resolve()
    validate_config_file(config_path)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    from gcp_labkit.common.domains.config_loader import default_config_path
    from gcp_labkit.common.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
        return

    default_config = default_config_path()
    print(f"Config path: {default_config}")
    if default_config.exists():
        print("Source: default")
    else:
        print("Source: built-in defaults (no file at default location)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from gcp_labkit.common.domains.config_loader import default_config_path
    from gcp_labkit.common.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Write the built-in defaults to the default config location."""
    from gcp_labkit.common.domains.config_loader import default_config_path
    from gcp_labkit.common.domains.settings import LabkitConfig

    target = default_config_path()
    if target.exists() and not args.force:
        print(f"Error: {target} already exists (use --force to overwrite)", file=sys.stderr)
        sys.exit(1)

    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, 'w') as f:
        yaml.safe_dump(asdict(LabkitConfig()), f, sort_keys=False)
    print(f"Default config written to: {target}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labkit",
        description="gcp-labkit - automation for the Vault and Cloud DNS geo-routing labs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success (including runs where the upload was skipped)
  1 - Runtime error (no project, Vault unreachable, token rejected, create failed, etc.)
  2 - Usage error (invalid arguments)

Environment variables:
  GCP_PROJECT - GCP project ID (overrides gcloud config)

Configuration:
  Default location: ~/.config/gcp-labkit/config.yml (optional)
  Custom path: Set with 'labkit config set-path <path>'
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    subparsers.add_parser(
        "vault-lab",
        help="Bootstrap a Vault dev server with sample data",
        description="""
Install Vault if needed, start a dev server (or reuse a running one),
validate a root token, then make sure the kv mount, a sample secret,
userpass auth with a demo user, a policy and a transit key exist.
The secret value is saved to a local file and uploaded to a bucket in
the active project when one can be found.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    geo_parser = subparsers.add_parser(
        "geo-lab",
        help="Provision (or clean up) the Cloud DNS geo-routing lab",
    )
    geo_parser.add_argument(
        "mode",
        nargs="?",
        help="'cleanup' to delete all lab resources instead of creating them"
    )

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser("set-path", help="Set config file path")
    config_set_path_parser.add_argument("path", help="Path to config file")
    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")
    config_init_parser = config_subparsers.add_parser("init", help="Write default config file")
    config_init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors
        2 - Usage errors
    """
    _configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    handlers = {
        "version": cmd_version,
        "vault-lab": cmd_vault_lab,
        "geo-lab": cmd_geo_lab,
    }
    config_handlers = {
        "set-path": cmd_config_set_path,
        "show": cmd_config_show,
        "clear": cmd_config_clear,
        "init": cmd_config_init,
    }

    try:
        if args.command == "config":
            handler = config_handlers.get(args.config_command)
            if handler is None:
                print("Error: choose a config command: set-path, show, clear, init", file=sys.stderr)
                sys.exit(2)
            handler(args)
        else:
            handlers[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except LabkitError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
