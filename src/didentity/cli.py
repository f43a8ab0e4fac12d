"""Command-line interface for didentity."""

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any, Optional

from . import __version__
from .config import Settings
from .credentials import create_presentation, verify_credential_or_presentation
from .did_key import did_from_private_key
from .errors import DIDentityError
from .key_provider import ROLE_HOLDER, ROLES, FileKeyProvider
from .service import CredentialService
from .store import SQLiteCredentialStore

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="didentity",
        description="Issue, present and verify did:key credentials",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--config", help="JSON settings file")
    parser.add_argument("--key-dir", help="Directory holding issuer/holder keys")
    parser.add_argument("--db", dest="db_path", help="SQLite database of issued credentials")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Did subcommand
    did_parser = subparsers.add_parser("did", help="Print the did:key of a role")
    did_parser.add_argument("role", choices=ROLES)

    # Issue subcommand
    issue_parser = subparsers.add_parser("issue", help="Issue and record a credential")
    issue_parser.add_argument("--name", "-n", required=True, help="Unique credential name")
    issue_parser.add_argument("--claim", "-c", required=True, help="Claim text")
    issue_parser.add_argument("--holder", required=True, help="Holder identifier")
    issue_parser.add_argument("--days", type=int, dest="validity_days", help="Validity in days")

    # List subcommand
    subparsers.add_parser("list", help="List issued credentials")

    # Present subcommand
    present_parser = subparsers.add_parser("present", help="Bundle credentials into a presentation")
    present_parser.add_argument("tokens", nargs="+", help="Credential tokens")

    # Verify subcommand
    verify_parser = subparsers.add_parser("verify", help="Verify a credential or presentation")
    verify_parser.add_argument("token", help="Credential or presentation token")
    verify_parser.add_argument(
        "--nested", action="store_true", help="Also verify credentials inside a presentation"
    )

    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Resolve settings from the config file or environment, then CLI flags."""
    settings = Settings.from_file(args.config) if args.config else Settings.from_env()
    return settings.override(
        key_dir=args.key_dir,
        db_path=args.db_path,
        log_level=args.log_level,
        validity_days=getattr(args, "validity_days", None),
    )


def _emit(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def run(args: argparse.Namespace, settings: Settings) -> int:
    """Run one subcommand and return its exit code."""
    keys = FileKeyProvider(settings.key_dir)

    if args.command == "did":
        _emit({"role": args.role, "did": did_from_private_key(keys.get_or_create_key(args.role))})
        return 0

    if args.command in ("issue", "list"):
        with SQLiteCredentialStore(settings.db_path) as store:
            service = CredentialService(keys, store, settings.validity)
            if args.command == "issue":
                _emit(service.issue(args.name, args.claim, args.holder).to_dict())
            else:
                _emit([record.to_dict() for record in service.list_credentials()])
        return 0

    # Presenting and verifying keep no records
    if args.command == "present":
        _emit({"vp": create_presentation(args.tokens, keys.get_or_create_key(ROLE_HOLDER))})
        return 0

    if args.command == "verify":
        outcome = verify_credential_or_presentation(args.token, verify_nested=args.nested)
        _emit(outcome.to_dict())
        return 0 if outcome.valid else 1

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args)
    except (OSError, ValueError) as e:
        parser.error(str(e))

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return run(args, settings)
    except (DIDentityError, ValueError) as e:
        logger.error("%s", e)
        _emit({"error": type(e).__name__, "message": str(e)})
        return 1


if __name__ == "__main__":
    sys.exit(main())
