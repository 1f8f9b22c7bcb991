"""Check PixelProof environment configuration before starting the service.

Subcommands:

``check``
    Load ``AppSettings`` from an env file and report missing or malformed
    Figma OAuth settings and encryption key problems.
``record`` / ``verify``
    Store, then later compare, a SHA256 checksum of the env file so
    unexpected edits are noticed before a restart.
``generate-key``
    Print a fresh ``ENCRYPTION_KEY`` value.

Example usages::

    python -m scripts.check_env check --env-file .env
    python -m scripts.check_env record --env-file .env --hash-file .env.sha256
    python -m scripts.check_env verify --env-file .env --hash-file .env.sha256
    python -m scripts.check_env generate-key
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from pixelproof.core.config import AppSettings, FigmaSettings, SecuritySettings
from pixelproof.services.token_cipher import generate_encryption_key

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Build settings with every nested group reading the same env file."""
    return AppSettings(  # type: ignore[call-arg]
        _env_file=env_file,
        figma=FigmaSettings(_env_file=env_file),  # type: ignore[call-arg]
        security=SecuritySettings(_env_file=env_file),  # type: ignore[call-arg]
    )


def _report(settings: AppSettings) -> None:
    print(f"Environment: {settings.environment}")
    print(f"Database: {settings.database_path}")
    print(f"Figma client id: {settings.figma.client_id[:8]}...")
    print(f"Figma redirect URI: {settings.figma.redirect_uri}")
    if settings.security.encryption_key:
        print("Token encryption: enabled")
    else:
        print(
            "WARNING: ENCRYPTION_KEY is not set; OAuth tokens would be stored unencrypted. "
            "Run 'generate-key' to create one.",
            file=sys.stderr,
        )


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate PixelProof settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_file(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    check_parser = subparsers.add_parser("check", help="Validate settings only.")
    add_env_file(check_parser)

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        add_env_file(subparser)
        subparser.add_argument("--hash-file", required=True, type=Path)

    subparsers.add_parser("generate-key", help="Print a new ENCRYPTION_KEY value.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "generate-key":
        print(generate_encryption_key())
        return EXIT_OK

    env_file: Path = args.env_file
    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _report(settings)
    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
