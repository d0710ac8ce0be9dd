"""Command-line interface for the Messagely service."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

from messagely.config import Settings, load_settings
from messagely.credentials import CredentialStore
from messagely.database import Database
from messagely.directory import UserDirectory
from messagely.errors import DuplicateUserError

logger = logging.getLogger("messagely.main")

PASSWORD_MIN_LENGTH = 8


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Messagely service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the message database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from settings)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: from settings)",
    )
    serve_parser.add_argument("--config", default=None, help="Path to a YAML settings file")

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    admin_parser.add_argument("--config", default=None, help="Path to a YAML settings file")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_settings(config: str | None) -> Settings:
    return load_settings(Path(config).expanduser() if config else None)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(
    *,
    database: Database,
    settings: Settings,
    host: str | None,
    port: int | None,
) -> None:
    from messagely.service import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting messaging API on http://%s:%s", bind_host, bind_port)

    app = create_app(database=database, settings=settings, initialize_database=False)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


def _run_admin_cli(database: Database, settings: Settings) -> None:
    """Provide an interactive management console for administrators."""

    directory = UserDirectory(database)
    credentials = CredentialStore(database, bcrypt_rounds=settings.bcrypt_rounds)

    print("Messagely Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Exit")

            choice = input("Enter choice [1-3]: ").strip()

            if choice == "1":
                _list_users(directory)
            elif choice == "2":
                _add_user(credentials)
            elif choice == "3":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(directory: UserDirectory) -> None:
    users = directory.list_all()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'Username':<20}  {'Name':<32}  Phone")
    print("-" * 72)
    for user in users:
        name = f"{user.first_name} {user.last_name}"
        print(f"{user.username:<20}  {name:<32}  {user.phone}")


def _add_user(credentials: CredentialStore) -> None:
    print("\nCreate a new user (leave the username blank to cancel).")
    username = input("Username: ").strip()
    if not username:
        print("User creation cancelled.")
        return

    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    phone = input("Phone: ").strip()

    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.")
        return

    try:
        profile = credentials.register(username, password, first_name, last_name, phone)
    except (DuplicateUserError, ValueError) as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user {profile.username}: {profile.first_name} {profile.last_name}")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {PASSWORD_MIN_LENGTH} characters): ")
        if len(password) < PASSWORD_MIN_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _load_settings(getattr(args, "config", None))
    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(database=database, settings=settings, host=args.host, port=args.port)
    elif args.command == "admin":
        _run_admin_cli(database, settings)
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
