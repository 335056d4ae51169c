"""
ShopGate Console Entry Point.

Bootstraps the entire dependency graph via constructor injection and
runs one access-core flow from the terminal.  Every subsystem is wired
here; there are no module-level globals.

Usage::

    python main.py login
    python main.py admin-login
    python main.py register
    python main.py routes
"""

from __future__ import annotations

import argparse
import getpass
import sys
import traceback
from typing import Optional

from shopgate.auth import SessionManager
from shopgate.config import get_config
from shopgate.database import DatabaseManager
from shopgate.logger import StructuredLogger, get_logger
from shopgate.models.auth_models import AuthResult, ShopDetails
from shopgate.models.session_models import SessionResolution
from shopgate.services import ServiceContainer, create_backends, create_services
from shopgate.services.password_policy import strength_label, strength_score


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopgate",
        description="ShopGate access core: sign in and inspect reachable routes.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("login", help="Sign in as a shop owner, staff member or guest.")
    sub.add_parser("admin-login", help="Sign in as a platform administrator.")
    sub.add_parser("register", help="Register a new shop (pending approval).")
    sub.add_parser("routes", help="List the route table.")
    return parser


def _print_result(result: AuthResult) -> None:
    if result.success:
        print(f"OK  role={result.role} status={result.status} shop={result.shop_id or '-'}")
    else:
        print(f"ERR [{result.error_code}] {result.error_message}")


def _print_navigation(services: ServiceContainer) -> None:
    current = services["session"].current_session
    resolution: Optional[SessionResolution] = (
        SessionResolution.resolved(current) if current is not None else None
    )
    rules = services["route_guard"].navigation_for(resolution)
    print("Reachable routes:")
    for rule in rules:
        print(f"  {rule.path:<24} {rule.label}")


def _run_login(services: ServiceContainer, admin: bool) -> int:
    email = input("Email: ")
    password = getpass.getpass("Password: ")
    auth = services["auth_service"]
    result = auth.admin_login(email, password) if admin else auth.login(email, password)
    _print_result(result)
    if not result.success:
        return 1
    try:
        _print_navigation(services)
    finally:
        auth.logout()
    return 0


def _run_register(services: ServiceContainer) -> int:
    email = input("Email: ")
    shop_name = input("Shop name: ")
    owner_name = input("Owner name (optional): ") or None
    address = input("Address (optional): ") or None
    phone_number = input("Phone number (optional): ") or None
    password = getpass.getpass("Password: ")
    band = strength_label(strength_score(password))
    print(f"Password strength: {band.label}")
    confirmation = getpass.getpass("Confirm password: ")

    result = services["auth_service"].register_shop(
        email,
        password,
        confirmation,
        ShopDetails(
            shop_name=shop_name,
            owner_name=owner_name,
            address=address,
            phone_number=phone_number,
        ),
    )
    _print_result(result)
    if result.success:
        print("Your account has been submitted for administrator approval.")
    return 0 if result.success else 1


def _run_routes(services: ServiceContainer) -> int:
    for rule in services["route_registry"].rules():
        permission = rule.permission or ""
        print(f"{rule.path:<24} {rule.family:<6} {rule.access:<14} {permission}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point: wire dependencies and run one command."""
    args = _build_parser().parse_args(argv)

    logger: StructuredLogger = get_logger("main")
    logger.info("Starting ShopGate...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Backend connection (Supabase when configured, memory otherwise)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )
    store, credentials = create_backends(db, get_logger("adapters"))

    # ------------------------------------------------------------------
    # 3. Session Manager + Service Container (single composition root)
    # ------------------------------------------------------------------
    session = SessionManager()
    services = create_services(
        config=config,
        store=store,
        credentials=credentials,
        session=session,
    )

    # ------------------------------------------------------------------
    # 4. Dispatch
    # ------------------------------------------------------------------
    if args.command == "login":
        return _run_login(services, admin=False)
    if args.command == "admin-login":
        return _run_login(services, admin=True)
    if args.command == "register":
        return _run_register(services)
    return _run_routes(services)


def _report_fatal_error(exc: BaseException) -> None:
    detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    sys.stderr.write(f"FATAL: {type(exc).__name__}: {exc}\n{detail}")


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        _report_fatal_error(exc)
        sys.exit(1)
