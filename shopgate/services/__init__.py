"""
Business Logic Services Package.

Contains the access-core services: lockout tracking, role resolution,
route guarding, authentication, and account / staff administration.
Services depend on the Repository layer for data access and on the
shared ``SessionManager`` for the current session.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the application layer (commands / views) can
consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from shopgate.adapters.credential_store import CredentialStore, SupabaseCredentialStore
from shopgate.adapters.document_store import DocumentStore, SupabaseDocumentStore
from shopgate.adapters.memory import MemoryCredentialStore, MemoryDocumentStore
from shopgate.auth import SessionManager
from shopgate.config import AppConfig
from shopgate.database import DatabaseManager
from shopgate.logger import StructuredLogger, get_logger
from shopgate.repositories.account_repository import AccountRepository
from shopgate.repositories.guest_repository import GuestRepository
from shopgate.repositories.staff_repository import StaffRepository
from shopgate.routes import RouteRegistry, build_default_routes
from shopgate.services.account_admin import AccountAdminService
from shopgate.services.auth_service import AuthService
from shopgate.services.lockout import Clock, LockoutPolicy, LockoutTracker, utcnow
from shopgate.services.role_resolver import SessionRoleResolver
from shopgate.services.route_guard import RouteGuard
from shopgate.services.staff_service import StaffService


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Session & routing ---
    session: SessionManager
    route_registry: RouteRegistry
    role_resolver: SessionRoleResolver
    route_guard: RouteGuard

    # --- Authentication ---
    shop_lockout: LockoutTracker
    admin_lockout: LockoutTracker
    auth_service: AuthService

    # --- Administration ---
    account_admin_service: AccountAdminService
    staff_service: StaffService


def create_backends(
    db: DatabaseManager,
    logger: StructuredLogger,
) -> tuple[DocumentStore, CredentialStore]:
    """Pick the Supabase adapters when online, in-memory ones otherwise."""
    if db.is_online:
        return SupabaseDocumentStore(db, logger), SupabaseCredentialStore(db, logger)

    logger.warning(
        "Supabase unavailable; using in-memory stores. "
        "Data will not survive a restart.",
    )
    return MemoryDocumentStore(), MemoryCredentialStore()


def create_services(
    config: AppConfig,
    store: DocumentStore,
    credentials: CredentialStore,
    session: SessionManager,
    clock: Clock = utcnow,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup and passes the
    returned dict to views / commands as needed.

    Args:
        config: Application configuration (lockout policies, collections).
        store: Document store backing every repository.
        credentials: Credential store for sign-in and sign-up.
        session: The session holder shared by every component.
        clock: Source of the current UTC time.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    shop_repo = AccountRepository(store, config, logger, collection_key="shops")
    admin_repo = AccountRepository(store, config, logger, collection_key="admins")
    staff_repo = StaffRepository(store, config, logger)
    guest_repo = GuestRepository(store, config, logger)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    shop_lockout = LockoutTracker(
        repo=shop_repo,
        credentials=credentials,
        policy=LockoutPolicy(
            max_attempts=config.SHOP_MAX_FAILED_ATTEMPTS,
            lock_minutes=config.SHOP_LOCKOUT_MINUTES,
        ),
        logger=logger,
        clock=clock,
    )
    admin_lockout = LockoutTracker(
        repo=admin_repo,
        credentials=credentials,
        policy=LockoutPolicy(
            max_attempts=config.ADMIN_MAX_FAILED_ATTEMPTS,
            lock_minutes=config.ADMIN_LOCKOUT_MINUTES,
        ),
        logger=logger,
        clock=clock,
    )
    role_resolver = SessionRoleResolver(
        admin_repo=admin_repo,
        shop_repo=shop_repo,
        staff_repo=staff_repo,
        guest_repo=guest_repo,
        credentials=credentials,
        config=config,
        logger=logger,
    )
    route_registry = build_default_routes(get_logger("routes"))

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    route_guard = RouteGuard(
        routes=route_registry,
        resolver=role_resolver,
        logger=logger,
    )
    auth_service = AuthService(
        credentials=credentials,
        session=session,
        resolver=role_resolver,
        shop_lockout=shop_lockout,
        admin_lockout=admin_lockout,
        shop_repo=shop_repo,
        logger=logger,
        clock=clock,
    )
    account_admin_service = AccountAdminService(
        shop_repo=shop_repo,
        admin_repo=admin_repo,
        session=session,
        logger=logger,
        audit_store=store,
        audit_collection=config.collection("audit_log"),
    )
    staff_service = StaffService(
        staff_repo=staff_repo,
        guest_repo=guest_repo,
        credentials=credentials,
        session=session,
        config=config,
        logger=logger,
        audit_store=store,
        clock=clock,
    )

    return ServiceContainer(
        session=session,
        route_registry=route_registry,
        role_resolver=role_resolver,
        route_guard=route_guard,
        shop_lockout=shop_lockout,
        admin_lockout=admin_lockout,
        auth_service=auth_service,
        account_admin_service=account_admin_service,
        staff_service=staff_service,
    )
