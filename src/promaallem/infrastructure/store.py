"""Marketplace persistence backed by SQLite.

Stores accounts, profiles, the service catalog and bookings.  sqlite3 is
blocking, so every call runs in a worker thread behind a connection lock and
the public API is ``async``.  Database errors surface as ``UpstreamFailure``.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import secrets
import sqlite3
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar

from loguru import logger

from promaallem.application.exceptions import UpstreamFailure, ValidationError
from promaallem.domain.models import (
    PROVIDER_ROLE,
    Identity,
    Profile,
    ProviderCandidate,
    ProviderSummary,
    ServiceCatalogEntry,
    ServiceRequest,
)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY REFERENCES accounts(id),
    full_name TEXT,
    role TEXT NOT NULL CHECK(role IN ('client', 'maallem')),
    phone TEXT,
    city TEXT,
    rating REAL,
    avatar_url TEXT,
    is_available BOOLEAN DEFAULT 1,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS services (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    base_price REAL
);

CREATE TABLE IF NOT EXISTS bookings (
    id TEXT PRIMARY KEY,
    client_id TEXT REFERENCES accounts(id),
    guest_name TEXT,
    guest_phone TEXT,
    maallem_id TEXT REFERENCES profiles(id),
    service_id INTEGER,
    status TEXT NOT NULL DEFAULT 'pending',
    is_emergency BOOLEAN DEFAULT 0,
    address TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    CHECK (client_id IS NOT NULL OR guest_phone IS NOT NULL)
);

CREATE INDEX IF NOT EXISTS idx_profiles_role ON profiles(role, is_available);
CREATE INDEX IF NOT EXISTS idx_bookings_client_id ON bookings(client_id);
"""

DEFAULT_SERVICES: tuple[ServiceCatalogEntry, ...] = (
    ServiceCatalogEntry(id=0, name="Plomberie", description="Fuites, robinets, canalisations", base_price=150),
    ServiceCatalogEntry(id=0, name="Électricité", description="Pannes, prises, tableaux", base_price=200),
    ServiceCatalogEntry(id=0, name="Serrurerie", description="Ouverture de porte, serrures", base_price=150),
    ServiceCatalogEntry(id=0, name="Peinture", description="Murs, plafonds, façades", base_price=300),
    ServiceCatalogEntry(id=0, name="Climatisation", description="Installation et entretien", base_price=350),
    ServiceCatalogEntry(id=0, name="Électroménager", description="Réparation d'appareils", base_price=200),
)

# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

_PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, *, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, _PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        _, iterations, salt_hex, digest_hex = encoded.split("$")
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode(), bytes.fromhex(salt_hex), int(iterations)
        )
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


def _utcnow() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SQLiteMarketplaceStore:
    """Async marketplace store over a single SQLite file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    async def connect(self) -> None:
        """Open (or create) the database and ensure the schema exists."""
        await asyncio.to_thread(self._connect)
        logger.info("Marketplace DB ready at {}", self.db_path)

    def _connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.conn.executescript(_SCHEMA_SQL)
        self.conn.commit()

    async def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    async def _run(self, fn: Callable[..., T], *args) -> T:
        """Run *fn* in a worker thread, holding the connection lock."""

        def call() -> T:
            with self._lock:
                return fn(*args)

        try:
            return await asyncio.to_thread(call)
        except sqlite3.Error as exc:
            logger.error("Store error in {}: {}", fn.__name__, exc)
            raise UpstreamFailure("Store request failed", details=str(exc)) from exc

    def _db(self) -> sqlite3.Connection:
        if self.conn is None:
            raise UpstreamFailure("Store is not connected")
        return self.conn

    # ------------------------------------------------------------------
    # Accounts & profiles
    # ------------------------------------------------------------------

    async def create_account(
        self,
        email: str,
        password: str,
        *,
        role: str,
        full_name: str | None = None,
        phone: str | None = None,
        city: str = "Casablanca",
        is_available: bool = True,
    ) -> Identity:
        """Insert the account and its profile in a single transaction."""
        profile = Profile(
            id=str(uuid.uuid4()),
            role=role,
            full_name=full_name,
            phone=phone,
            city=city,
            is_available=is_available,
        )
        return await self._run(self._create_account, email, password, profile)

    def _create_account(self, email: str, password: str, profile: Profile) -> Identity:
        conn = self._db()
        password_hash = hash_password(password)
        now = _utcnow()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO accounts (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (profile.id, email, password_hash, now),
                )
                conn.execute(
                    "INSERT INTO profiles (id, full_name, role, phone, city, rating, avatar_url, is_available, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        profile.id,
                        profile.full_name,
                        profile.role,
                        profile.phone,
                        profile.city,
                        profile.rating,
                        profile.avatar_url,
                        1 if profile.is_available else 0,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if "accounts.email" in str(exc):
                raise ValidationError("User already registered") from exc
            raise
        return Identity(id=profile.id, email=email)

    async def authenticate(self, email: str, password: str) -> Identity | None:
        return await self._run(self._authenticate, email, password)

    def _authenticate(self, email: str, password: str) -> Identity | None:
        row = self._db().execute("SELECT * FROM accounts WHERE email = ?", (email,)).fetchone()
        if row is None or not verify_password(password, row["password_hash"]):
            return None
        return Identity(id=row["id"], email=row["email"])

    async def get_profile(self, profile_id: str) -> Profile | None:
        row = await self._run(self._get_profile_row, profile_id)
        return self._row_to_profile(row) if row else None

    def _get_profile_row(self, profile_id: str) -> sqlite3.Row | None:
        return self._db().execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()

    # ------------------------------------------------------------------
    # Service catalog
    # ------------------------------------------------------------------

    async def seed_services(self, entries: Iterable[ServiceCatalogEntry] = DEFAULT_SERVICES) -> int:
        """Insert the catalog when the services table is empty.  Returns rows added."""
        return await self._run(self._seed_services, list(entries))

    def _seed_services(self, entries: list[ServiceCatalogEntry]) -> int:
        conn = self._db()
        (count,) = conn.execute("SELECT COUNT(*) FROM services").fetchone()
        if count:
            return 0
        conn.executemany(
            "INSERT INTO services (name, description, base_price) VALUES (?, ?, ?)",
            [(e.name, e.description, e.base_price) for e in entries],
        )
        conn.commit()
        logger.info("Seeded {} catalog services", len(entries))
        return len(entries)

    async def list_services(self) -> list[ServiceCatalogEntry]:
        rows = await self._run(self._service_rows)
        return [self._row_to_service(row) for row in rows]

    async def search_services(self, name_fragment: str) -> list[ServiceCatalogEntry]:
        """Services whose name contains *name_fragment*, ignoring case.

        Done in Python because SQLite's LIKE only folds ASCII ("É" vs "é").
        """
        needle = name_fragment.casefold()
        return [s for s in await self.list_services() if needle in s.name.casefold()]

    def _service_rows(self) -> list[sqlite3.Row]:
        return self._db().execute("SELECT * FROM services ORDER BY id").fetchall()

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def list_provider_candidates(self) -> list[ProviderCandidate]:
        rows = await self._run(self._provider_rows)
        return [
            ProviderCandidate(id=row["id"], is_available=bool(row["is_available"]), role=row["role"])
            for row in rows
        ]

    async def list_available_providers(self, city: str | None = None) -> list[ProviderSummary]:
        rows = await self._run(self._provider_rows)
        if city:
            needle = city.casefold()
            rows = [row for row in rows if needle in (row["city"] or "").casefold()]
        return [
            ProviderSummary(
                id=row["id"],
                full_name=row["full_name"],
                role=row["role"],
                city=row["city"],
                rating=row["rating"],
                avatar_url=row["avatar_url"],
            )
            for row in rows
        ]

    def _provider_rows(self) -> list[sqlite3.Row]:
        return self._db().execute(
            "SELECT * FROM profiles WHERE role = ? AND is_available = 1 ORDER BY created_at, rowid",
            (PROVIDER_ROLE,),
        ).fetchall()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    async def insert_booking(self, booking: ServiceRequest) -> ServiceRequest:
        saved = replace(booking, id=str(uuid.uuid4()), created_at=_utcnow())
        await self._run(self._insert_booking, saved)
        return saved

    def _insert_booking(self, booking: ServiceRequest) -> None:
        conn = self._db()
        conn.execute(
            "INSERT INTO bookings (id, client_id, guest_name, guest_phone, maallem_id, service_id, "
            "status, is_emergency, address, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                booking.id,
                booking.client_id,
                booking.guest_name,
                booking.guest_phone,
                booking.maallem_id,
                booking.service_id,
                booking.status,
                1 if booking.is_emergency else 0,
                booking.address,
                booking.created_at,
            ),
        )
        conn.commit()

    async def get_booking(self, booking_id: str) -> ServiceRequest | None:
        row = await self._run(self._get_booking_row, booking_id)
        if row is None:
            return None
        return ServiceRequest(
            id=row["id"],
            client_id=row["client_id"],
            guest_name=row["guest_name"],
            guest_phone=row["guest_phone"],
            maallem_id=row["maallem_id"],
            service_id=row["service_id"],
            status=row["status"],
            is_emergency=bool(row["is_emergency"]),
            address=row["address"],
            created_at=row["created_at"],
        )

    def _get_booking_row(self, booking_id: str) -> sqlite3.Row | None:
        return self._db().execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        return Profile(
            id=row["id"],
            role=row["role"],
            full_name=row["full_name"],
            phone=row["phone"],
            city=row["city"],
            rating=row["rating"],
            avatar_url=row["avatar_url"],
            is_available=bool(row["is_available"]),
        )

    @staticmethod
    def _row_to_service(row: sqlite3.Row) -> ServiceCatalogEntry:
        return ServiceCatalogEntry(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            base_price=row["base_price"],
        )
