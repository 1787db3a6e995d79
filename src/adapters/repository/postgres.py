"""
PostgreSQL repository adapter - Implements the repository protocols.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL. One PostgresUnitOfWork
holds one pooled connection and one open transaction at a time.

Concurrency Design - Check-Then-Act Protection:
-----------------------------------------------
The quota and uniqueness rules read state and then write. Two requests for
the same user could both pass the check before either writes.

1. **pg_advisory_xact_lock(user)**: taken by lock_user() before Generate,
   Redeem and InvalidateAll. Requests for the same user serialize until the
   holder commits or rolls back; the lock is released with the transaction.

2. **UNIQUE index on users.email**: defence in depth for the email rule.
   A unique violation on insert/update surfaces as the same
   BusinessRuleViolation the rule raises.
"""

import logging
from pathlib import Path
from types import TracebackType
from uuid import UUID

from psycopg import Connection
from psycopg.errors import UniqueViolation
from psycopg.pq import TransactionStatus
from psycopg_pool import ConnectionPool

from src.application.unit_of_work import AbstractUnitOfWork
from src.domain.exceptions import BusinessRuleViolation, ChallengeNotFound, UserNotFound
from src.domain.ports import EventBus
from src.domain.rules import EMAIL_UNIQUE_RULE_CODE
from src.domain.security import SecurityChallenge, SecurityCode
from src.domain.user import User
from src.domain.values import Code, CodeStatus, Email, HashedPassword, Purpose, Username

logger = logging.getLogger(__name__)

_OPEN_TRANSACTION = (TransactionStatus.INTRANS, TransactionStatus.INERROR)


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, uow: "PostgresUnitOfWork", conn: Connection) -> None:
        self._uow = uow
        self._conn = conn
        self._loaded: dict[UUID, User] = {}

    def get(self, user_id: UUID) -> User:
        if user_id in self._loaded:
            return self._loaded[user_id]

        sql = """
            SELECT id, username, email, password_hash, created_at, updated_at,
                   logged_at, suspended_at, deleted_at
            FROM users
            WHERE id = %s
        """
        row = self._conn.execute(sql, (user_id,)).fetchone()
        if row is None:
            raise UserNotFound(f"User {user_id} not found")

        user = User(
            id=row[0],
            username=Username(row[1]),
            email=Email(row[2]),
            password=HashedPassword.from_hash(row[3]),
            created_at=row[4],
            updated_at=row[5],
            logged_at=row[6],
            suspended_at=row[7],
            deleted_at=row[8],
        )
        self._loaded[user_id] = user
        self._uow.track(user)
        return user

    def store(self, user: User) -> None:
        """
        Upsert the user row.

        Raises:
            BusinessRuleViolation: If another row already holds the email
        """
        self._uow.register(user)
        sql = """
            INSERT INTO users (id, username, email, password_hash, created_at, updated_at,
                               logged_at, suspended_at, deleted_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET username = EXCLUDED.username,
                email = EXCLUDED.email,
                password_hash = EXCLUDED.password_hash,
                updated_at = EXCLUDED.updated_at,
                logged_at = EXCLUDED.logged_at,
                suspended_at = EXCLUDED.suspended_at,
                deleted_at = EXCLUDED.deleted_at
        """
        params = (
            user.id,
            user.username.value,
            user.email.value,
            user.password.value,
            user.created_at,
            user.updated_at,
            user.logged_at,
            user.suspended_at,
            user.deleted_at,
        )
        try:
            self._conn.execute(sql, params)
        except UniqueViolation:
            raise BusinessRuleViolation("Email already registered", EMAIL_UNIQUE_RULE_CODE) from None
        self._loaded[user.id] = user

    def find_uuid_by_email(self, email: Email) -> UUID | None:
        row = self._conn.execute("SELECT id FROM users WHERE email = %s", (email.value,)).fetchone()
        return row[0] if row is not None else None

    def email_exists(self, email: Email) -> bool:
        row = self._conn.execute(
            "SELECT EXISTS (SELECT 1 FROM users WHERE email = %s)", (email.value,)
        ).fetchone()
        return bool(row[0])


class PostgresSecurityRepository:
    """
    Implements SecurityRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    A challenge is always loaded and stored together with all of its codes.
    """

    def __init__(self, uow: "PostgresUnitOfWork", conn: Connection) -> None:
        self._uow = uow
        self._conn = conn
        self._loaded: dict[UUID, SecurityChallenge] = {}

    def get(self, challenge_id: UUID) -> SecurityChallenge:
        if challenge_id in self._loaded:
            return self._loaded[challenge_id]

        challenge_sql = """
            SELECT id, user_id, purpose, created_at, expires_at, invalidated_at
            FROM security_challenges
            WHERE id = %s
        """
        codes_sql = """
            SELECT id, code, status, used_at
            FROM security_codes
            WHERE challenge_id = %s
            ORDER BY position
        """
        row = self._conn.execute(challenge_sql, (challenge_id,)).fetchone()
        if row is None:
            raise ChallengeNotFound(f"Security challenge {challenge_id} not found")

        codes = [
            SecurityCode(id=code_id, code=Code(value), status=CodeStatus(status), used_at=used_at)
            for code_id, value, status, used_at in self._conn.execute(codes_sql, (challenge_id,))
        ]
        challenge = SecurityChallenge(
            id=row[0],
            user_id=row[1],
            purpose=Purpose(row[2]),
            created_at=row[3],
            expires_at=row[4],
            invalidated_at=row[5],
            codes=codes,
        )
        self._loaded[challenge_id] = challenge
        self._uow.track(challenge)
        for code in challenge.codes:
            self._uow.track(code)
        return challenge

    def store(self, challenge: SecurityChallenge) -> None:
        self._uow.register(challenge)
        for code in challenge.codes:
            self._uow.register(code)

        challenge_sql = """
            INSERT INTO security_challenges (id, user_id, purpose, created_at, expires_at, invalidated_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET invalidated_at = EXCLUDED.invalidated_at
        """
        code_sql = """
            INSERT INTO security_codes (id, challenge_id, position, code, status, used_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET status = EXCLUDED.status,
                used_at = EXCLUDED.used_at
        """
        self._conn.execute(
            challenge_sql,
            (
                challenge.id,
                challenge.user_id,
                challenge.purpose.value,
                challenge.created_at,
                challenge.expires_at,
                challenge.invalidated_at,
            ),
        )
        with self._conn.cursor() as cursor:
            cursor.executemany(
                code_sql,
                [
                    (code.id, challenge.id, position, code.code.value, code.status.value, code.used_at)
                    for position, code in enumerate(challenge.codes)
                ],
            )
        self._loaded[challenge.id] = challenge

    def count_active_challenges(self, user_id: UUID) -> int:
        sql = """
            SELECT COUNT(*) FROM security_challenges
            WHERE user_id = %s AND invalidated_at IS NULL
        """
        row = self._conn.execute(sql, (user_id,)).fetchone()
        return int(row[0])

    def find_non_invalidated_challenge(
        self, user_id: UUID, purpose: Purpose
    ) -> SecurityChallenge | None:
        sql = """
            SELECT id FROM security_challenges
            WHERE user_id = %s AND purpose = %s AND invalidated_at IS NULL
            ORDER BY created_at DESC
            LIMIT 1
        """
        row = self._conn.execute(sql, (user_id, purpose.value)).fetchone()
        return self.get(row[0]) if row is not None else None

    def find_code_by_value(self, user_id: UUID, code: str) -> SecurityCode | None:
        sql = """
            SELECT c.challenge_id, c.id
            FROM security_codes c
            JOIN security_challenges s ON s.id = c.challenge_id
            WHERE s.user_id = %s AND c.code = %s
            ORDER BY (c.status = 'used'), s.created_at DESC
            LIMIT 1
        """
        row = self._conn.execute(sql, (user_id, code)).fetchone()
        if row is None:
            return None
        challenge_id, code_id = row
        challenge = self.get(challenge_id)
        return next(security_code for security_code in challenge.codes if security_code.id == code_id)


class PostgresUnitOfWork(AbstractUnitOfWork):
    """
    Unit of work holding one pooled connection for its lifetime.

    Repository writes run inside the connection's open transaction;
    _commit() is the durability boundary.
    """

    def __init__(self, pool: ConnectionPool, event_bus: EventBus) -> None:
        super().__init__(event_bus)
        self._pool = pool
        self._conn: Connection | None = None

    def __enter__(self) -> "PostgresUnitOfWork":
        self._conn = self._pool.getconn()
        self._reset()
        super().__enter__()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
        finally:
            # Read-only work never commits; end its transaction before the pool gets it back
            if self._conn.info.transaction_status in _OPEN_TRANSACTION:
                self._conn.rollback()
            self._pool.putconn(self._conn)
            self._conn = None

    def _reset(self) -> None:
        self.users = PostgresUserRepository(self, self._conn)
        self.challenges = PostgresSecurityRepository(self, self._conn)

    def lock_user(self, user_id: UUID) -> None:
        self._conn.execute("SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))", (str(user_id),))

    def _commit(self) -> None:
        self._conn.commit()

    def _rollback(self) -> None:
        self._conn.rollback()
        self._reset()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
