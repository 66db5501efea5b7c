"""Process-wide connection pool.

The pool hands out one :class:`~dal.dialect.QueryConnection` per logical
operation. Liveness is checked lazily when an idle entry is reused; there is
no background heartbeat. ``acquire`` never waits for a free slot: it either
returns a connection or raises :class:`~dal.errors.PoolSaturatedError`.

Pool state is mutated under a single ``asyncio.Lock`` that is never held
across a network round trip. Slots are reserved under the lock first; the
connect, liveness probe or close then runs outside it.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    TypeVar,
)

from common.errors import GatewayError
from dal.dialect import Dialect, ErrorClass, QueryConnection
from dal.errors import (
    BackendQueryError,
    DatabaseConnectionError,
    PoolSaturatedError,
    RetryExhaustedError,
)

if TYPE_CHECKING:
    from common.config.settings import GatewaySettings

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2


@dataclass
class PoolEntry:
    """A pooled connection and its bookkeeping."""

    entry_id: str
    connection: QueryConnection
    created_at: float
    last_used_at: float
    in_use: bool = False


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time pool counters."""

    max_size: int
    total: int
    active: int
    idle: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "pool_size": self.max_size,
            "total_connections": self.total,
            "active_connections": self.active,
            "idle_connections": self.idle,
        }


class ConnectionPool:
    """Bounded, non-blocking pool of backend connections."""

    def __init__(
        self,
        dialect: Dialect,
        settings: "GatewaySettings",
        *,
        max_size: Optional[int] = None,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty pool.

        Args:
            dialect: Backend dialect used to open, probe and classify.
            settings: Connection settings passed to ``dialect.connect``.
            max_size: Maximum number of entries; defaults to ``settings.pool_size``.
            idle_timeout_seconds: Idle age reaped by :meth:`acquire` and :meth:`cleanup`; defaults to
                ``settings.idle_timeout_seconds``.
            clock: Monotonic time source.
        """
        self._dialect = dialect
        self._settings = settings
        self._max_size = max_size if max_size is not None else settings.pool_size
        if self._max_size < 1:
            raise ValueError(f"Pool max_size must be at least 1, got {self._max_size}.")
        self._idle_timeout = (
            idle_timeout_seconds
            if idle_timeout_seconds is not None
            else settings.idle_timeout_seconds
        )
        self._clock = clock
        self._entries: Dict[str, PoolEntry] = {}
        self._opening = 0
        self._lock = asyncio.Lock()

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def idle_timeout_seconds(self) -> float:
        return self._idle_timeout

    def __len__(self) -> int:
        return len(self._entries)

    async def acquire(self) -> QueryConnection:
        """Return a live connection marked in use.

        Idle entries past the idle timeout are reaped first. An idle entry is
        reserved and probed; a dead one is evicted and the scan repeats. With
        no idle entry a slot is reserved and a new connection opened.

        Raises:
            PoolSaturatedError: If every slot is in use or being opened.
            DatabaseConnectionError: If a new connection cannot be opened.
        """
        while True:
            async with self._lock:
                expired = self._pop_expired()
                entry = self._reserve_idle()
                saturated = False
                if entry is None:
                    if len(self._entries) + self._opening >= self._max_size:
                        saturated = True
                    else:
                        self._opening += 1
            await self._close_entries(expired, reason="idle")

            if entry is not None:
                try:
                    alive = await self._is_alive(entry)
                except asyncio.CancelledError:
                    async with self._lock:
                        self._entries.pop(entry.entry_id, None)
                    await self._close_entries([entry], reason="cancelled")
                    raise
                if alive:
                    entry.last_used_at = self._clock()
                    logger.debug("Reusing pooled connection", extra={"entry_id": entry.entry_id})
                    return entry.connection
                async with self._lock:
                    self._entries.pop(entry.entry_id, None)
                await self._close_entries([entry], reason="dead")
                continue

            if saturated:
                logger.warning(
                    "Connection pool saturated",
                    extra={"max_size": self._max_size, "total": len(self._entries)},
                )
                raise PoolSaturatedError(self._max_size)

            return await self._open_reserved()

    async def _open_reserved(self) -> QueryConnection:
        # The slot was counted in ``_opening`` by the caller.
        try:
            connection = await self._dialect.connect(self._settings)
        finally:
            self._opening -= 1
        now = self._clock()
        entry = PoolEntry(
            entry_id=f"conn_{uuid.uuid4().hex}",
            connection=connection,
            created_at=now,
            last_used_at=now,
            in_use=True,
        )
        self._entries[entry.entry_id] = entry
        logger.info(
            "Opened pooled connection",
            extra={
                "entry_id": entry.entry_id,
                "provider": self._dialect.name,
                "total": len(self._entries),
            },
        )
        return connection

    async def release(self, connection: QueryConnection) -> None:
        """Mark a connection idle again. Unknown connections are ignored."""
        async with self._lock:
            entry = self._find(connection)
            if entry is None:
                return
            entry.in_use = False
            entry.last_used_at = self._clock()

    async def discard(self, connection: QueryConnection) -> None:
        """Drop a connection from the pool regardless of its state."""
        async with self._lock:
            entry = self._find(connection)
            if entry is not None:
                self._entries.pop(entry.entry_id, None)
        if entry is not None:
            await self._close_entries([entry], reason="discarded")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[QueryConnection]:
        """Acquire a connection for the duration of the block.

        A connection that failed with a disconnect-class or fatal error, or
        whose task was cancelled mid-block, is discarded instead of being
        returned to the pool.
        """
        conn = await self.acquire()
        reusable = True
        try:
            yield conn
        except asyncio.CancelledError:
            # A statement may still be in flight on the handle.
            reusable = False
            raise
        except Exception as exc:
            reusable = self._dialect.classify_error(exc) is ErrorClass.OTHER
            raise
        finally:
            if reusable:
                await self.release(conn)
            else:
                await self.discard(conn)

    def translate_error(self, exc: Exception) -> Exception:
        """Map a raw driver error onto the gateway error taxonomy.

        Gateway errors and ``ValueError`` pass through. Disconnect-class and
        fatal driver errors become a retryable
        :class:`~dal.errors.DatabaseConnectionError`; everything else a
        :class:`~dal.errors.BackendQueryError`.
        """
        if isinstance(exc, (GatewayError, ValueError)):
            return exc
        error_class = self._dialect.classify_error(exc)
        if error_class is ErrorClass.OTHER:
            translated: Exception = BackendQueryError(
                f"Query execution failed: {exc}", provider=self._dialect.name
            )
        else:
            translated = DatabaseConnectionError(
                f"Database connection lost: {exc}",
                provider=self._dialect.name,
                retryable=True,
            )
        translated.__cause__ = exc
        return translated

    async def test_connection(self) -> bool:
        """Run a round trip on a pooled connection; False on any failure."""
        try:
            async with self.connection() as conn:
                return await conn.ping()
        except Exception as exc:
            logger.error(
                "Connection test failed",
                extra={"provider": self._dialect.name, "error": str(exc)},
            )
            return False

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> T:
        """Run ``operation``, retrying after disconnect-class failures.

        ``max_retries`` is the total number of attempts. Between attempts
        expired and dead idle entries are evicted. Errors that are not
        disconnects propagate on the spot.

        Raises:
            RetryExhaustedError: If the last attempt also hit a disconnect.
        """
        attempts = max(int(max_retries), 1)
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except Exception as exc:
                if self._dialect.classify_error(exc) is not ErrorClass.TRANSIENT:
                    raise
                if attempt >= attempts:
                    logger.error(
                        "Retries exhausted after disconnect",
                        extra={"attempts": attempts, "error": str(exc)},
                    )
                    raise RetryExhaustedError(attempts) from exc
                logger.warning(
                    "Connection lost, retrying",
                    extra={"attempt": attempt, "max_attempts": attempts, "error": str(exc)},
                )
                await self.cleanup()
                await self.evict_dead()
        raise RetryExhaustedError(attempts)

    async def evict_dead(self) -> int:
        """Probe idle entries and drop the dead ones. Returns the count evicted."""
        async with self._lock:
            candidates = [entry for entry in self._entries.values() if not entry.in_use]
            for entry in candidates:
                entry.in_use = True

        dead: List[PoolEntry] = []
        try:
            for entry in candidates:
                if not await self._is_alive(entry):
                    dead.append(entry)
        finally:
            dead_ids = {entry.entry_id for entry in dead}
            async with self._lock:
                for entry in candidates:
                    if entry.entry_id in dead_ids:
                        self._entries.pop(entry.entry_id, None)
                    else:
                        entry.in_use = False
            await self._close_entries(dead, reason="dead")
        return len(dead)

    async def cleanup(self) -> int:
        """Evict idle entries unused for longer than the idle timeout."""
        async with self._lock:
            expired = self._pop_expired()
        await self._close_entries(expired, reason="idle")
        if expired:
            logger.info("Reaped idle connections", extra={"evicted": len(expired)})
        return len(expired)

    async def close_all(self) -> None:
        """Close and drop every entry, in use or not."""
        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        await self._close_entries(entries, reason="shutdown")
        logger.info("Connection pool closed", extra={"provider": self._dialect.name})

    def stats(self) -> PoolStats:
        active = sum(1 for entry in self._entries.values() if entry.in_use)
        return PoolStats(
            max_size=self._max_size,
            total=len(self._entries),
            active=active,
            idle=len(self._entries) - active,
        )

    async def server_info(self) -> Dict[str, Any]:
        """Return backend version and uptime merged with pool counters."""
        async def _fetch():
            async with self.connection() as conn:
                return await self._dialect.introspector.get_server_info(conn)

        info = await self.execute_with_retry(_fetch)
        return {**info, **self.stats().to_dict()}

    def _find(self, connection: QueryConnection) -> Optional[PoolEntry]:
        for entry in self._entries.values():
            if entry.connection is connection:
                return entry
        return None

    def _reserve_idle(self) -> Optional[PoolEntry]:
        for entry in self._entries.values():
            if not entry.in_use:
                entry.in_use = True
                return entry
        return None

    def _pop_expired(self) -> List[PoolEntry]:
        cutoff = self._clock() - self._idle_timeout
        expired = [
            entry
            for entry in self._entries.values()
            if not entry.in_use and entry.last_used_at < cutoff
        ]
        for entry in expired:
            self._entries.pop(entry.entry_id, None)
        return expired

    async def _is_alive(self, entry: PoolEntry) -> bool:
        if entry.connection.closed:
            return False
        try:
            return await entry.connection.ping()
        except Exception as exc:
            error_class = self._dialect.classify_error(exc)
            if error_class is ErrorClass.OTHER:
                logger.debug(
                    "Liveness probe failed with a query error; keeping connection",
                    extra={"entry_id": entry.entry_id, "error": str(exc)},
                )
                return True
            logger.info(
                "Liveness probe failed",
                extra={
                    "entry_id": entry.entry_id,
                    "error_class": error_class.value,
                    "error": str(exc),
                },
            )
            return False

    async def _close_entries(self, entries: List[PoolEntry], *, reason: str) -> None:
        """Close connections already removed from the pool."""
        for entry in entries:
            try:
                await entry.connection.close()
            except Exception as exc:
                logger.debug(
                    "Error closing evicted connection",
                    extra={"entry_id": entry.entry_id, "error": str(exc)},
                )
            logger.info(
                "Evicted pooled connection",
                extra={"entry_id": entry.entry_id, "reason": reason, "total": len(self._entries)},
            )
