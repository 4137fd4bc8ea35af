import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.config import settings
from circleshare.core.errors import ConflictError

log = logging.getLogger(__name__)

T = TypeVar("T")


async def run_in_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    name: str = "transaction",
    retries: int | None = None,
    retry_delay: float | None = None,
) -> T:
    """
    Run ``operation`` and commit its changes as one unit.

    ``operation`` must do all of its reads inside the call: on a constraint
    race or a serialization failure everything is rolled back and the
    operation runs again against fresh state. Any other exception rolls
    back and propagates unchanged.
    """
    retries = settings.TX_MAX_RETRIES if retries is None else retries
    retry_delay = settings.TX_RETRY_DELAY if retry_delay is None else retry_delay

    for attempt in range(retries + 1):
        try:
            result = await operation()
            await db.commit()
            return result
        except (IntegrityError, OperationalError) as exc:
            await db.rollback()
            if attempt >= retries:
                log.warning("%s: giving up after %d attempts: %s", name, attempt + 1, exc.orig)
                raise ConflictError(
                    "The resource was modified concurrently, please retry"
                ) from exc
            log.info("%s: concurrent write detected, retrying (attempt %d)", name, attempt + 1)
            await asyncio.sleep(retry_delay * (attempt + 1))
        except Exception:
            await db.rollback()
            raise

    raise RuntimeError("unreachable")
