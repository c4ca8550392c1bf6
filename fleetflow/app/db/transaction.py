"""
Unit-of-work boundary for multi-record writes.

Every coordinator operation that touches more than one record runs inside
`unit_of_work`: the writes commit together or the session is rolled back.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.core.exceptions import AppException, StorageError

logger = logging.getLogger("fleetflow.db")


@asynccontextmanager
async def unit_of_work(db: AsyncSession, name: Optional[str] = None):
    """
    Commit on success, roll back on any failure.

    Application exceptions propagate unchanged after rollback; raw
    SQLAlchemy failures are wrapped in StorageError.
    """
    try:
        yield db
        await db.commit()
    except AppException:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.error("Unit of work %s violated a constraint: %s", name or "-", exc.orig)
        raise StorageError(
            "Storage constraint violated, no changes were applied",
            details={"operation": name}
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Unit of work %s failed: %s", name or "-", exc)
        raise StorageError(details={"operation": name}) from exc
    except Exception:
        await db.rollback()
        raise
