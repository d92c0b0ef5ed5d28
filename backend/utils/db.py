from typing import Optional
from sqlalchemy.exc import IntegrityError, DBAPIError
from core.exceptions import AppError, InvalidInput, DependencyFailure


async def safe_commit(session, conflict_error: Optional[AppError] = None):
    """Commit, translating store failures into application errors.

    Integrity violations become ``conflict_error`` (or ``InvalidInput``);
    anything else is a ``DependencyFailure``.
    """
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise (conflict_error or InvalidInput()) from e
    except DBAPIError as e:
        await session.rollback()
        raise DependencyFailure() from e
