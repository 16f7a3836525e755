"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row-level locking on PostgreSQL
- Compare-and-set status updates
"""

from typing import Optional, TypeVar, Type, Dict, Any
from sqlalchemy.orm import Session

T = TypeVar('T')


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'postgresql'
    except AttributeError:
        return False


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: If True, raise error immediately if lock unavailable (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Example:
        job = acquire_row_lock(db, Job, Job.id == job_id)
    """
    query = db.query(model).filter(filter_condition)

    # SQLite has no row locks; the CAS update covers it
    if is_postgres(db):
        query = query.with_for_update(nowait=True) if nowait else query.with_for_update()

    return query.first()


def compare_and_set_status(
    db: Session,
    model: Type[T],
    record_id: str,
    expected_status: str,
    values: Dict[str, Any]
) -> int:
    """
    UPDATE ... WHERE id = :id AND status = :expected_status

    Returns the number of rows changed. 0 means another writer moved the
    record away from expected_status first.
    """
    return (
        db.query(model)
        .filter(model.id == record_id, model.status == expected_status)
        .update(values, synchronize_session="fetch")
    )
