from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker
from starlette.concurrency import run_in_threadpool
from datetime import datetime
from typing import Optional, Tuple
from campus_support.database.store import NamespaceStore

"""
SQL backend for the shared store.
Each namespace is one row holding the namespace's full JSON payload and its revision.
Uses SQLAlchemy ORM with a PostgreSQL/SQLite backend.
"""

# Base class for ORM models
Base = declarative_base()

class NamespaceRecord(Base):
    """One namespace of the shared store."""
    __tablename__ = 'namespaces'
    name = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False)
    revision = Column(Integer, default=1, nullable=False) # Bumped by every write
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self):
        """String representation of the NamespaceRecord object."""
        return f"<NamespaceRecord(name={self.name}, revision={self.revision}, updated_at={self.updated_at})>"

class SqlStore(NamespaceStore):
    """
    Store backend persisting namespaces in a SQL table.

    Conditional writes are a single `UPDATE ... WHERE revision = ?`, and the
    first write of a namespace relies on the primary key, so the database
    decides which of two racing writers wins.

    SQLAlchemy sessions are synchronous, so each call runs in the threadpool
    to keep the store's contract awaitable.
    """

    def __init__(self, db_url: str):
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        self.engine = create_engine(db_url, echo=False, connect_args=connect_args)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def _read_sync(self, namespace: str) -> Tuple[Optional[str], int]:
        db = self.SessionLocal()
        try:
            record = db.query(NamespaceRecord).filter(NamespaceRecord.name == namespace).first()
            return (record.payload, record.revision) if record else (None, 0)
        finally:
            db.close()

    def _write_sync(self, namespace: str, payload: str, expected_revision: Optional[int]) -> bool:
        db = self.SessionLocal()
        try:
            if expected_revision == 0:
                # Namespace was absent when read: only the first creator wins
                db.add(NamespaceRecord(name=namespace, payload=payload, revision=1))
                db.commit()
                return True

            stmt = update(NamespaceRecord).where(NamespaceRecord.name == namespace)
            if expected_revision is not None:
                stmt = stmt.where(NamespaceRecord.revision == expected_revision)
            stmt = stmt.values(payload=payload, revision=NamespaceRecord.revision + 1, updated_at=datetime.now())
            result = db.execute(stmt.execution_options(synchronize_session=False))

            if result.rowcount == 0:
                if expected_revision is not None:
                    db.rollback()
                    return False
                db.add(NamespaceRecord(name=namespace, payload=payload, revision=1))
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            if expected_revision is not None:
                return False
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        # An unconditional first write lost the insert race; overwrite the winner's row
        return self._write_sync(namespace, payload, None)

    async def _read_raw(self, namespace: str) -> Tuple[Optional[str], int]:
        return await run_in_threadpool(self._read_sync, namespace)

    async def _write_raw(self, namespace: str, payload: str, expected_revision: Optional[int] = None) -> bool:
        return await run_in_threadpool(self._write_sync, namespace, payload, expected_revision)
