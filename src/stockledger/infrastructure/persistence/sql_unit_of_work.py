"""Unit of work over a SQLAlchemy Session."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stockledger.domain.repository.unit_of_work import UnitOfWork
from stockledger.infrastructure.persistence.sql_models import Base
from stockledger.infrastructure.persistence.sql_repositories import (
    SqlInventoryRepository,
    SqlProductRepository,
    SqlSaleRepository,
)


def create_session_factory(database_url: str, echo: bool = False) -> sessionmaker[Session]:
    """Build the engine, create missing tables and return a session factory."""
    engine = create_engine(database_url, echo=echo, future=True)
    init_models(engine)
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


def init_models(engine: Engine) -> None:
    Base.metadata.create_all(engine)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """One Session, and so one database transaction, per unit of work."""

    storage_errors = (SQLAlchemyError,)

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        super().__init__()
        self._session_factory = session_factory
        self.session: Session | None = None

    def _open(self) -> None:
        self.session = self._session_factory()
        self.products = SqlProductRepository(self.session)
        self.inventory = SqlInventoryRepository(self.session)
        self.sales = SqlSaleRepository(self.session)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        if self.session is not None:
            self.session.rollback()

    def _close(self) -> None:
        if self.session is not None:
            self.session.close()
        self.session = None
