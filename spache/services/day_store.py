"""Persistent day-addressed store of close-approach objects.

One `close_approach_dates` row per cached day; its presence is what makes
the day a cache hit, even when it has no `close_approaches` children.
SQLAlchemy calls are blocking, so the async API hops to a worker thread.
"""

import asyncio
import logging
from datetime import date, datetime

from sqlalchemy import JSON, Column, Float, ForeignKey, Integer, String, create_engine, delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, relationship, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from spache.errors import StoreError
from spache.services.dates import day_index

logger = logging.getLogger(__name__)

Base = declarative_base()


class CloseApproachDate(Base):
    __tablename__ = "close_approach_dates"

    day = Column(Integer, primary_key=True, autoincrement=False)

    close_approaches = relationship(
        "CloseApproach",
        back_populates="approach_date",
        cascade="all, delete-orphan",
        order_by="CloseApproach.id",
    )

    def __repr__(self) -> str:
        return f"<CloseApproachDate {self.day}>"


class CloseApproach(Base):
    __tablename__ = "close_approaches"

    id = Column(Integer, primary_key=True)
    day = Column(Integer, ForeignKey("close_approach_dates.day", ondelete="CASCADE"), index=True, nullable=False)
    relative_velocity_kmps = Column(Float)
    closest_distance_au = Column(Float)
    orbiting_body = Column(String)
    near_earth_object = Column(JSON, nullable=False)

    approach_date = relationship("CloseApproachDate", back_populates="close_approaches")

    @classmethod
    def from_neo(cls, neo: dict) -> "CloseApproach":
        # Only the first approach event is flattened; the rest survive in the payload
        approaches = neo.get("close_approach_data") or []
        first = approaches[0] if approaches else {}
        return cls(
            closest_distance_au=_to_float((first.get("miss_distance") or {}).get("astronomical")),
            relative_velocity_kmps=_to_float((first.get("relative_velocity") or {}).get("kilometers_per_second")),
            orbiting_body=first.get("orbiting_body"),
            near_earth_object=neo,
        )

    def __repr__(self) -> str:
        return f"<CloseApproach {self.near_earth_object.get('id')} day={self.day}>"


def _to_float(value) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def create_store_engine(database_url: str):
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


class DayStore:
    def __init__(self, database_url: str = "sqlite:///spache.db", engine=None):
        self.engine = engine if engine is not None else create_store_engine(database_url)
        self._session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    async def query_range(self, start: datetime | date, end: datetime | date) -> dict[int, list] | None:
        """Cached objects per day for [start, end], or None if any day is missing."""
        return await asyncio.to_thread(self._query_range, day_index(start), day_index(end))

    async def update(self, records: dict[int, list]) -> None:
        """Replace the stored objects of exactly the days present in `records`."""
        await asyncio.to_thread(self._update, records)

    async def ping(self) -> None:
        await asyncio.to_thread(self._ping)

    def _query_range(self, from_day: int, to_day: int) -> dict[int, list] | None:
        if to_day < from_day:
            return {}

        stmt = (
            select(CloseApproachDate)
            .where(CloseApproachDate.day.between(from_day, to_day))
            .order_by(CloseApproachDate.day)
            .options(selectinload(CloseApproachDate.close_approaches))
        )
        try:
            with self._session() as session:
                dates = session.scalars(stmt).all()
                expected = to_day - from_day + 1
                if len(dates) < expected:
                    logger.debug("Cache has %d of %d days in %d..%d", len(dates), expected, from_day, to_day)
                    return None
                return {d.day: [ca.near_earth_object for ca in d.close_approaches] for d in dates}
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def _update(self, records: dict[int, list]) -> None:
        if not records:
            return

        days = [int(day) for day in records]
        try:
            with self._session.begin() as session:
                # Delete-then-insert; the new rows never merge with the old
                session.execute(delete(CloseApproach).where(CloseApproach.day.in_(days)))
                session.execute(delete(CloseApproachDate).where(CloseApproachDate.day.in_(days)))
                for day, neos in records.items():
                    session.add(
                        CloseApproachDate(
                            day=int(day),
                            close_approaches=[CloseApproach.from_neo(neo) for neo in neos],
                        )
                    )
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def _ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
