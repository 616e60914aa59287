from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

standardized_events_table = Table(
    "standardized_events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("source", Text, nullable=False),
    Column("source_id", Text, nullable=False),
    Column("source_url", Text),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=False),
    Column("description_html", Text),
    Column("summary", Text),
    Column("start_date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True), nullable=False),
    Column("published_at", DateTime(timezone=True)),
    # Copy of venue.city so listing filters stay in SQL.
    Column("city", Text),
    Column("venue", JSON, nullable=False),
    Column("ticketing", JSON, nullable=False),
    Column("category", Text, nullable=False),
    Column("genres", JSON, nullable=False),
    Column("tags", JSON, nullable=False),
    Column("lineup", JSON, nullable=False),
    Column("organizer", JSON, nullable=False),
    Column("images", JSON, nullable=False),
    Column("scraped_at", DateTime(timezone=True), nullable=False),
    Column("last_checked_at", DateTime(timezone=True), nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("quality_score", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("source", "source_id", name="uq_standardized_events_source_source_id"),
    Index("ix_standardized_events_start_date", "start_date"),
    Index("ix_standardized_events_category", "category"),
)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
