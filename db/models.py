"""
db/models.py

SQLAlchemy 2.0 async ORM model definitions for the alert log.
The log is written only when settings.alert_log_enabled is set.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from config import settings

# Async engine with connection pool settings
engine = create_async_engine(
    f"mysql+aiomysql://{settings.mysql_user}:{settings.mysql_password}"
    f"@{settings.mysql_host}:{settings.mysql_port}/{settings.mysql_db}",
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
)

AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AlertLog(Base):
    """One dispatched alert with its per-channel outcomes."""

    __tablename__ = "alert_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    severity: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    fusion_score: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    vitals: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON
    outcomes: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON
    simulated: Mapped[bool] = mapped_column(Boolean, default=False)
    call_sid: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    dispatched_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)  # UTC
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


async def init_models() -> None:
    """Create missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
