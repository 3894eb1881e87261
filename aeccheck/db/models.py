"""SQLAlchemy async database models for AECCheck.

A parameter check is append-only: every save inserts a new header row plus
its element rows, and reads pick the newest header for a key.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ParameterCheckModel(Base):
    """Header of one saved discipline analysis (summary columns only)."""

    __tablename__ = "parameter_checks"

    # Monotonic surrogate key breaks ties between checks saved in the same instant
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    check_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    project_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    model_id: Mapped[str] = mapped_column(Text, nullable=False)
    model_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    discipline_id: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[str] = mapped_column(Text, nullable=False, default="ALL")

    # Discipline summary
    total_elements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_compliance_pct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fully_compliant: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    elements: Mapped[list[ParameterCheckElementModel]] = relationship(
        back_populates="check",
        cascade="all, delete-orphan",
        order_by="ParameterCheckElementModel.element_key",
    )

    __table_args__ = (
        # Latest check per (project, model, discipline)
        Index(
            "idx_parameter_checks_key_created",
            "project_id",
            "model_id",
            "discipline_id",
            "created_at",
        ),
        # Latest discipline per model / project rollup
        Index("idx_parameter_checks_model_created", "project_id", "model_id", "created_at"),
    )


class ParameterCheckElementModel(Base):
    """One element row snapshot belonging to a saved check."""

    __tablename__ = "parameter_check_elements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    check_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("parameter_checks.check_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    element_key: Mapped[str] = mapped_column(Text, nullable=False)  # EL#000001
    element_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    compliance_pct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Full ElementRow as JSON
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    check: Mapped[ParameterCheckModel] = relationship(back_populates="elements")

    __table_args__ = (
        Index("idx_parameter_check_elements_order", "check_id", "element_key", unique=True),
    )
