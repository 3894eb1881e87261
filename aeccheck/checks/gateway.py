"""Append-versioned storage of parameter checks.

Every save inserts a new check header plus its element rows; nothing is ever
updated in place. Reads pick the newest check for a key, so older checks stay
available as history.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aeccheck.analysis.aggregation import CheckHeader, build_project_rollup
from aeccheck.db.models import ParameterCheckElementModel, ParameterCheckModel
from aeccheck.errors import PersistenceError, ValidationError
from aeccheck.models import (
    Check,
    DisciplineSummary,
    ElementRow,
    LastDiscipline,
    ProjectRollup,
    SaveResult,
    utcnow,
)

logger = logging.getLogger(__name__)


def normalize_project_id(project_id: str) -> str:
    """Strip the ``b.`` hub prefix so both id forms address the same checks."""
    value = str(project_id or "").strip()
    return value[2:] if value.startswith("b.") else value


def element_key(index: int) -> str:
    return f"EL#{index:06d}"


def new_check_id() -> str:
    return f"CHECK#{int(time.time() * 1000)}#{uuid4()}"


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CheckPersistenceGateway:
    """Saves and reads parameter checks through an async session.

    Usage:
        async with get_session() as session:
            gateway = CheckPersistenceGateway(session)
            saved = await gateway.save(check)
            latest = await gateway.get_latest(project_id, model_id, "ARC")
    """

    def __init__(self, session: AsyncSession):
        """Initialize gateway with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def save(self, check: Check) -> SaveResult:
        """Persist a check as a new version.

        Returns:
            SaveResult with the assigned check id

        Raises:
            ValidationError: If the check has no rows or lacks an identifier.
                Nothing is written in that case.
            PersistenceError: If the write fails (the session is rolled back)
        """
        project_id = normalize_project_id(check.project_id)
        if not project_id:
            raise ValidationError("Missing project_id")
        if not check.model_id.strip():
            raise ValidationError("Missing model_id")
        if not check.discipline_id.strip():
            raise ValidationError("Missing discipline_id")
        if not check.rows:
            raise ValidationError("No rows to save")

        check_id = new_check_id()
        created_at = utcnow()

        header = ParameterCheckModel(
            check_id=check_id,
            project_id=project_id,
            model_id=check.model_id,
            model_name=check.model_name or "",
            discipline_id=check.discipline_id,
            category_id=check.category_id or "ALL",
            total_elements=check.summary.total_elements,
            average_compliance_pct=check.summary.average_compliance_pct,
            fully_compliant=check.summary.fully_compliant,
            created_at=created_at,
        )
        elements = [
            ParameterCheckElementModel(
                check_id=check_id,
                element_key=element_key(index),
                element_id=row.element_id,
                compliance_pct=row.compliance.pct,
                payload=row.model_dump(mode="json"),
                created_at=created_at,
            )
            for index, row in enumerate(check.rows, start=1)
        ]

        try:
            self.session.add(header)
            await self.session.flush()
            self.session.add_all(elements)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to save check for {check.model_id}/{check.discipline_id}: {e}")
            raise PersistenceError(f"Failed to save parameter check: {e}") from e

        logger.info(
            f"Saved {check_id} ({len(elements)} elements) for "
            f"{project_id}/{check.model_id}/{check.discipline_id}"
        )

        return SaveResult(
            check_id=check_id,
            saved_elements=len(elements),
            summary=check.summary,
        )

    async def get_latest(
        self, project_id: str, model_id: str, discipline_id: str
    ) -> Check | None:
        """Load the newest check for (project, model, discipline).

        Returns:
            Check with rows in saved order, or None if nothing was saved

        Raises:
            PersistenceError: If the read fails
        """
        stmt = (
            select(ParameterCheckModel)
            .where(
                ParameterCheckModel.project_id == normalize_project_id(project_id),
                ParameterCheckModel.model_id == model_id,
                ParameterCheckModel.discipline_id == discipline_id,
            )
            .order_by(ParameterCheckModel.created_at.desc(), ParameterCheckModel.id.desc())
            .limit(1)
        )

        try:
            header = (await self.session.execute(stmt)).scalar_one_or_none()
            if header is None:
                return None

            element_stmt = (
                select(ParameterCheckElementModel.payload)
                .where(ParameterCheckElementModel.check_id == header.check_id)
                .order_by(ParameterCheckElementModel.element_key)
            )
            payloads = (await self.session.execute(element_stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load parameter check: {e}") from e

        return Check(
            check_id=header.check_id,
            project_id=header.project_id,
            model_id=header.model_id,
            model_name=header.model_name,
            discipline_id=header.discipline_id,
            category_id=header.category_id,
            rows=[ElementRow.model_validate(payload) for payload in payloads],
            summary=DisciplineSummary(
                total_elements=header.total_elements,
                average_compliance_pct=header.average_compliance_pct,
                fully_compliant=header.fully_compliant,
            ),
            timestamp=_as_utc(header.created_at),
        )

    async def get_latest_discipline_for_model(
        self, project_id: str, model_id: str
    ) -> LastDiscipline | None:
        """Discipline of the newest check saved for a model, any discipline."""
        stmt = (
            select(ParameterCheckModel)
            .where(
                ParameterCheckModel.project_id == normalize_project_id(project_id),
                ParameterCheckModel.model_id == model_id,
            )
            .order_by(ParameterCheckModel.created_at.desc(), ParameterCheckModel.id.desc())
            .limit(1)
        )

        try:
            header = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load last discipline: {e}") from e

        if header is None:
            return None

        return LastDiscipline(
            check_id=header.check_id,
            discipline_id=header.discipline_id,
            category_id=header.category_id,
            created_at=_as_utc(header.created_at),
        )

    async def get_project_rollup(self, project_id: str) -> ProjectRollup:
        """Compute the per-model compliance rollup for a project on read."""
        stmt = (
            select(ParameterCheckModel)
            .where(ParameterCheckModel.project_id == normalize_project_id(project_id))
            .order_by(ParameterCheckModel.created_at, ParameterCheckModel.id)
        )

        try:
            headers = (await self.session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load project rollup: {e}") from e

        return build_project_rollup(
            CheckHeader(
                check_id=h.check_id,
                model_id=h.model_id,
                model_name=h.model_name,
                discipline_id=h.discipline_id,
                total_elements=h.total_elements,
                average_compliance_pct=h.average_compliance_pct,
                created_at=_as_utc(h.created_at),
            )
            for h in headers
        )
