"""Persistence of record versions for one record type."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from esgtrack.db.models import EsgRecordModel


class RecordStore:
    """Loads and writes the versions of one record type.

    At most one version per company is active; the database enforces this
    with a partial unique index, and ``supersede`` keeps to it by expiring
    the current version before the new one is inserted.
    """

    def __init__(self, session: AsyncSession, record_type: str):
        self.session = session
        self.record_type = record_type

    def _scope(self, company_id: str):
        return and_(
            EsgRecordModel.company_id == company_id,
            EsgRecordModel.record_type == self.record_type,
        )

    async def get_active(
        self, company_id: str, *, for_update: bool = False
    ) -> EsgRecordModel | None:
        """Current version for a company.

        Args:
            company_id: Owning company
            for_update: Lock the row until the transaction ends (PostgreSQL)
        """
        stmt = select(EsgRecordModel).where(
            self._scope(company_id), EsgRecordModel.is_active.is_(True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, record_id: UUID, company_id: str) -> EsgRecordModel | None:
        """Any version by id, only if it belongs to ``company_id``."""
        stmt = select(EsgRecordModel).where(
            self._scope(company_id), EsgRecordModel.id == record_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_company(
        self, company_id: str, include_inactive: bool = False
    ) -> list[EsgRecordModel]:
        """Versions of a company's record, newest first."""
        stmt = select(EsgRecordModel).where(self._scope(company_id))
        if not include_inactive:
            stmt = stmt.where(EsgRecordModel.is_active.is_(True))
        stmt = stmt.order_by(EsgRecordModel.version.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active(self, company_id: str) -> int:
        stmt = select(func.count()).select_from(EsgRecordModel).where(
            self._scope(company_id), EsgRecordModel.is_active.is_(True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def add(self, record: EsgRecordModel) -> EsgRecordModel:
        self.session.add(record)
        await self.session.flush()
        return record

    async def supersede(
        self, current: EsgRecordModel, new: EsgRecordModel
    ) -> EsgRecordModel:
        """Expire ``current`` and insert ``new`` in the same transaction.

        The flush between the two writes matters: the partial unique index
        would reject the insert while ``current`` is still active.
        """
        current.is_active = False
        await self.session.flush()
        return await self.add(new)
