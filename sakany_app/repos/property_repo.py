import uuid
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from models.enums import ApprovalStatus, PropertyStatus
from models.models import Property
from schemas.schema import PropertyFilter


class PropertyRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, property_id: uuid.UUID) -> Optional[Property]:
        result = await self.db.execute(
            select(Property).where(Property.id == property_id)
        )
        return result.scalar_one_or_none()

    async def list_public(
        self, filters: Optional[PropertyFilter] = None
    ) -> Sequence[Property]:
        stmt = select(Property).where(
            Property.approval_status == ApprovalStatus.APPROVED,
            Property.status == PropertyStatus.ACTIVE,
        )
        if filters:
            stmt = stmt.where(*self._filter_clauses(filters))
        stmt = stmt.order_by(Property.created_at.desc())
        result = await self.db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    def _filter_clauses(filters: PropertyFilter) -> list:
        clauses = []
        if filters.property_type:
            clauses.append(Property.property_type == filters.property_type)
        if filters.listing_type == "sale":
            clauses.append(Property.for_sale.is_(True))
        elif filters.listing_type == "rent":
            clauses.append(Property.for_rent.is_(True))
        if filters.q:
            term = f"%{filters.q}%"
            clauses.append(or_(Property.title.ilike(term), Property.location.ilike(term)))
        if filters.location:
            clauses.append(Property.location.ilike(f"%{filters.location}%"))
        if filters.min_price is not None:
            clauses.append(Property.price >= filters.min_price)
        if filters.max_price is not None:
            clauses.append(Property.price <= filters.max_price)
        if filters.bedrooms:
            clauses.append(Property.bedrooms >= filters.bedrooms)
        return clauses

    async def list_featured(self, limit: int = 3) -> Sequence[Property]:
        stmt = (
            select(Property)
            .where(
                Property.approval_status == ApprovalStatus.APPROVED,
                Property.status == PropertyStatus.ACTIVE,
                Property.is_featured.is_(True),
            )
            .order_by(Property.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_pending(self) -> Sequence[Property]:
        stmt = (
            select(Property)
            .where(Property.approval_status == ApprovalStatus.PENDING)
            .order_by(Property.created_at)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_by_owner(self, owner_id: uuid.UUID) -> Sequence[Property]:
        stmt = (
            select(Property)
            .where(Property.owner_id == owner_id)
            .order_by(Property.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create(self, owner_id: uuid.UUID, **fields) -> Property:
        new_property = Property(owner_id=owner_id, **fields)
        self.db.add(new_property)
        return await self._commit_and_refresh(new_property)

    async def update(self, property_obj: Property, **fields) -> Property:
        for key, value in fields.items():
            setattr(property_obj, key, value)
        self.db.add(property_obj)
        return await self._commit_and_refresh(property_obj)

    async def delete(self, property_obj: Property) -> None:
        try:
            await self.db.delete(property_obj)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def _commit_and_refresh(self, property_obj: Property) -> Property:
        try:
            await self.db.commit()
            await self.db.refresh(property_obj)
            return property_obj
        except SQLAlchemyError:
            await self.db.rollback()
            raise
