import logging
import uuid

from fastapi import HTTPException

from core.breaker import db_breaker
from core.check_permission import CheckRolePermission
from core.mapper import ORMMapper
from models.enums import ApprovalStatus
from models.models import Property, User
from repos.property_repo import PropertyRepo
from schemas.schema import PropertyFilter, PropertyOut

logger = logging.getLogger(__name__)

# Fields an owner may change without the listing going back for review.
REVIEW_EXEMPT_FIELDS = {"status"}


class PropertyService:
    def __init__(self, db):
        self.repo: PropertyRepo = PropertyRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()
        self.mapper: ORMMapper = ORMMapper()

    async def _get_or_404(self, property_id: uuid.UUID) -> Property:
        prop = await self.repo.get_by_id(property_id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")
        return prop

    @staticmethod
    def _images_to_str(fields: dict) -> dict:
        if fields.get("images") is not None:
            fields["images"] = [str(url) for url in fields["images"]]
        return fields

    async def create_property(self, current_user: User, data):
        async def handler():
            await self.permission.check_can_list(current_user=current_user)
            fields = self._images_to_str(data.model_dump())
            if not current_user.is_admin:
                fields["is_featured"] = False

            prop = await self.repo.create(
                owner_id=current_user.id,
                approval_status=ApprovalStatus.PENDING,
                **fields,
            )
            logger.info("Property %s created by %s", prop.id, current_user.id)
            return self.mapper.one(prop, PropertyOut)

        return await db_breaker.call(handler)

    async def list_properties(self, filters: PropertyFilter | None = None):
        async def handler():
            if (
                filters
                and filters.min_price is not None
                and filters.max_price is not None
                and filters.min_price > filters.max_price
            ):
                raise HTTPException(
                    status_code=400, detail="minPrice cannot be greater than maxPrice"
                )
            return self.mapper.many(await self.repo.list_public(filters), PropertyOut)

        return await db_breaker.call(handler)

    async def list_mine(self, current_user: User):
        """Every listing the user owns, whatever its review state."""

        async def handler():
            properties = await self.repo.list_by_owner(current_user.id)
            return self.mapper.many(properties, PropertyOut)

        return await db_breaker.call(handler)

    async def list_featured(self):
        async def handler():
            return self.mapper.many(await self.repo.list_featured(limit=3), PropertyOut)

        return await db_breaker.call(handler)

    async def list_pending(self, current_user: User):
        async def handler():
            await self.permission.check_admin(current_user=current_user)
            return self.mapper.many(await self.repo.list_pending(), PropertyOut)

        return await db_breaker.call(handler)

    async def get_property(self, property_id: uuid.UUID, current_user: User | None):
        async def handler():
            prop = await self._get_or_404(property_id)
            if prop.approval_status != ApprovalStatus.APPROVED:
                # Unreviewed listings only exist for their owner and admins
                if current_user is None or (
                    prop.owner_id != current_user.id and not current_user.is_admin
                ):
                    raise HTTPException(status_code=404, detail="Property not found")
            return self.mapper.one(prop, PropertyOut)

        return await db_breaker.call(handler)

    async def update_property(self, property_id: uuid.UUID, current_user: User, data):
        async def handler():
            prop = await self._get_or_404(property_id)
            await self.permission.check_owner_or_admin(current_user=current_user, prop=prop)

            update_data = self._images_to_str(
                {
                    k: v
                    for k, v in data.model_dump(exclude_unset=True).items()
                    if v is not None
                }
            )
            if not current_user.is_admin:
                update_data.pop("is_featured", None)
            if not update_data:
                raise HTTPException(status_code=400, detail="No fields to update")

            for_sale = update_data.get("for_sale", prop.for_sale)
            for_rent = update_data.get("for_rent", prop.for_rent)
            if not (for_sale or for_rent):
                raise HTTPException(
                    status_code=422,
                    detail="A property must be for sale, for rent, or both",
                )

            if (
                not current_user.is_admin
                and prop.approval_status != ApprovalStatus.PENDING
                and set(update_data) - REVIEW_EXEMPT_FIELDS
            ):
                update_data["approval_status"] = ApprovalStatus.PENDING
                update_data["rejection_note"] = None

            prop = await self.repo.update(prop, **update_data)
            return self.mapper.one(prop, PropertyOut)

        return await db_breaker.call(handler)

    async def delete_property(self, property_id: uuid.UUID, current_user: User):
        async def handler():
            prop = await self._get_or_404(property_id)
            await self.permission.check_owner_or_admin(current_user=current_user, prop=prop)
            await self.repo.delete(prop)
            logger.info("Property %s deleted by %s", property_id, current_user.id)
            return {"message": "Property deleted"}

        return await db_breaker.call(handler)

    async def approve_property(self, property_id: uuid.UUID, current_user: User):
        async def handler():
            await self.permission.check_admin(current_user=current_user)
            prop = await self._get_or_404(property_id)
            prop = await self.repo.update(
                prop, approval_status=ApprovalStatus.APPROVED, rejection_note=None
            )
            return self.mapper.one(prop, PropertyOut)

        return await db_breaker.call(handler)

    async def reject_property(self, property_id: uuid.UUID, current_user: User, data):
        async def handler():
            await self.permission.check_admin(current_user=current_user)
            prop = await self._get_or_404(property_id)
            prop = await self.repo.update(
                prop, approval_status=ApprovalStatus.REJECTED, rejection_note=data.note
            )
            return self.mapper.one(prop, PropertyOut)

        return await db_breaker.call(handler)
