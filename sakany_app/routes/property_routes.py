import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user, get_optional_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import PropertyTypes
from models.models import User
from schemas.schema import (
    PropertyCreate,
    PropertyFilter,
    PropertyOut,
    PropertyUpdate,
    RejectPropertyIn,
)
from services.property_service import PropertyService

router = APIRouter(tags=["Property Management"])


@cbv(router=router)
class PropertyRoutes:
    @router.get("/properties", response_model=List[PropertyOut])
    @safe_handler
    async def list_properties(
        self,
        property_type: Optional[PropertyTypes] = Query(None, alias="type"),
        listing_type: Optional[Literal["sale", "rent"]] = Query(
            None, alias="listingType"
        ),
        q: Optional[str] = Query(None, max_length=100),
        location: Optional[str] = Query(None, max_length=255),
        min_price: Optional[int] = Query(None, ge=0, alias="minPrice"),
        max_price: Optional[int] = Query(None, ge=0, alias="maxPrice"),
        bedrooms: Optional[int] = Query(None, ge=0),
        db: AsyncSession = Depends(get_db_async),
    ):
        filters = PropertyFilter(
            property_type=property_type,
            listing_type=listing_type,
            q=q,
            location=location,
            min_price=min_price,
            max_price=max_price,
            bedrooms=bedrooms,
        )
        return await PropertyService(db).list_properties(filters=filters)

    @router.get("/properties/featured", response_model=List[PropertyOut])
    @safe_handler
    async def list_featured(self, db: AsyncSession = Depends(get_db_async)):
        return await PropertyService(db).list_featured()

    @router.get("/properties/mine", response_model=List[PropertyOut])
    @safe_handler
    async def list_mine(
        self,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).list_mine(current_user=current_user)

    @router.get("/properties/pending", response_model=List[PropertyOut])
    @safe_handler
    async def list_pending(
        self,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).list_pending(current_user=current_user)

    @router.post("/properties", status_code=201, response_model=PropertyOut)
    @safe_handler
    async def create(
        self,
        data: PropertyCreate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).create_property(
            current_user=current_user, data=data
        )

    @router.get("/properties/{property_id}", response_model=PropertyOut)
    @safe_handler
    async def get_property(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: Optional[User] = Depends(get_optional_user),
    ):
        return await PropertyService(db).get_property(
            property_id=property_id, current_user=current_user
        )

    @router.patch("/properties/{property_id}", response_model=PropertyOut)
    @safe_handler
    async def update(
        self,
        property_id: uuid.UUID,
        data: PropertyUpdate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).update_property(
            property_id=property_id, current_user=current_user, data=data
        )

    @router.delete("/properties/{property_id}")
    @safe_handler
    async def delete_property(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).delete_property(
            property_id=property_id, current_user=current_user
        )

    @router.post("/properties/{property_id}/approve", response_model=PropertyOut)
    @safe_handler
    async def approve(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).approve_property(
            property_id=property_id, current_user=current_user
        )

    @router.post("/properties/{property_id}/reject", response_model=PropertyOut)
    @safe_handler
    async def reject(
        self,
        property_id: uuid.UUID,
        data: RejectPropertyIn,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await PropertyService(db).reject_property(
            property_id=property_id, current_user=current_user, data=data
        )
