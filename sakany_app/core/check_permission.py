from fastapi import HTTPException

from models.models import Property, User


class CheckRolePermission:
    async def check_admin(self, current_user: User):
        if not current_user.is_admin:
            raise HTTPException(status_code=403, detail="Not authorized")

    async def check_can_list(self, current_user: User):
        if not (current_user.is_landlord or current_user.is_admin):
            raise HTTPException(
                status_code=403, detail="Only landlords can list properties"
            )

    async def check_owner_or_admin(self, current_user: User, prop: Property):
        if prop.owner_id != current_user.id and not current_user.is_admin:
            raise HTTPException(
                status_code=403, detail="You are not allowed to modify this property"
            )
