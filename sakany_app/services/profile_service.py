from fastapi import HTTPException
from fastapi.responses import JSONResponse

from core.breaker import db_breaker
from core.mapper import ORMMapper
from models.enums import TwoFactorMethod
from models.models import User
from realtime.messaging_service import MessagingService
from repos.auth_repo import AuthRepo
from schemas.schema import UserOut

from .auth_service import clear_auth_cookies


# Fields a client may clear by sending null.
NULLABLE_FIELDS = {"preferences", "phone_number"}


class UserProfileService:
    def __init__(self, db, messaging: MessagingService | None = None):
        self.repo: AuthRepo = AuthRepo(db)
        self.messaging = messaging
        self.mapper: ORMMapper = ORMMapper()

    async def get(self, current_user: User):
        return self.mapper.one(current_user, UserOut)

    async def update(self, current_user: User, data):
        async def handler():
            update_data = data.model_dump(exclude_unset=True)
            update_data.pop("current_password", None)

            if data.password:
                if not current_user.check_password(data.current_password):
                    raise HTTPException(
                        status_code=400, detail="Current password is incorrect"
                    )
                current_user.set_password(update_data.pop("password"))
            else:
                update_data.pop("password", None)

            email = update_data.get("email")
            if email and email.strip().lower() != current_user.email:
                if await self.repo.get_by_email(email):
                    raise HTTPException(
                        status_code=400, detail="Email already registered"
                    )

            if (
                "phone_number" in update_data
                and update_data["phone_number"] is None
                and current_user.two_factor_enabled
                and current_user.two_factor_method == TwoFactorMethod.SMS
            ):
                raise HTTPException(
                    status_code=400,
                    detail="Switch two-factor to email before removing your phone number",
                )

            if "preferences" in update_data:
                update_data["preferences"] = (
                    data.preferences.model_dump(mode="json", by_alias=True)
                    if data.preferences
                    else None
                )

            for key, value in update_data.items():
                if value is None and key not in NULLABLE_FIELDS:
                    continue
                setattr(current_user, key, value)
            current_user.normalize()

            await self.repo.save(current_user)
            return self.mapper.one(current_user, UserOut)

        return await db_breaker.call(handler)

    async def delete(self, current_user: User):
        async def handler():
            current_user.is_active = False
            await self.repo.save(current_user)
            if self.messaging:
                await self.messaging.disconnect_user(current_user.id)
            response = JSONResponse({"message": "Account deleted"})
            clear_auth_cookies(response)
            return response

        return await db_breaker.call(handler)

    async def toggle_two_factor(self, current_user: User, data):
        async def handler():
            method = data.method or current_user.two_factor_method
            if (
                data.enabled
                and method == TwoFactorMethod.SMS
                and not current_user.phone_number
            ):
                raise HTTPException(
                    status_code=400,
                    detail="Add a phone number before enabling SMS verification",
                )
            current_user.two_factor_enabled = data.enabled
            current_user.two_factor_method = method
            if not data.enabled:
                current_user.two_factor_code_hash = None
                current_user.two_factor_code_expires = None
            await self.repo.save(current_user)
            return self.mapper.one(current_user, UserOut)

        return await db_breaker.call(handler)
