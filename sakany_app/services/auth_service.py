import logging

from fastapi import BackgroundTasks, HTTPException, Request
from fastapi.responses import JSONResponse

from core.breaker import db_breaker
from core.date_helper import utcnow
from core.exceptions import NotAuthenticated
from core.mapper import ORMMapper
from core.settings import settings
from core.validators import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from email_notify.email_service import send_password_reset_link, send_two_factor_code
from models.enums import TwoFactorMethod
from models.models import User
from repos.auth_repo import AuthRepo
from schemas.schema import UserOut
from security.security_generate import user_generate
from sms_notify.sms_service import send_two_factor_sms

logger = logging.getLogger(__name__)

ACCESS_EXPIRE_MINUTES = settings.ACCESS_EXPIRE_MINUTES
REFRESH_EXPIRE_DAYS = settings.REFRESH_EXPIRE_DAYS
SECURE_COOKIES = settings.SECURE_COOKIES

DISPATCH_MESSAGES = {
    TwoFactorMethod.EMAIL: "A verification code has been sent to your email",
    TwoFactorMethod.SMS: "A verification code has been sent to your phone",
}


def set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str):
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=SECURE_COOKIES,
        samesite="lax",
        max_age=ACCESS_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=SECURE_COOKIES,
        samesite="lax",
        max_age=REFRESH_EXPIRE_DAYS * 86400,
    )


def clear_auth_cookies(response: JSONResponse):
    for cookie in ("access_token", "refresh_token"):
        response.delete_cookie(
            key=cookie,
            path="/",
            secure=SECURE_COOKIES,
            httponly=True,
            samesite="lax",
        )


class AuthService:
    def __init__(self, db):
        self.repo: AuthRepo = AuthRepo(db)
        self.mapper: ORMMapper = ORMMapper()

    async def register(self, data):
        async def handler():
            if await self.repo.get_by_email(email=data.email):
                raise HTTPException(status_code=400, detail="Email already registered")

            user = User(
                email=data.email,
                name=data.name,
                is_landlord=data.is_landlord,
                phone_number=data.phone_number,
            )
            user.normalize()
            user.set_password(raw_password=data.password)
            await self.repo.create(user)
            logger.info("Registered user %s", user.id)
            return self.mapper.one(user, UserOut)

        return await db_breaker.call(handler)

    async def login(self, data, background_tasks: BackgroundTasks):
        async def handler():
            user = await self.repo.get_by_email(data.email)
            if (
                not user
                or not user.is_active
                or not user.check_password(raw_password=data.password)
            ):
                raise HTTPException(status_code=401, detail="Invalid credentials")

            if user.two_factor_enabled:
                if not data.code:
                    code = user_generate.generate_otp()
                    user.two_factor_code_hash = user_generate.hash_otp(user.email, code)
                    user.two_factor_code_expires = user_generate.otp_expiry()
                    await self.repo.save(user)
                    method = self._dispatch_code(user, code, background_tasks)
                    return JSONResponse(
                        {
                            "message": DISPATCH_MESSAGES[method],
                            "twoFactorRequired": True,
                            "twoFactorMethod": method.value,
                        },
                        status_code=202,
                    )

                if not user_generate.verify_otp(
                    user.email,
                    data.code,
                    user.two_factor_code_hash,
                    user.two_factor_code_expires,
                ):
                    raise HTTPException(
                        status_code=401, detail="Invalid or expired verification code"
                    )
                user.two_factor_code_hash = None
                user.two_factor_code_expires = None

            user.last_login = utcnow()
            await self.repo.save(user)

            access_token = create_access_token(user.id)
            refresh_token = create_refresh_token(user.id)
            response = JSONResponse(
                {
                    "message": "Login successful",
                    "user": self.mapper.wire(user, UserOut),
                    "access_token": access_token,
                    "refresh_token": refresh_token,
                },
                status_code=200,
            )
            set_auth_cookies(response, access_token, refresh_token)
            return response

        return await db_breaker.call(handler)

    @staticmethod
    def _dispatch_code(
        user: User, code: str, background_tasks: BackgroundTasks
    ) -> TwoFactorMethod:
        if user.two_factor_method == TwoFactorMethod.SMS and user.phone_number:
            background_tasks.add_task(
                send_two_factor_sms, user.phone_number, code, user.name
            )
            return TwoFactorMethod.SMS
        background_tasks.add_task(send_two_factor_code, user.email, code, user.name)
        return TwoFactorMethod.EMAIL

    async def logout(self):
        response = JSONResponse({"message": "Logged out successfully"})
        clear_auth_cookies(response)
        return response

    async def refresh(self, request: Request):
        async def handler():
            refresh_token = request.cookies.get("refresh_token")
            if not refresh_token:
                raise NotAuthenticated("No refresh token")

            user_id = decode_token(refresh_token, expected_type="refresh")
            user = await self.repo.get_active(user_id)
            if not user:
                raise NotAuthenticated("User not found")

            new_access_token = create_access_token(user.id)
            response = JSONResponse({"access_token": new_access_token})
            response.set_cookie(
                "access_token",
                new_access_token,
                httponly=True,
                secure=SECURE_COOKIES,
                samesite="lax",
                max_age=ACCESS_EXPIRE_MINUTES * 60,
            )
            return response

        return await db_breaker.call(handler)

    async def forgot_password(self, payload, background_tasks: BackgroundTasks):
        async def handler():
            user = await self.repo.get_by_email(payload.email)
            if user and user.is_active:
                token = user_generate.generate_reset_token(user.email)
                background_tasks.add_task(
                    send_password_reset_link, user.email, token, user.name
                )
            else:
                logger.info("Password reset requested for unknown email")
            return {"message": "If the account exists, a reset link has been sent."}

        return await db_breaker.call(handler)

    async def reset_password(self, payload):
        async def handler():
            email = user_generate.load_reset_token(payload.token)
            if not email:
                raise HTTPException(status_code=400, detail="Invalid or expired token")

            user = await self.repo.get_by_email(email)
            if not user or not user.is_active:
                raise HTTPException(status_code=404, detail="User not found")

            user.set_password(payload.password)
            await self.repo.save(user)
            return {"message": "Password reset successfully"}

        return await db_breaker.call(handler)
