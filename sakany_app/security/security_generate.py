import hashlib
import hmac
import secrets
from datetime import datetime, timedelta

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from core.date_helper import as_utc, utcnow
from core.settings import settings

reset_serializer = URLSafeTimedSerializer(settings.RESET_SECRET_KEY)


class UserGenerate:
    def hmac_sha256(self, value: str, secret: str = settings.SECRET_KEY) -> str:
        return (
            hmac.new(
                key=secret.encode(),
                msg=value.encode(),
                digestmod=hashlib.sha256,
            )
            .hexdigest()
            .upper()
        )

    def generate_otp(self) -> str:
        return f"{secrets.randbelow(900000) + 100000}"

    def otp_expiry(self) -> datetime:
        return utcnow() + timedelta(seconds=settings.TWO_FACTOR_CODE_TTL_SECONDS)

    def hash_otp(self, email: str, otp: str) -> str:
        return self.hmac_sha256(f"{email}:{otp}")

    def verify_otp(
        self, email: str, otp: str, stored_hash: str | None, expires: datetime | None
    ) -> bool:
        if not stored_hash or not expires or as_utc(expires) < utcnow():
            return False
        return hmac.compare_digest(self.hash_otp(email, otp), stored_hash)

    def generate_reset_token(self, email: str) -> str:
        return reset_serializer.dumps(email, salt=settings.RESET_PASSWORD_SALT)

    def load_reset_token(self, token: str) -> str | None:
        try:
            return reset_serializer.loads(
                token,
                salt=settings.RESET_PASSWORD_SALT,
                max_age=settings.RESET_TOKEN_MAX_AGE_SECONDS,
            )
        except (SignatureExpired, BadSignature):
            return None


user_generate = UserGenerate()
