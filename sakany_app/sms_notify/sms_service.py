import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.breaker import breaker
from core.settings import settings

logger = logging.getLogger(__name__)


class TermiiClient:
    def __init__(self):
        self.base_url = settings.TERMII_BASE_URL
        self.api_key = settings.TERMII_API_KEY
        self.sender_id = settings.TERMII_SENDER_ID
        self.client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.sender_id)

    async def connect(self):
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=10)
        logger.info("Termii client ready (configured=%s)", self.configured)

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("Termii connection closed")

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
    )
    async def _post(self, payload: dict) -> dict:
        if not self.client:
            raise RuntimeError("Termii client not connected")

        response = await self.client.post("/api/sms/send", json=payload)
        response.raise_for_status()
        return response.json()

    async def send_sms(self, to: str, message: str):
        if not self.configured:
            logger.warning("Termii is not configured; SMS to %s not sent", to)
            return None

        payload = {
            "to": to.lstrip("+"),
            "from": self.sender_id,
            "sms": message,
            "type": "plain",
            "channel": "generic",
            "api_key": self.api_key,
        }

        async def handler():
            try:
                return await self._post(payload)
            except httpx.HTTPError as e:
                logger.error("Error sending SMS to %s: %s", to, e)
                raise

        return await breaker.call(handler)


sms_client = TermiiClient()


async def send_two_factor_sms(phone_number: str, code: str, name: str):
    minutes = settings.TWO_FACTOR_CODE_TTL_SECONDS // 60
    message = (
        f"Hello {name}, your Sakany verification code is {code}. "
        f"It expires in {minutes} minutes. Do not share it with anyone."
    )
    await sms_client.send_sms(phone_number, message)
