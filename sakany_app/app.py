import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from core.catch_error_middleware import ErrorHandlerMiddleware
from core.exception_handler import MessagingErrorHandler, ValidationErrorHandler
from core.exceptions import MessagingError
from core.lifespan import lifespan
from core.settings import settings
from realtime.chat_routes import router as chat_router
from routes.admin_routes import router as admin_router
from routes.auth_routes import router as user_router
from routes.message_routes import router as message_router
from routes.profile_routes import router as profile_router
from routes.property_routes import router as property_router

logging.basicConfig(level=logging.INFO)
app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="2.0.0",
)

app.include_router(user_router, prefix="/v2")
app.include_router(profile_router, prefix="/v2")
app.include_router(admin_router, prefix="/v2")
app.include_router(property_router, prefix="/v2")
app.include_router(message_router, prefix="/v2")
app.include_router(chat_router, prefix="/v2")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
@app.get("/v2/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


app.add_exception_handler(
    RequestValidationError,
    ValidationErrorHandler(),
)
app.add_exception_handler(MessagingError, MessagingErrorHandler())

app.add_middleware(ErrorHandlerMiddleware)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8001)
