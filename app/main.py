# app/main.py

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
import logging

# Импортируем роутеры (production way)
from app.api.project import router as project_router
from app.api.subscription import router as subscription_router
from app.api.team_member import router as team_member_router

from app.core.settings import settings
from app.core.exceptions import (
    AlreadyRemovedError,
    AuthError,
    BaseAppException,
    GitHubIntegrationError,
    IntegrationCleanupError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    TransactionConflictError,
    ValidationError,
)
from app.schemas.response import ErrorResponse
from app.services.fanout import FanoutPublisher
from app.services.github_client import GitHubClient

# Логирование
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("Teamwork.API")

app = FastAPI(
    title="Teamwork API",
    version="1.0.0",
    description="Team membership, project updates and real-time fanout",
)

# Middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.fanout = FanoutPublisher()
app.state.github_client = GitHubClient()

# Роутеры
app.include_router(team_member_router)
app.include_router(project_router)
app.include_router(subscription_router)

@app.get("/health", tags=["Health"])
def health():
    return {"ok": True}

@app.on_event("startup")
async def startup_event():
    logger.info("Starting Teamwork API")

@app.on_event("shutdown")
async def shutdown_event():
    await app.state.fanout.drain()
    logger.info("Stopping Teamwork API")

# Порядок важен: подклассы раньше базовых классов
ERROR_STATUS = [
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN, "permission_denied"),
    (AuthError, status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "validation_error"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (AlreadyRemovedError, status.HTTP_409_CONFLICT, "already_removed"),
    (TransactionConflictError, status.HTTP_409_CONFLICT, "conflict"),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE, "store_unavailable"),
    (GitHubIntegrationError, status.HTTP_502_BAD_GATEWAY, "github_error"),
    (IntegrationCleanupError, status.HTTP_502_BAD_GATEWAY, "integration_cleanup_failed"),
]

def error_status(exc: BaseAppException):
    for exc_class, status_code, code in ERROR_STATUS:
        if isinstance(exc, exc_class):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"

@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    status_code, code = error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    details = None
    if isinstance(exc, GitHubIntegrationError) and exc.error is not None:
        details = {"kind": exc.error.kind.value, "code": exc.error.code, "field": exc.error.field}
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=str(exc), code=code, details=details).model_dump(),
        headers=headers,
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG,
    )
