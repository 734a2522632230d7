# account_service/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from account_service.config import settings
from account_service.core.db import init_db, close_db
from account_service.core.errors import AccountError, InfrastructureError
from account_service.api.v1.routers import users

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError):
    # Infrastructure causes were already logged by the use case; only the generic message goes out
    if isinstance(exc, InfrastructureError):
        logger.warning("[error] %s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=int(exc.status), content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "fields": fields})


@app.on_event("startup")
async def on_startup():
    await init_db()
    logger.info("[startup] %s ready (env=%s)", settings.APP_NAME, settings.env)


@app.on_event("shutdown")
async def on_shutdown():
    await close_db()


# REST
app.include_router(users.router)


@app.get("/healthz")
def healthz():
    return {"ok": True}
