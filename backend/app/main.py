# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tortoise.exceptions import OperationalError

from app.config import settings
from app.core.db import init_db, close_db
from app.core.errors import InternalError, PortalError
from app.core.bootstrap import ensure_default_admin

from app.api.v1.routers import admin, auth, sellers, setup, subadmin

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    """Render typed service errors as {"detail": {"code", "message", ...}}."""
    if exc.status_code >= 500:
        logger.error("[api] %s %s -> %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

@app.exception_handler(OperationalError)
async def store_error_handler(request: Request, exc: OperationalError):
    """Store failures outside a guarded unit (reads) still answer with a typed 500."""
    logger.error("[api] %s %s -> store failure", request.method, request.url.path, exc_info=exc)
    return await portal_error_handler(request, InternalError())

@app.on_event("startup")
async def on_startup():
    await init_db()
    # Seed the admin from ADMIN_USERNAME / ADMIN_PASSWORD when set; otherwise /setup is used
    await ensure_default_admin()

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(setup.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")
app.include_router(subadmin.router, prefix="/api/v1")
app.include_router(sellers.router, prefix="/api/v1")

@app.get("/healthz")
def healthz():
    return {"ok": True}
