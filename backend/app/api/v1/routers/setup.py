# app/api/v1/routers/setup.py
from fastapi import APIRouter

from app.core.bootstrap import bootstrap_admin, setup_needed
from app.schemas.auth import SetupRequest, SetupStatusOut

router = APIRouter(prefix="/setup", tags=["setup"])

@router.get("/status", response_model=SetupStatusOut)
async def setup_status():
    """Tell the frontend whether the one-time admin setup is still pending."""
    return {"setupNeeded": await setup_needed()}

@router.post("")
async def setup(body: SetupRequest):
    """
    Create the single admin account.

    Raises:
        Forbidden (403): SETUP_KEY_INVALID
        ValidationError (400): ADMIN_EXISTS once an admin is present
        DuplicateUsername (400): USERNAME_EXISTS
    """
    admin = await bootstrap_admin(body.username, body.password, body.setupKey)
    return {
        "success": True,
        "message": "Admin account created successfully",
        "data": {"id": str(admin.id), "username": admin.username},
    }
