# app/schemas/auth.py
"""
Pydantic schemas for authentication and one-time setup endpoints.
"""
from pydantic import BaseModel, Field

class LoginRequest(BaseModel):
    """
    Request model for login endpoint.
    Contains credentials for authentication.
    """
    username: str  # Login name
    password: str  # Plain text password (verified against the stored hash)

class SetupRequest(BaseModel):
    """
    Request model for the one-time admin bootstrap.
    setupKey must match the ADMIN_SETUP_KEY environment variable.
    """
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    setupKey: str

class SetupStatusOut(BaseModel):
    setupNeeded: bool  # True while no admin exists
