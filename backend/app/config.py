# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Reseller Portal API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # One-time admin setup (POST /api/v1/setup); setup is refused while unset
    admin_setup_key: str | None = os.getenv("ADMIN_SETUP_KEY")

    # Account rules
    min_username_length: int = int(os.getenv("MIN_USERNAME_LENGTH", "3"))
    min_password_length: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))
    default_plan_days: int = int(os.getenv("DEFAULT_PLAN_DAYS", "30"))
    # Admin / subadmin / seller accounts are not subscription bound
    staff_plan_days: int = int(os.getenv("STAFF_PLAN_DAYS", str(10 * 365)))

settings = Settings()  # Instantiate configuration
