# app/core/security.py
"""
Credential handling for the portal.

Passwords are stored as Argon2 hashes only. Access tokens are HS256 JWTs that
carry the principal id, username and role; the authorization gate re-reads
the principal on every request, so a token never grants more than the stored
record allows.
"""
import os
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext
from dotenv import load_dotenv
from pathlib import Path

# Load environment variables from project root
ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# JWT configuration
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")  # Override in every non-dev deployment
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))  # 7 days
JWT_ALG = "HS256"

def hash_password(plain: str) -> str:
    """Argon2 hash of a plain password (salted, safe to store)."""
    return pwd_context.hash(plain)

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

def create_access_token(principal_id: str, username: str, role: str) -> str:
    """
    Issue an access token for a principal.

    Args:
        principal_id: Principal UUID as a string (the "sub" claim)
        username: Login name, for display on the client
        role: "admin", "subadmin", "seller" or "user"

    Returns:
        Encoded JWT with sub, username, role, iat and exp claims
    """
    issued = dt.datetime.now(dt.timezone.utc)
    claims = {
        "sub": principal_id,
        "username": username,
        "role": role,
        "iat": issued,
        "exp": issued + dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALG)

def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry, returning the claims.

    Raises:
        jwt.InvalidTokenError: bad signature, malformed or expired token
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
