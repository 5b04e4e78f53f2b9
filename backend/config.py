"""
Configuration and shared helpers
"""

import os
import re
import hashlib
import secrets
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'pharma_field_sales')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
SESSION_TTL_DAYS = int(os.environ.get('SESSION_TTL_DAYS', '7'))

# Link placed in notification emails
PORTAL_URL = os.environ.get('PORTAL_URL', 'http://localhost:3000')


# ==================== HELPERS ====================

# No 0/O or 1/I/L, so a temp password can be read off an email reliably
TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
TEMP_PASSWORD_LENGTH = 10


def hash_password(password: str) -> str:
    """SHA256 hash of a password"""
    return hashlib.sha256(password.encode()).hexdigest()

def generate_token() -> str:
    """Secure session token"""
    return secrets.token_urlsafe(32)

def generate_temp_password() -> str:
    """Random temporary password handed to a newly approved MR"""
    return ''.join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(TEMP_PASSWORD_LENGTH))

def now_iso() -> str:
    """Current UTC date/time in ISO format"""
    return datetime.now(timezone.utc).isoformat()


# ==================== VALIDATION ====================

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(email: str) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_phone_in(phone: str) -> tuple[bool, str]:
    """
    Normalizes an Indian mobile number to its 10 bare digits.

    Accepted inputs: "98765 43210", "098765-43210", "+91 9876543210",
    "919876543210". Anything that does not reduce to exactly 10 digits
    is rejected.

    Returns: (is_valid, digits_or_error)
    """
    if not phone or not phone.strip():
        return False, "Phone number is required"

    digits = ''.join(filter(str.isdigit, phone))

    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    elif len(digits) == 11 and digits.startswith("0"):
        digits = digits[1:]

    if len(digits) != 10:
        return False, f"Phone number must have 10 digits (got {len(digits)})"

    return True, digits


def parse_datetime(value) -> datetime:
    """
    Parses an ISO date or date-time (string or datetime) into an aware UTC
    datetime. Naive values are taken as UTC. Raises ValueError otherwise.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
