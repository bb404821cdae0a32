"""Password hashing, verification and strength rules."""
import re
from dataclasses import dataclass, field

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8
# bcrypt hard limit: 72 bytes (UTF-8)
MAX_PASSWORD_BYTES = 72

_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_DIGIT_RE = re.compile(r"\d")
_SPECIAL_RE = re.compile(r"[^A-Za-z0-9]")


@dataclass
class PasswordCheck:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    """Check a password against a stored hash; False on any unusable hash."""
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # passlib raises ValueError for hashes it cannot identify
        return False


def validate_password_strength(password: str) -> PasswordCheck:
    """Return every violated rule, not just the first one."""
    pwd = password or ""
    errors = []
    if len(pwd) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(pwd.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    if not _UPPER_RE.search(pwd):
        errors.append("Password must contain at least one uppercase letter")
    if not _LOWER_RE.search(pwd):
        errors.append("Password must contain at least one lowercase letter")
    if not _DIGIT_RE.search(pwd):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_RE.search(pwd):
        errors.append("Password must contain at least one special character")
    return PasswordCheck(is_valid=not errors, errors=errors)
