"""Password hashing, strength scoring and random secrets."""
import hashlib
import re
import secrets
import string
from dataclasses import dataclass, field

import bcrypt
from intake_portal.config import get_settings

MIN_PASSWORD_LENGTH = 8
SYMBOLS = "!@#$%^&*"
TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits + SYMBOLS
DEFAULT_TOKEN_BYTES = 32


@dataclass(frozen=True)
class PasswordStrength:
    valid: bool
    score: int
    errors: list[str] = field(default_factory=list)


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def hash_password(plaintext: str) -> str:
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_pwd_bytes(plaintext), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plaintext: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_pwd_bytes(plaintext), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash ("Invalid salt")
        return False


def validate_password_strength(plaintext: str) -> PasswordStrength:
    """Check every rule and report all that fail. Never raises."""
    password = plaintext or ""
    errors: list[str] = []
    score = 0

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    else:
        score += 1
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    else:
        score += 1
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    else:
        score += 1
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    else:
        score += 1
    if not re.search(r"[^A-Za-z0-9]", password):
        errors.append("Password must contain at least one special character")
    else:
        score += 1

    if len(password) >= 12:
        score += 1
    if len(password) >= 16:
        score += 1

    return PasswordStrength(valid=not errors, score=min(score, 5), errors=errors)


def generate_token(byte_length: int = DEFAULT_TOKEN_BYTES) -> str:
    return secrets.token_hex(byte_length)


def generate_temporary_password(length: int = 16) -> str:
    """Random password with at least one upper, lower, digit and symbol."""
    length = max(length, 4)
    chars = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(SYMBOLS),
    ]
    chars.extend(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def hash_secret(value: str) -> str:
    """sha256 for high-entropy secrets (refresh tokens, login codes, API secrets). Not for passwords."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_login_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"
