"""Password strength policy shared by registration, admin user creation and admin resets."""

import re
import secrets
from dataclasses import dataclass, field

MIN_LENGTH = 8
MAX_LENGTH = 100
MIN_UPPERCASE = 1
MIN_LOWERCASE = 1
MIN_NUMBERS = 1
MIN_SPECIAL = 1

COMMON_PASSWORDS = {
    "password",
    "123456",
    "123456789",
    "qwerty",
    "abc123",
    "password123",
    "admin",
    "letmein",
    "welcome",
    "monkey",
    "1234567890",
    "dragon",
    "master",
    "hello",
    "login",
}

UPPERCASE_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE_CHARS = "abcdefghijklmnopqrstuvwxyz"
NUMBER_CHARS = "0123456789"
SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


@dataclass
class PasswordValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    score: int = 0


def validate_password_strength(password: str) -> PasswordValidation:
    errors: list[str] = []
    score = 0

    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    elif len(password) > MAX_LENGTH:
        errors.append(f"Password must not exceed {MAX_LENGTH} characters")
    elif len(password) >= 12:
        score += 2
    else:
        score += 1

    uppercase = len(re.findall(r"[A-Z]", password))
    lowercase = len(re.findall(r"[a-z]", password))
    numbers = len(re.findall(r"\d", password))
    special = len(re.findall(r"[^A-Za-z0-9]", password))

    if uppercase >= MIN_UPPERCASE:
        score += 1
    else:
        errors.append(f"Password must contain at least {MIN_UPPERCASE} uppercase letter(s)")

    if lowercase >= MIN_LOWERCASE:
        score += 1
    else:
        errors.append(f"Password must contain at least {MIN_LOWERCASE} lowercase letter(s)")

    if numbers >= MIN_NUMBERS:
        score += 1
    else:
        errors.append(f"Password must contain at least {MIN_NUMBERS} number(s)")

    if special >= MIN_SPECIAL:
        score += 1
    else:
        errors.append(f"Password must contain at least {MIN_SPECIAL} special character(s)")

    if len(password) >= 16:
        score += 1
    if uppercase >= 2 and lowercase >= 2 and numbers >= 2 and special >= 2:
        score += 1

    return PasswordValidation(is_valid=not errors, errors=errors, score=min(score, 5))


def is_common_password(password: str) -> bool:
    return password.lower() in COMMON_PASSWORDS


def password_policy_errors(password: str) -> list[str]:
    """Every reason the password is rejected, empty when it is acceptable."""
    errors = list(validate_password_strength(password).errors)
    if is_common_password(password):
        errors.append("This password is too common. Please choose a more secure password.")
    return errors


def generate_secure_password(length: int = 16) -> str:
    length = max(length, 4)
    required = [
        secrets.choice(UPPERCASE_CHARS),
        secrets.choice(LOWERCASE_CHARS),
        secrets.choice(NUMBER_CHARS),
        secrets.choice(SPECIAL_CHARS),
    ]
    pool = UPPERCASE_CHARS + LOWERCASE_CHARS + NUMBER_CHARS + SPECIAL_CHARS
    chars = required + [secrets.choice(pool) for _ in range(length - len(required))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
