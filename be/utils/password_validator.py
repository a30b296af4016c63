"""
Password Strength Validator

Enforced on accounts created through /register:

- Minimum 8 characters
- At least one uppercase letter (A-Z)
- At least one lowercase letter (a-z)
- At least one number (0-9)
- At least one special character (!@#$%^&*(),.?":{}|<>)

Usage:
    from utils.password_validator import validate_password_strength

    is_valid, message = validate_password_strength("MyP@ssw0rd")
"""

import re
from typing import Tuple

MIN_LENGTH = 8

RULES = [
    (r'[A-Z]', "Password must contain at least one uppercase letter (A-Z)"),
    (r'[a-z]', "Password must contain at least one lowercase letter (a-z)"),
    (r'\d', "Password must contain at least one number (0-9)"),
    (r'[!@#$%^&*(),.?":{}|<>]', "Password must contain at least one special character (!@#$%^&*(),.?\":{}|<>)"),
]


def validate_password_strength(password: str) -> Tuple[bool, str]:
    """
    Check a password against the rules above.

    Returns:
        Tuple[bool, str]: (is_valid, message); the message names the first
        rule that failed.
    """
    if len(password) < MIN_LENGTH:
        return False, f"Password must be at least {MIN_LENGTH} characters long"

    for pattern, message in RULES:
        if not re.search(pattern, password):
            return False, message

    return True, "Password meets all security requirements"
