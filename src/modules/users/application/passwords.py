"""Password helpers for accounts created through magic links."""

import secrets

import bcrypt

# bcrypt cost factor
BCRYPT_ROUNDS = 12


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def new_placeholder_password_hash() -> str:
    """Hash of a random password that is never shown to anyone.

    Magic-link accounts sign in without a password; the placeholder only fills
    the credential column.
    """
    return hash_password(secrets.token_urlsafe(32))
