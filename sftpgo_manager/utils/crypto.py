import hashlib
import secrets


def hash_token(s: str) -> str:
    return hashlib.sha256(s.encode()).hexdigest()


def random_hex(nbytes: int = 16) -> str:
    """Hex-encoded random bytes (2 * nbytes characters)"""
    return secrets.token_hex(nbytes)
