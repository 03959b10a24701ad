import hashlib

from passlib.context import CryptContext

from chat_engine.core.constants import SECURITY_CODE_GROUP_SIZE, SECURITY_CODE_LENGTH

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_pin(pin: str) -> str:
    return str(pwd_context.hash(pin))


def verify_pin(plain_pin: str, hashed_pin: str) -> bool:
    return bool(pwd_context.verify(plain_pin, hashed_pin))


def generate_security_code(public_key: str) -> str:
    """Derive a numeric verification code from a public key.

    Each hex digit of the SHA-256 digest is reduced modulo 10, cycling
    through the digest until the code is SECURITY_CODE_LENGTH digits long.
    """
    digest = hashlib.sha256(public_key.encode()).hexdigest()
    return "".join(
        str(int(digest[i % len(digest)], 16) % 10) for i in range(SECURITY_CODE_LENGTH)
    )


def format_security_code(code: str | None) -> str | None:
    if not code:
        return None
    return " ".join(
        code[i : i + SECURITY_CODE_GROUP_SIZE]
        for i in range(0, len(code), SECURITY_CODE_GROUP_SIZE)
    )
