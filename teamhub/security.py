from passlib.context import CryptContext


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> tuple[bool, str | None]:
    """Check a password; the second item is a replacement hash when the stored one is outdated."""
    return pwd_context.verify_and_update(plain_password, hashed_password)
