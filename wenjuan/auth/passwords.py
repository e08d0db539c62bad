from passlib.context import CryptContext

# pbkdf2_sha256 is implemented by passlib itself, so no native backend is needed.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(password, hashed_password)
    except ValueError:
        # Value is not a recognised hash, e.g. a row written before hashing was introduced.
        return False
