from passlib.context import CryptContext

from .config import BCRYPT_ROUNDS

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _truncate(password: str) -> str:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES].decode("utf-8", "ignore")


class PasswordHasher:
    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.pwd_context.hash(_truncate(password))

    def verify(self, password: str, hashed: str) -> bool:
        """Check ``password`` against ``hashed``; a malformed hash is a mismatch, not an error."""
        if not hashed:
            return False
        try:
            return self.pwd_context.verify(_truncate(password), hashed)
        except (ValueError, TypeError):
            return False
