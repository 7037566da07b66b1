"""
Password hashing.

Digests are bcrypt strings ("$2b$<cost>$<salt><hash>"), so the salt and cost
factor travel with the digest and verification needs nothing else.
"""
import secrets
import bcrypt

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72
DEFAULT_ROUNDS = 12


class PasswordHasher:
    """
    Salted one-way password hashing with verification.

    Args:
        rounds: bcrypt cost factor (log2 of the iteration count)
    """
    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self.rounds = rounds
        # Verified against on the unknown-email path so both login failures cost the same
        self.dummy_digest = self.hash(secrets.token_urlsafe(16))

    def hash(self, password: str) -> str:
        """
        Hash a password with a freshly generated salt.

        Raises:
            ValueError: If the password exceeds MAX_PASSWORD_BYTES
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, digest: str) -> bool:
        """
        Check a password against a stored digest.

        bcrypt compares in constant time. A digest that is not a valid bcrypt
        string (corrupted or legacy record) verifies as False.
        """
        if not isinstance(password, str) or not isinstance(digest, str):
            return False
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Never matches; still pay for one bcrypt round trip
            bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], self.dummy_digest.encode("utf-8"))
            return False
        try:
            return bcrypt.checkpw(encoded, digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, password: str) -> bool:
        """Run a full verification that can never succeed."""
        self.verify(password, self.dummy_digest)
        return False
