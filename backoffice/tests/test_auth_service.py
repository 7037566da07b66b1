"""
Test cases for the register/login orchestration.
"""
import threading
import pytest

from backoffice.auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from backoffice.auth.store import CredentialStore
from backoffice.auth.users import AuthService
from backoffice.errors import (
    CredentialValidationError, InvalidCredentialsError, StoreError
)


class CountingHasher(PasswordHasher):
    """Counts full verifications, dummy ones included."""

    def __init__(self, rounds: int = 4):
        super().__init__(rounds=rounds)
        self.verify_calls = 0

    def verify(self, password, digest):
        self.verify_calls += 1
        return super().verify(password, digest)


class ThreadRecordingHasher(PasswordHasher):
    """Records the thread every hash and verification runs on."""

    def __init__(self, rounds: int = 4):
        self.threads = []
        super().__init__(rounds=rounds)
        # Drop the dummy digest hashed at construction
        self.threads.clear()

    def hash(self, password):
        self.threads.append(threading.get_ident())
        return super().hash(password)

    def verify(self, password, digest):
        self.threads.append(threading.get_ident())
        return super().verify(password, digest)


@pytest.fixture
def auth(user_records, hasher, issuer):
    return AuthService(CredentialStore(user_records), hasher, issuer)


@pytest.mark.asyncio
async def test_register_then_login(auth, issuer):
    principal = await auth.register("a@x.com", "secret123")
    token = await auth.login("a@x.com", "secret123")

    assert token
    assert issuer.verify(token) == principal.id
    assert auth.authenticate(token) == principal.id


@pytest.mark.asyncio
async def test_register_stores_hash_and_no_role(auth, user_records, hasher):
    principal = await auth.register("a@x.com", "secret123")
    record = await user_records.find(principal.id)

    assert record["email"] == "a@x.com"
    assert record["password_hash"] != "secret123"
    assert hasher.verify("secret123", record["password_hash"])
    assert record["role"] is None


@pytest.mark.asyncio
async def test_principal_repr_hides_hash(auth):
    principal = await auth.register("a@x.com", "secret123")
    assert principal.password_hash not in repr(principal)


@pytest.mark.asyncio
async def test_duplicate_email_is_a_store_error(auth, user_records):
    await auth.register("a@x.com", "secret123")
    with pytest.raises(StoreError):
        await auth.register("a@x.com", "other-password")
    assert len(user_records.records) == 1


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_email_fail_identically(auth):
    await auth.register("a@x.com", "secret123")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        await auth.login("a@x.com", "wrong")
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        await auth.login("nouser@x.com", "x")

    assert type(wrong_password.value) is type(unknown_email.value)
    assert str(wrong_password.value) == str(unknown_email.value) == "Invalid credentials"


@pytest.mark.asyncio
async def test_both_login_failures_run_one_verification(user_records, issuer):
    hasher = CountingHasher()
    auth = AuthService(CredentialStore(user_records), hasher, issuer)
    await auth.register("a@x.com", "secret123")

    hasher.verify_calls = 0
    with pytest.raises(InvalidCredentialsError):
        await auth.login("a@x.com", "wrong")
    assert hasher.verify_calls == 1

    hasher.verify_calls = 0
    with pytest.raises(InvalidCredentialsError):
        await auth.login("nouser@x.com", "wrong")
    assert hasher.verify_calls == 1


@pytest.mark.asyncio
async def test_hashing_runs_off_the_event_loop_thread(user_records, issuer):
    hasher = ThreadRecordingHasher()
    auth = AuthService(CredentialStore(user_records), hasher, issuer)
    loop_thread = threading.get_ident()

    await auth.register("a@x.com", "secret123")
    await auth.login("a@x.com", "secret123")
    with pytest.raises(InvalidCredentialsError):
        await auth.login("a@x.com", "wrong")
    with pytest.raises(InvalidCredentialsError):
        await auth.login("nouser@x.com", "wrong")

    assert len(hasher.threads) == 4
    assert loop_thread not in hasher.threads


@pytest.mark.asyncio
async def test_email_is_case_sensitive(auth):
    await auth.register("A@x.com", "secret123")
    with pytest.raises(InvalidCredentialsError):
        await auth.login("a@x.com", "secret123")


@pytest.mark.asyncio
async def test_corrupted_digest_fails_closed(auth, user_records):
    await user_records.insert({"email": "a@x.com", "password_hash": "garbage", "role": None})
    with pytest.raises(InvalidCredentialsError):
        await auth.login("a@x.com", "garbage")


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password", [
    ("", "secret123"),
    ("   ", "secret123"),
    ("a@x.com", ""),
    ("not-an-email", "secret123"),
    ("a@x.com", "a" * (MAX_PASSWORD_BYTES + 1)),
])
async def test_register_rejects_malformed_credentials(auth, user_records, email, password):
    with pytest.raises(CredentialValidationError):
        await auth.register(email, password)
    assert user_records.records == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password", [("", "x"), ("a@x.com", "")])
async def test_login_rejects_missing_credentials(auth, email, password):
    with pytest.raises(CredentialValidationError):
        await auth.login(email, password)


@pytest.mark.asyncio
async def test_store_faults_are_mapped(hasher, issuer, broken_records):
    auth = AuthService(CredentialStore(broken_records), hasher, issuer)

    with pytest.raises(StoreError):
        await auth.register("a@x.com", "secret123")
    with pytest.raises(StoreError):
        await auth.login("a@x.com", "secret123")
