"""
Test cases for password hashing.
"""
import pytest
from backoffice.auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher


def test_hash_is_salted_per_call(hasher):
    first = hasher.hash("secret123")
    second = hasher.hash("secret123")

    assert first != second
    assert hasher.verify("secret123", first)
    assert hasher.verify("secret123", second)


def test_digest_embeds_cost_factor(hasher):
    digest = hasher.hash("secret123")
    assert digest.startswith("$2b$04$")
    assert "secret123" not in digest


def test_wrong_password_does_not_verify(hasher):
    digest = hasher.hash("secret123")
    assert hasher.verify("wrong", digest) is False
    assert hasher.verify("Secret123", digest) is False


@pytest.mark.parametrize("digest", [
    "",
    "not-a-bcrypt-digest",
    "$2b$04$tooshort",
    "5f4dcc3b5aa765d61d8327deb882cf99",  # legacy md5 record
])
def test_malformed_digest_fails_closed(hasher, digest):
    assert hasher.verify("password", digest) is False


def test_non_string_inputs_fail_closed(hasher):
    digest = hasher.hash("secret123")
    assert hasher.verify(None, digest) is False
    assert hasher.verify("secret123", None) is False


def test_overlong_password_is_rejected(hasher):
    too_long = "a" * (MAX_PASSWORD_BYTES + 1)
    with pytest.raises(ValueError):
        hasher.hash(too_long)
    # Never silently truncated into a match
    digest = hasher.hash("a" * MAX_PASSWORD_BYTES)
    assert hasher.verify(too_long, digest) is False


def test_multibyte_limit_counts_bytes(hasher):
    # 25 three-byte characters: 25 chars, 75 bytes
    with pytest.raises(ValueError):
        hasher.hash("€" * 25)


def test_dummy_verification_never_matches(hasher):
    assert hasher.verify_dummy("anything") is False
    assert hasher.verify("anything", hasher.dummy_digest) is False


def test_verifies_digest_of_other_cost():
    strong = PasswordHasher(rounds=5)
    weak = PasswordHasher(rounds=4)
    assert weak.verify("secret123", strong.hash("secret123"))
