"""Tests for password hashing."""

from customer_sync.core.security import hash_password, verify_password


def test_hash_is_verifiable_and_salted() -> None:
    first = hash_password("s3nha-forte", rounds=4)
    second = hash_password("s3nha-forte", rounds=4)

    assert first != second
    assert first.startswith("$2")
    assert verify_password("s3nha-forte", first)
    assert not verify_password("outra-senha", first)
