"""Tests for password hashing and validation."""

import pytest

from tsquest.auth.password import (
    PasswordStrengthError,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("TypeSafe42")
        assert hashed.startswith("$argon2id$")
        assert verify_password("TypeSafe42", hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("TypeSafe42")
        assert verify_password("TypeSafe43", hashed) is False

    def test_garbage_hash_rejected(self):
        assert verify_password("TypeSafe42", "not-a-hash") is False


class TestPasswordStrength:
    def test_valid_password(self):
        validate_password_strength("generics4ever")  # Should not raise

    @pytest.mark.parametrize(
        "password",
        ["", "   ", "short1", "nodigitshere", "1234567890", "a1" * 65],
    )
    def test_weak_passwords_rejected(self, password: str):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength(password)
