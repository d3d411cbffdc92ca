"""
Test per-professor API key encryption.
"""
import pytest
from unittest.mock import MagicMock, patch

from course_inbox.core.courses.encryption import decrypt_api_key, encrypt_api_key

API_KEY = "sk-ant-test-0123456789"
PROFESSOR = "prof@university.edu"


class TestApiKeyEncryption:

    def test_round_trip(self):
        token = encrypt_api_key(API_KEY, PROFESSOR)

        assert API_KEY not in token
        assert decrypt_api_key(token, PROFESSOR) == API_KEY

    def test_email_is_case_insensitive(self):
        token = encrypt_api_key(API_KEY, "Prof@University.edu")
        assert decrypt_api_key(token, PROFESSOR) == API_KEY

    def test_wrong_email_fails(self):
        token = encrypt_api_key(API_KEY, PROFESSOR)
        with pytest.raises(ValueError, match="Failed to decrypt API key"):
            decrypt_api_key(token, "someone-else@university.edu")

    def test_wrong_secret_fails(self):
        token = encrypt_api_key(API_KEY, PROFESSOR, secret="secret-one")
        with pytest.raises(ValueError):
            decrypt_api_key(token, PROFESSOR, secret="secret-two")

    def test_random_salt_per_encryption(self):
        first = encrypt_api_key(API_KEY, PROFESSOR)
        second = encrypt_api_key(API_KEY, PROFESSOR)

        assert first != second
        assert first.split(".", 1)[0] != second.split(".", 1)[0]

    def test_malformed_token(self):
        with pytest.raises(ValueError):
            decrypt_api_key("not-a-token", PROFESSOR)

    def test_missing_secret(self):
        settings = MagicMock(encryption_secret=None)
        with patch("course_inbox.core.courses.encryption.get_settings", return_value=settings):
            with pytest.raises(ValueError, match="ENCRYPTION_SECRET not set"):
                encrypt_api_key(API_KEY, PROFESSOR)
