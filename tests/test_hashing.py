"""Tests for bandstage.utils.hashing module."""

from bandstage.utils.hashing import sha256_bytes, sha256_text


class TestSha256Bytes:
    """Tests for sha256_bytes function."""

    def test_empty_bytes(self):
        """Empty bytes should produce known SHA256 hash."""
        expected = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        assert sha256_bytes(b"") == expected

    def test_known_input(self):
        expected = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        assert sha256_bytes(b"hello") == expected

    def test_returns_hex_only(self):
        """Hash should be hex digest only, no prefix."""
        result = sha256_bytes(b"test")
        assert not result.startswith("sha256:")
        assert len(result) == 64
        assert all(c in "0123456789abcdef" for c in result)


class TestSha256Text:
    def test_matches_utf8_bytes(self):
        assert sha256_text("Kick — Kit") == sha256_bytes("Kick — Kit".encode())

    def test_known_input(self):
        assert sha256_text("hello") == (
            "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        )
