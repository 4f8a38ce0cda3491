from finance_tracker.security import PasswordHasher


class TestPasswordHasher:
    def test_hash_is_not_plaintext(self, hasher):
        hashed = hasher.hash("segredo123")
        assert hashed != "segredo123"
        assert hashed.startswith("$2b$04$")

    def test_hash_is_salted(self, hasher):
        assert hasher.hash("segredo123") != hasher.hash("segredo123")

    def test_verify_roundtrip(self, hasher):
        hashed = hasher.hash("segredo123")
        assert hasher.verify("segredo123", hashed) is True
        assert hasher.verify("errada", hashed) is False

    def test_malformed_hash_is_a_mismatch(self, hasher):
        assert hasher.verify("segredo123", "not-a-hash") is False
        assert hasher.verify("segredo123", "$2b$10$short") is False
        assert hasher.verify("segredo123", "") is False
        assert hasher.verify("segredo123", None) is False

    def test_long_password_uses_first_72_bytes(self, hasher):
        password = "a" * 100
        hashed = hasher.hash(password)
        assert hasher.verify(password, hashed) is True
        assert hasher.verify("a" * 72, hashed) is True

    def test_default_cost_is_ten_rounds(self):
        assert PasswordHasher().hash("x").startswith("$2b$10$")
