"""Tests for daybook.genpass: generators, vault and strength analysis."""

import re
import stat

import pytest

from daybook import genpass
from daybook.errors import NotFoundError, ValidationError


class TestGenerators:

    def test_password_has_every_class(self):
        for _ in range(20):
            value = genpass.generate_password(8)
            assert len(value) == 8
            assert any(c in genpass.LOWER for c in value)
            assert any(c in genpass.UPPER for c in value)
            assert any(c in genpass.DIGITS for c in value)
            assert any(c in genpass.SPECIAL_SAFE for c in value)

    def test_short_password_allowed(self):
        assert len(genpass.generate_password(4)) == 4

    @pytest.mark.parametrize("kind,pattern", [
        ("pin", r"^\d{6}$"),
        ("hex", r"^[0-9a-f]{32}$"),
        ("alpha", r"^[A-Za-z]{16}$"),
        ("alnum", r"^[A-Za-z0-9]{16}$"),
        ("base64", r"^[A-Za-z0-9+/=]{32}$"),
        ("uuid", r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}$"),
    ])
    def test_default_shapes(self, kind, pattern):
        assert re.match(pattern, genpass.generate(kind))

    def test_token_prefix(self):
        assert re.match(r"^sk_[A-Za-z0-9]{32}$", genpass.generate("token", prefix="sk"))

    def test_passphrase_shape(self):
        words = genpass.generate_passphrase(5, ".").split(".")
        assert len(words) == 6
        assert all(w.lower() in genpass.WORDS for w in words[:-1])
        assert re.match(r"^\d{2}$", words[-1])

    def test_unknown_kind(self):
        with pytest.raises(ValidationError, match="Unknown type"):
            genpass.generate("emoji")

    def test_invalid_length(self):
        with pytest.raises(ValidationError):
            genpass.generate("pin", 0)


class TestVault:

    def test_save_requires_generated_value(self):
        with pytest.raises(NotFoundError, match="Generate one first"):
            genpass.save_secret("db")

    def test_save_get_delete(self):
        genpass.remember("hunter2hunter2")
        assert genpass.save_secret("db") is False
        assert genpass.get_secret("db") == "hunter2hunter2"
        genpass.remember("other-value-123")
        assert genpass.save_secret("db") is True
        assert genpass.get_secret("db") == "other-value-123"
        assert len(genpass.list_secrets()) == 1
        genpass.delete_secret("db")
        with pytest.raises(NotFoundError):
            genpass.get_secret("db")

    def test_files_are_private(self):
        genpass.remember("secret-value")
        genpass.save_secret("x")
        assert stat.S_IMODE(genpass.last_path().stat().st_mode) == 0o600
        assert stat.S_IMODE(genpass.vault_store().path.stat().st_mode) == 0o600

    def test_mask(self):
        assert genpass.mask("short") == "*****"
        assert genpass.mask("abcdefghijkl") == "abcd****ijkl"


class TestStrength:

    def test_excellent(self):
        assert genpass.analyze_strength("Abcdefgh1234!@#$")["rating"] == "EXCELLENT"

    def test_weak(self):
        result = genpass.analyze_strength("abc")
        assert result["rating"] == "WEAK"
        assert result["pool"] == 26

    def test_fair(self):
        assert genpass.analyze_strength("abcdefg1")["rating"] == "FAIR"

    def test_entropy(self):
        assert genpass.analyze_strength("aaaa")["entropy"] == pytest.approx(4 * 4.7, abs=0.01)


class TestCli:

    def test_bare_number_is_password_length(self, run_main, capsys):
        assert run_main(genpass, "24") == 0
        value = capsys.readouterr().out.strip()
        assert len(value) == 24
        assert genpass.last_generated() == value

    def test_default_is_password(self, run_main, capsys):
        assert run_main(genpass) == 0
        assert len(capsys.readouterr().out.strip()) == 16

    def test_short_password_warns(self, run_main, capsys):
        assert run_main(genpass, "password", "6") == 0
        assert "weak" in capsys.readouterr().err

    def test_save_and_get(self, run_main, capsys):
        run_main(genpass, "hex", "10")
        value = capsys.readouterr().out.strip()
        assert run_main(genpass, "save", "api") == 0
        capsys.readouterr()
        assert run_main(genpass, "get", "api") == 0
        assert capsys.readouterr().out.strip() == value

    def test_missing_secret_exits_one(self, run_main):
        assert run_main(genpass, "get", "nope") == 1
