"""Unit tests for SignatureVerifier."""

import hashlib
import hmac

import pytest

from fanout.core.models import DigestAlgorithm, SignatureSpec
from fanout.core.signature import SignatureVerifier

SECRET = "It's a Secret to Everybody"
BODY = b"Hello, World!"


@pytest.fixture
def environ() -> dict[str, str]:
    """Environment holding the webhook secret."""
    return {"WEBHOOK_SECRET": SECRET}


def _spec(**kwargs) -> SignatureSpec:
    defaults = {"header_name": "X-Hub-Signature-256", "secret_env": "WEBHOOK_SECRET"}
    defaults.update(kwargs)
    return SignatureSpec(**defaults)


class TestSignatureVerifier:
    """Tests for digest computation and comparison."""

    def test_known_sha256_digest(self, environ):
        """Matches the digest documented by GitHub for this secret and payload."""
        verifier = SignatureVerifier(_spec(prefix="sha256="), environ)
        expected = (
            "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
        )
        assert verifier.compute(BODY) == expected
        assert verifier.verify(BODY, expected) is True

    def test_sha1_selected_case_insensitively(self, environ):
        """'SHA1' selects the SHA-1 digest."""
        spec = _spec(algorithm=DigestAlgorithm.parse("SHA1"), prefix="sha1=")
        verifier = SignatureVerifier(spec, environ)
        expected = "sha1=" + hmac.new(SECRET.encode(), BODY, hashlib.sha1).hexdigest()
        assert verifier.verify(BODY, expected) is True

    def test_unknown_algorithm_defaults_to_sha256(self):
        """Anything that is not sha1 maps to SHA-256."""
        assert DigestAlgorithm.parse("md5") is DigestAlgorithm.SHA256
        assert DigestAlgorithm.parse("") is DigestAlgorithm.SHA256
        assert DigestAlgorithm.parse(None) is DigestAlgorithm.SHA256

    def test_empty_signature_is_rejected(self, environ):
        """An empty provided signature never verifies."""
        verifier = SignatureVerifier(_spec(), environ)
        assert verifier.verify(BODY, "") is False

    def test_wrong_prefix_is_rejected(self, environ):
        """The prefix is part of the compared value."""
        verifier = SignatureVerifier(_spec(prefix="sha256="), environ)
        bare = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert verifier.verify(BODY, bare) is False

    def test_digest_is_deterministic(self, environ):
        """Same body, secret and algorithm always produce the same digest."""
        verifier = SignatureVerifier(_spec(), environ)
        assert verifier.compute(BODY) == verifier.compute(BODY)

    def test_one_byte_change_changes_digest(self, environ):
        """Altering a single byte of the body produces a different digest."""
        verifier = SignatureVerifier(_spec(), environ)
        tampered = b"Hello, World?"
        assert verifier.compute(BODY) != verifier.compute(tampered)
        assert verifier.verify(tampered, verifier.compute(BODY)) is False

    def test_missing_secret_raises(self):
        """The secret must resolve to a non-empty value."""
        with pytest.raises(ValueError, match="WEBHOOK_SECRET"):
            SignatureVerifier(_spec(), {})
        with pytest.raises(ValueError):
            SignatureVerifier(_spec(), {"WEBHOOK_SECRET": ""})

    def test_secret_resolved_from_process_environment(self, monkeypatch):
        """Without an explicit mapping the secret comes from os.environ."""
        monkeypatch.setenv("WEBHOOK_SECRET", SECRET)
        verifier = SignatureVerifier(_spec())
        expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert verifier.verify(BODY, expected) is True
