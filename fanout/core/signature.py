"""HMAC signature verification for signed routes."""

import hashlib
import hmac
import os
from collections.abc import Mapping

from .models import DigestAlgorithm, SignatureSpec

_DIGESTS = {
    DigestAlgorithm.SHA256: hashlib.sha256,
    DigestAlgorithm.SHA1: hashlib.sha1,
}


class SignatureVerifier:
    """Checks the keyed digest a sender attached to a request body.

    The secret is resolved from the environment once, at construction.
    After that the verifier holds no mutable state and may be shared by
    any number of concurrent requests.
    """

    def __init__(self, spec: SignatureSpec, environ: Mapping[str, str] | None = None):
        """Initialize the verifier.

        Args:
            spec: Signature settings of the route.
            environ: Environment to resolve the secret from (default os.environ).

        Raises:
            ValueError: If the secret variable is unset or empty.
        """
        env = os.environ if environ is None else environ
        secret = env.get(spec.secret_env, "")
        if not secret:
            raise ValueError(f"signature secret env {spec.secret_env} is not set")

        self.header_name = spec.header_name
        self.prefix = spec.prefix
        self.algorithm = spec.algorithm
        self._secret = secret.encode()

    def compute(self, raw_body: bytes) -> str:
        """Return the prefixed hex digest expected for ``raw_body``."""
        mac = hmac.new(self._secret, raw_body, _DIGESTS[self.algorithm])
        return self.prefix + mac.hexdigest()

    def verify(self, raw_body: bytes, provided_signature: str) -> bool:
        """Compare ``provided_signature`` with the expected digest.

        An empty signature never verifies. The comparison runs in constant
        time.
        """
        if not provided_signature:
            return False
        return hmac.compare_digest(
            provided_signature.encode(), self.compute(raw_body).encode()
        )
