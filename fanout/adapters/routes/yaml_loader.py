"""YAML route configuration loader.

Reads the webhook config file, validates it with pydantic and turns it
into immutable RouteDefinitions. Any problem is fatal: the caller is
expected to exit before serving.

Example::

    webhooks:
      - path: /webhook/github
        method: POST
        signature:
          headerName: X-Hub-Signature-256
          prefix: "sha256="
          secretFromEnv: GITHUB_WEBHOOK_SECRET
        response:
          headers:
            - name: Content-Type
              value: text/plain
          body: ok
          code: 200
        targets:
          - https://ci.example.com/hooks/github
          - https://chat.example.com/hooks/github
"""

import os
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fanout.core.models import (
    DigestAlgorithm,
    ResponseHeader,
    ResponseSpec,
    RouteDefinition,
    SignatureSpec,
)

_SUPPORTED_ALGORITHMS = {alg.value for alg in DigestAlgorithm}


class RouteConfigError(ValueError):
    """Raised when the route configuration cannot be loaded or is invalid."""


class _HeaderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    value: str = ""
    value_from_env: str = Field(default="", alias="valueFromEnv")


class _ResponseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    headers: list[_HeaderConfig] = Field(default_factory=list)
    body: str = ""
    code: int = 0


class _SignatureConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    header_name: str = Field(default="", alias="headerName")
    alg: str = ""
    prefix: str = ""
    secret_from_env: str = Field(default="", alias="secretFromEnv")


class _WebhookConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = ""
    method: str = "POST"
    signature: _SignatureConfig | None = None
    response: _ResponseConfig = Field(default_factory=_ResponseConfig)
    targets: list[str] = Field(default_factory=list)

    @field_validator("targets")
    @classmethod
    def validate_targets(cls, v: list[str]) -> list[str]:
        """Ensure every target is an absolute http(s) URL."""
        for target in v:
            parts = urlsplit(target)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ValueError(f"target must be an absolute http(s) URL: {target}")
        return v


class _FileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    webhooks: list[_WebhookConfig] = Field(default_factory=list)


def _validate(webhooks: list[_WebhookConfig], environ: Mapping[str, str]) -> None:
    paths: set[str] = set()
    for wh in webhooks:
        if not wh.path:
            raise RouteConfigError(f"empty path not allowed webhook:{wh.path}")
        if not wh.path.startswith("/"):
            raise RouteConfigError(f"path should have '/' prefix webhook:{wh.path}")
        if wh.path in paths:
            raise RouteConfigError(
                f"webhooks path must be unique duplicate found path:{wh.path}"
            )
        paths.add(wh.path)

        sig = wh.signature
        if sig is None:
            continue
        if not sig.header_name or not sig.secret_from_env:
            raise RouteConfigError(
                f"signature's header and secret env name is required webhook:{wh.path}"
            )
        if sig.alg and sig.alg.lower() not in _SUPPORTED_ALGORITHMS:
            raise RouteConfigError(
                f"signature: unsupported alg {sig.alg!r} webhook:{wh.path} "
                f"(supported: {', '.join(sorted(_SUPPORTED_ALGORITHMS))})"
            )
        if not environ.get(sig.secret_from_env):
            raise RouteConfigError(
                f"signature: secret env is not set:{sig.secret_from_env}"
            )


def _to_route(wh: _WebhookConfig) -> RouteDefinition:
    signature = None
    if wh.signature is not None:
        signature = SignatureSpec(
            header_name=wh.signature.header_name,
            secret_env=wh.signature.secret_from_env,
            algorithm=DigestAlgorithm.parse(wh.signature.alg),
            prefix=wh.signature.prefix,
        )
    response = ResponseSpec(
        headers=tuple(
            ResponseHeader(name=h.name, value=h.value, value_from_env=h.value_from_env)
            for h in wh.response.headers
        ),
        body=wh.response.body,
        code=wh.response.code,
    )
    return RouteDefinition(
        path=wh.path,
        method=wh.method,
        signature=signature,
        response=response,
        targets=tuple(wh.targets),
    )


def parse_routes(
    data: object, environ: Mapping[str, str] | None = None
) -> list[RouteDefinition]:
    """Validate already-decoded config data and build route definitions.

    Args:
        data: Decoded YAML document (a mapping with a ``webhooks`` list).
        environ: Environment used to check signature secrets (default os.environ).

    Returns:
        Route definitions in config order.

    Raises:
        RouteConfigError: If the document or any route is invalid.
    """
    env = os.environ if environ is None else environ
    if data is None:
        data = {}

    try:
        config = _FileConfig.model_validate(data)
    except ValidationError as e:
        raise RouteConfigError(f"invalid webhook config: {e}") from e

    _validate(config.webhooks, env)

    try:
        return [_to_route(wh) for wh in config.webhooks]
    except ValueError as e:
        raise RouteConfigError(str(e)) from e


def load_routes(
    config_path: str | Path, environ: Mapping[str, str] | None = None
) -> list[RouteDefinition]:
    """Read and validate the YAML config file.

    Raises:
        RouteConfigError: If the file cannot be read, is not valid YAML,
            or fails validation.
    """
    path = Path(config_path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RouteConfigError(f"unable to read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RouteConfigError(f"unable to parse config file {path}: {e}") from e

    return parse_routes(data, environ)


__all__ = ["RouteConfigError", "load_routes", "parse_routes"]
