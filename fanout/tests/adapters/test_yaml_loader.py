"""Tests for the YAML route loader."""

from pathlib import Path

import pytest

from fanout.adapters.routes.yaml_loader import RouteConfigError, load_routes, parse_routes
from fanout.core.models import DigestAlgorithm

TEST_CONFIG = """
webhooks:
  - path: /webhook/test1
    method: POST
    response:
      headers:
        - name: Content-Type
          value: text/plain
        - name: X-Token
          valueFromEnv: RESPONSE_TOKEN
      body: ok
      code: 200
    targets:
      - http://localhost:9002/a
      - http://localhost:9003/b
  - path: /test2
    method: POST
    signature:
      headerName: X-Hub-Signature-256
      prefix: "sha256="
      secretFromEnv: GITHUB_SECRET
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(TEST_CONFIG)
    return path


class TestLoadRoutes:
    """Tests for reading the config file."""

    def test_load_valid_config(self, config_file):
        routes = load_routes(config_file, environ={"GITHUB_SECRET": "secret"})

        assert [r.path for r in routes] == ["/webhook/test1", "/test2"]

        first = routes[0]
        assert first.method == "POST"
        assert first.response.code == 200
        assert first.response.body == "ok"
        assert first.response.headers[1].value_from_env == "RESPONSE_TOKEN"
        assert first.targets == ("http://localhost:9002/a", "http://localhost:9003/b")
        assert first.signature is None

        second = routes[1]
        assert second.response.code == 204
        assert second.targets == ()
        assert second.signature is not None
        assert second.signature.header_name == "X-Hub-Signature-256"
        assert second.signature.algorithm is DigestAlgorithm.SHA256
        assert second.signature.prefix == "sha256="

    def test_missing_file(self, tmp_path):
        with pytest.raises(RouteConfigError, match="unable to read"):
            load_routes(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("webhooks: [\n  - path: /a\n")
        with pytest.raises(RouteConfigError, match="unable to parse"):
            load_routes(path)

    def test_empty_file_has_no_routes(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_routes(path) == []


class TestValidation:
    """Static validation performed before serving."""

    @pytest.mark.parametrize(
        "paths",
        [[""], ["path"], ["/wh", "/wh", "/path/wh3"]],
        ids=["empty_path", "without_slash", "duplicate_paths"],
    )
    def test_invalid_paths(self, paths):
        with pytest.raises(RouteConfigError):
            parse_routes({"webhooks": [{"path": p} for p in paths]}, environ={})

    def test_valid_paths(self):
        data = {"webhooks": [{"path": "/wh1"}, {"path": "/wh2"}, {"path": "/path/wh3"}]}
        assert len(parse_routes(data, environ={})) == 3

    def test_signature_requires_header_and_secret_env(self):
        data = {"webhooks": [{"path": "/wh", "signature": {"secretFromEnv": "S"}}]}
        with pytest.raises(RouteConfigError, match="header and secret env"):
            parse_routes(data, environ={"S": "x"})

    def test_signature_secret_must_be_set(self):
        data = {
            "webhooks": [
                {"path": "/wh", "signature": {"headerName": "X-Sig", "secretFromEnv": "S"}}
            ]
        }
        with pytest.raises(RouteConfigError, match="secret env"):
            parse_routes(data, environ={"S": ""})

    @pytest.mark.parametrize("alg", ["sha256", "SHA256", "sha1"])
    def test_supported_algorithms(self, alg):
        data = {
            "webhooks": [
                {
                    "path": "/wh",
                    "signature": {"headerName": "X-Sig", "secretFromEnv": "S", "alg": alg},
                }
            ]
        }
        routes = parse_routes(data, environ={"S": "x"})
        assert routes[0].signature.algorithm is DigestAlgorithm.parse(alg)

    def test_unsupported_algorithm(self):
        data = {
            "webhooks": [
                {
                    "path": "/wh",
                    "signature": {"headerName": "X-Sig", "secretFromEnv": "S", "alg": "md5"},
                }
            ]
        }
        with pytest.raises(RouteConfigError, match="unsupported alg"):
            parse_routes(data, environ={"S": "x"})

    @pytest.mark.parametrize("target", ["localhost:9000", "ftp://host/x", "/relative"])
    def test_invalid_target(self, target):
        data = {"webhooks": [{"path": "/wh", "targets": [target]}]}
        with pytest.raises(RouteConfigError):
            parse_routes(data, environ={})

    def test_invalid_response_code(self):
        data = {"webhooks": [{"path": "/wh", "response": {"code": 999}}]}
        with pytest.raises(RouteConfigError):
            parse_routes(data, environ={})

    def test_unknown_field_rejected(self):
        data = {"webhooks": [{"path": "/wh", "taregts": ["http://a"]}]}
        with pytest.raises(RouteConfigError):
            parse_routes(data, environ={})

    def test_method_defaults_to_post(self):
        routes = parse_routes({"webhooks": [{"path": "/wh"}]}, environ={})
        assert routes[0].method == "POST"
