"""Unit tests for pull credential and secret models."""

import base64
import json

import pytest

from image_mirror_webhook.constants import (
    DOCKER_CONFIG_JSON_KEY,
    SECRET_TYPE_DOCKER_CONFIG_JSON,
)
from image_mirror_webhook.models.credential import (
    SECRET_NAME_PATTERN,
    DockerConfigSecret,
    PullCredential,
    format_secret_name,
)


def make_credential(username="robot$ci", password="s3cret"):
    return PullCredential(
        registry_url="https://mirror.example.com/v2/",
        username=username,
        password=password,
        email=f"{username}@mirror.example.com",
    )


class TestFormatSecretName:
    """Test secret name derivation."""

    def test_plain_username(self):
        assert format_secret_name("admin") == "image.pulling.secret.admin"

    def test_harbor_robot_account(self):
        assert format_secret_name("robot$ci") == "image.pulling.secret.robotx24ci"

    def test_uppercase_is_escaped(self):
        assert format_secret_name("Admin") == "image.pulling.secret.x41dmin"

    def test_escape_marker_is_escaped(self):
        assert format_secret_name("xbox") == "image.pulling.secret.x78box"

    def test_wide_character(self):
        assert format_secret_name("ā") == "image.pulling.secret.xu000101"

    def test_custom_prefix(self):
        assert format_secret_name("admin", prefix="pull-") == "pull-admin"

    def test_distinct_usernames_never_collide(self):
        usernames = [
            "a-b", "a.b", "a$b", "a_b", "ax2db", "ab", "a--b", "aā", "x", "x78", "X",
        ]
        names = {format_secret_name(u) for u in usernames}
        assert len(names) == len(usernames)

    @pytest.mark.parametrize(
        "username",
        [
            "admin",
            "Admin",
            "$robot",
            "_svc",
            "robot$ci",
            "-lead",
            "trail-",
            "a.b",
            "ünïcødé",
            "用户",
            "robot$" + "Z" * 300,
        ],
    )
    def test_names_are_valid_kubernetes_names(self, username):
        name = format_secret_name(username)
        assert SECRET_NAME_PATTERN.match(name), name
        assert len(name) <= 253

    def test_long_names_are_capped_and_stay_distinct(self):
        first = format_secret_name("u" * 300 + "1")
        second = format_secret_name("u" * 300 + "2")

        assert len(first) == 253
        assert first != second
        assert SECRET_NAME_PATTERN.match(first)
        assert first.startswith("image.pulling.secret.uuu")

    def test_long_names_are_stable(self):
        assert format_secret_name("A" * 200) == format_secret_name("A" * 200)


class TestPullCredential:
    """Test PullCredential."""

    def test_auth_is_base64_of_user_and_password(self):
        credential = make_credential()
        assert base64.b64decode(credential.auth).decode() == "robot$ci:s3cret"

    def test_docker_config(self):
        config = make_credential().docker_config()
        entry = config["auths"]["https://mirror.example.com/v2/"]
        assert entry["username"] == "robot$ci"
        assert entry["password"] == "s3cret"
        assert entry["email"] == "robot$ci@mirror.example.com"
        assert entry["auth"] == base64.b64encode(b"robot$ci:s3cret").decode()

    def test_password_hidden_in_repr(self):
        assert "s3cret" not in repr(make_credential())


class TestDockerConfigSecret:
    """Test DockerConfigSecret."""

    def test_for_credential(self):
        secret = DockerConfigSecret.for_credential(
            "team-a", make_credential(), owner="image-mirror-webhook"
        )
        assert secret.name == "image.pulling.secret.robotx24ci"
        assert secret.namespace == "team-a"
        assert secret.labels == {"owner": "image-mirror-webhook"}
        assert secret.type == SECRET_TYPE_DOCKER_CONFIG_JSON

    def test_to_body(self):
        secret = DockerConfigSecret.for_credential(
            "team-a", make_credential(), owner="tars"
        )
        body = secret.to_body()

        assert body["apiVersion"] == "v1"
        assert body["kind"] == "Secret"
        assert body["metadata"] == {
            "name": "image.pulling.secret.robotx24ci",
            "namespace": "team-a",
            "labels": {"owner": "tars"},
        }
        assert body["type"] == "kubernetes.io/dockerconfigjson"
        decoded = json.loads(base64.b64decode(body["data"][DOCKER_CONFIG_JSON_KEY]))
        assert decoded == make_credential().docker_config()

    def test_payload_matches_body_data(self):
        secret = DockerConfigSecret.for_credential("ns", make_credential(), owner="o")
        data = secret.to_body()["data"][DOCKER_CONFIG_JSON_KEY]
        assert base64.b64decode(data) == secret.payload()
