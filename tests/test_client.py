"""
Tests for the single-request client wrappers.
"""

import json
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from caprover_api.build import ServiceRuntimeInfo
from caprover_api.client import CaproverClient, merge_env_vars
from caprover_api.config import ClientConfig
from caprover_api.errors import RemoteOperationError
from caprover_api.transport import ApiResponse

APP_LIST = {
    "appDefinitions": [
        {"appName": "app-1", "instanceCount": 1, "envVars": [{"key": "VAR1", "value": "VAL1"}],
         "volumes": [{"volumeName": "app-1-data", "containerPath": "/data"}, {"hostPath": "/srv", "containerPath": "/srv"}]},
        {"appName": "app-2", "instanceCount": 2, "envVars": []},
    ]
}


def ok(data=None):
    return ApiResponse(status=100, description="ok", data=data if data is not None else {})


def make_client():
    transport = Mock()
    transport.get.return_value = ok(APP_LIST)
    transport.post.return_value = ok()
    client = CaproverClient(ClientConfig(dashboard_url="captain.example.com", password="pw"), transport=transport)
    return client, transport


class TestConnect:
    """Test login and context setup."""

    def test_connect_builds_context(self):
        """Test connect logs in and builds the deployment context."""
        client, transport = make_client()
        transport.get.return_value = ok({"rootDomain": "apps.example.com"})

        context = client.connect()

        transport.login.assert_called_once()
        transport.get.assert_called_once_with("/api/v2/user/system/info")
        assert context.root_domain == "apps.example.com"
        assert context.base_url == "https://captain.example.com"
        assert client.context is context


class TestApps:
    """Test app CRUD calls."""

    def test_list_and_get(self):
        """Test listing and looking up apps."""
        client, transport = make_client()
        assert len(client.list_apps()) == 2
        assert client.get_app("app-1")["instanceCount"] == 1
        assert client.get_app("missing") is None
        transport.get.assert_called_with("/api/v2/user/apps/appDefinitions")

    def test_register_app(self):
        """Test app registration."""
        client, transport = make_client()
        client.register_app("new-app", True)
        transport.post.assert_called_once_with(
            "/api/v2/user/apps/appDefinitions/register", {"appName": "new-app", "hasPersistentData": True}
        )

    def test_update_merges_env_vars(self):
        """Test update merges env vars into the current definition."""
        client, transport = make_client()
        client.update_app("app-1", instanceCount=5, envVars=[{"key": "NEW_VAR", "value": "NEW_VAL"}])

        path, data = transport.post.call_args.args
        assert path == "/api/v2/user/apps/appDefinitions/update"
        assert data["appName"] == "app-1"
        assert data["instanceCount"] == 5
        assert data["envVars"] == [{"key": "VAR1", "value": "VAL1"}, {"key": "NEW_VAR", "value": "NEW_VAL"}]

    def test_update_missing_app(self):
        """Test updating an unknown app."""
        client, transport = make_client()
        with pytest.raises(RemoteOperationError, match="not found"):
            client.update_app("ghost", instanceCount=1)
        transport.post.assert_not_called()

    def test_deploy_image(self):
        """Test deploying an image."""
        client, transport = make_client()
        client.deploy_app("my-app", image_name="nginx:latest")
        transport.post.assert_called_once_with("/api/v2/user/apps/appData/my-app", {
            "captainDefinitionContent": json.dumps({"schemaVersion": 2, "imageName": "nginx:latest"}),
            "gitHash": "",
        })

    def test_deploy_dockerfile_lines(self):
        """Test deploying Dockerfile lines."""
        client, transport = make_client()
        client.deploy_app("my-app", dockerfile_lines=["FROM alpine"])
        body = transport.post.call_args.args[1]
        assert json.loads(body["captainDefinitionContent"]) == {"schemaVersion": 2, "dockerfileLines": ["FROM alpine"]}

    def test_deploy_requires_source(self):
        """Test deploy without a source."""
        client, _ = make_client()
        with pytest.raises(ValueError):
            client.deploy_app("my-app")

    def test_runtime_info(self):
        """Test build flags from app data."""
        client, transport = make_client()
        transport.get.return_value = ok({"isAppBuilding": True, "isBuildFailed": False})
        assert client.get_runtime_info("my-app") == ServiceRuntimeInfo(is_building=True, is_build_failed=False)
        transport.get.assert_called_once_with("/api/v2/user/apps/appData/my-app")

    def test_delete_app(self):
        """Test deleting an app."""
        client, transport = make_client()
        client.delete_app("app-1")
        transport.post.assert_called_once_with("/api/v2/user/apps/appDefinitions/delete", {"appName": "app-1"})

    def test_delete_app_with_volumes(self):
        """Test deleting an app and its volumes."""
        client, transport = make_client()
        client.delete_app("app-1", delete_volumes=True)
        transport.post.assert_called_once_with(
            "/api/v2/user/apps/appDefinitions/delete", {"appName": "app-1", "volumes": ["app-1-data"]}
        )


class TestDomainsAndBackup:
    """Test domain, SSL and backup calls."""

    def test_add_domain(self):
        """Test adding a custom domain."""
        client, transport = make_client()
        client.add_domain("my-app", "test.example.com")
        transport.post.assert_called_once_with(
            "/api/v2/user/apps/appDefinitions/customdomain", {"appName": "my-app", "customDomain": "test.example.com"}
        )

    def test_enable_ssl_custom_domain(self):
        """Test SSL for a custom domain."""
        client, transport = make_client()
        client.enable_ssl("my-app", "test.example.com")
        transport.post.assert_called_once_with(
            "/api/v2/user/apps/appDefinitions/enablecustomdomainssl",
            {"appName": "my-app", "customDomain": "test.example.com"},
        )

    def test_enable_ssl_base_domain(self):
        """Test SSL for the base domain."""
        client, transport = make_client()
        client.enable_ssl("my-app")
        transport.post.assert_called_once_with(
            "/api/v2/user/apps/appDefinitions/enablebasedomainssl", {"appName": "my-app"}
        )

    def test_create_backup(self):
        """Test backup with an explicit file name."""
        client, transport = make_client()
        transport.post.return_value = ok({"downloadToken": "tok"})
        assert client.create_backup("my-backup.tar") == "tok"
        transport.post.assert_called_once_with(
            "/api/v2/user/system/createbackup", {"postDownloadFileName": "my-backup.tar"}
        )

    def test_create_backup_default_name(self):
        """Test the default backup file name."""
        client, transport = make_client()
        transport.post.return_value = ok({"downloadToken": "tok"})
        client.create_backup()
        name = transport.post.call_args.args[1]["postDownloadFileName"]
        assert name.startswith("captain-bck-") and name.endswith(".tar")

    def test_create_backup_default_name_uses_utc(self):
        """Test the default backup name is stamped with an aware UTC time."""
        client, transport = make_client()
        transport.post.return_value = ok({"downloadToken": "tok"})
        stamp = datetime(2024, 3, 1, 12, 30, 5, tzinfo=timezone.utc)
        with patch("caprover_api.client.datetime") as clock:
            clock.now.return_value = stamp
            client.create_backup()
        clock.now.assert_called_once_with(timezone.utc)
        name = transport.post.call_args.args[1]["postDownloadFileName"]
        assert name == "captain-bck-2024-03-01T12-30-05.tar"


def test_merge_env_vars_overrides_existing_key():
    """Test new values override existing keys."""
    merged = merge_env_vars([{"key": "A", "value": "1"}, {"key": "B", "value": "2"}], [{"key": "A", "value": "9"}])
    assert merged == [{"key": "A", "value": "9"}, {"key": "B", "value": "2"}]
