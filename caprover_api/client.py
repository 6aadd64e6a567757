"""
CapRover client: one method per control API call.

Methods issue a single request each (update_app and delete_app with
volumes read the app list first). Retrying is the caller's concern,
see RetryingExecutor.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .build import ServiceRuntimeInfo
from .config import ClientConfig, DeploymentContext
from .errors import RemoteOperationError
from .transport import ApiResponse, CaproverTransport

logger = logging.getLogger(__name__)

SYSTEM_INFO_PATH = "/api/v2/user/system/info"
APP_LIST_PATH = "/api/v2/user/apps/appDefinitions"
APP_REGISTER_PATH = "/api/v2/user/apps/appDefinitions/register"
APP_DELETE_PATH = "/api/v2/user/apps/appDefinitions/delete"
ADD_CUSTOM_DOMAIN_PATH = "/api/v2/user/apps/appDefinitions/customdomain"
UPDATE_APP_PATH = "/api/v2/user/apps/appDefinitions/update"
ENABLE_BASE_DOMAIN_SSL_PATH = "/api/v2/user/apps/appDefinitions/enablebasedomainssl"
ENABLE_CUSTOM_DOMAIN_SSL_PATH = "/api/v2/user/apps/appDefinitions/enablecustomdomainssl"
APP_DATA_PATH = "/api/v2/user/apps/appData"
CREATE_BACKUP_PATH = "/api/v2/user/system/createbackup"


def merge_env_vars(current: List[Dict[str, Any]], new: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge key/value env var lists; keys in new win, order of first appearance kept."""
    merged: Dict[str, Any] = {}
    for item in current or []:
        merged[item["key"]] = item["value"]
    for item in new or []:
        merged[item["key"]] = item["value"]
    return [{"key": key, "value": value} for key, value in merged.items()]


class CaproverClient:
    """Thin wrapper over the CapRover app and system endpoints."""

    def __init__(self, config: ClientConfig, transport: Optional[CaproverTransport] = None):
        self.config = config
        self.transport = transport or CaproverTransport(config)
        self.context: Optional[DeploymentContext] = None

    def connect(self) -> DeploymentContext:
        """Log in and read the root domain. Call once before anything else."""
        self.transport.login()
        info = self.get_system_info()
        self.context = DeploymentContext(
            base_url=self.config.base_url,
            namespace=self.config.namespace,
            schema_version=self.config.schema_version,
            root_domain=info.data["rootDomain"],
        )
        logger.info(f"Connected to {self.context.base_url} (root domain {self.context.root_domain})")
        return self.context

    def get_system_info(self) -> ApiResponse:
        return self.transport.get(SYSTEM_INFO_PATH)

    def list_apps(self) -> List[Dict[str, Any]]:
        return self.transport.get(APP_LIST_PATH).data["appDefinitions"]

    def get_app(self, app_name: str) -> Optional[Dict[str, Any]]:
        for app in self.list_apps():
            if app.get("appName") == app_name:
                return app
        return None

    def register_app(self, app_name: str, has_persistent_data: bool = False) -> ApiResponse:
        logger.info(f"Creating new app: {app_name}")
        return self.transport.post(APP_REGISTER_PATH, {
            "appName": app_name,
            "hasPersistentData": has_persistent_data,
        })

    def update_app(self, app_name: str, **updates) -> ApiResponse:
        """
        Merge updates into the app's current definition and post it.

        envVars are merged by key with the existing ones; every other
        field replaces the current value.

        Raises:
            RemoteOperationError: If the app does not exist
        """
        logger.info(f"{app_name} | Updating app info...")
        current = self.get_app(app_name)
        if current is None:
            raise RemoteOperationError(f"App '{app_name}' not found.")

        if "envVars" in updates:
            updates["envVars"] = merge_env_vars(current.get("envVars", []), updates["envVars"])

        data = {**current, **updates, "appName": app_name}
        return self.transport.post(UPDATE_APP_PATH, data)

    def deploy_app(self, app_name: str, image_name: Optional[str] = None,
                   dockerfile_lines: Optional[List[str]] = None) -> ApiResponse:
        """
        Push a captain definition. Does not wait for the build.

        Raises:
            ValueError: If neither image_name nor dockerfile_lines is given
        """
        definition: Dict[str, Any] = {"schemaVersion": self.config.schema_version}
        if image_name:
            definition["imageName"] = image_name
        elif dockerfile_lines:
            definition["dockerfileLines"] = list(dockerfile_lines)
        else:
            raise ValueError("Either image_name or dockerfile_lines must be provided.")

        logger.info(f"{app_name} | Deploying {image_name or 'custom dockerfile'}")
        return self.transport.post(f"{APP_DATA_PATH}/{app_name}", {
            "captainDefinitionContent": json.dumps(definition),
            "gitHash": "",
        })

    def get_runtime_info(self, app_name: str) -> ServiceRuntimeInfo:
        data = self.transport.get(f"{APP_DATA_PATH}/{app_name}").data or {}
        return ServiceRuntimeInfo(
            is_building=bool(data.get("isAppBuilding")),
            is_build_failed=bool(data.get("isBuildFailed")),
        )

    def delete_app(self, app_name: str, delete_volumes: bool = False) -> ApiResponse:
        data: Dict[str, Any] = {"appName": app_name}
        if delete_volumes:
            logger.info(f"Deleting app {app_name} and its volumes...")
            app = self.get_app(app_name)
            if app is None:
                raise RemoteOperationError(f"App {app_name} not found.")
            data["volumes"] = [v["volumeName"] for v in app.get("volumes", []) if v.get("volumeName")]
        else:
            logger.info(f"Deleting app {app_name}")
        return self.transport.post(APP_DELETE_PATH, data)

    def add_domain(self, app_name: str, custom_domain: str) -> ApiResponse:
        logger.info(f"{app_name} | Adding custom domain: {custom_domain}")
        return self.transport.post(ADD_CUSTOM_DOMAIN_PATH, {
            "appName": app_name,
            "customDomain": custom_domain,
        })

    def enable_ssl(self, app_name: str, custom_domain: Optional[str] = None) -> ApiResponse:
        if custom_domain:
            logger.info(f"{app_name} | Enabling SSL for custom domain: {custom_domain}")
            return self.transport.post(ENABLE_CUSTOM_DOMAIN_SSL_PATH, {
                "appName": app_name,
                "customDomain": custom_domain,
            })
        logger.info(f"{app_name} | Enabling SSL for default CapRover domain")
        return self.transport.post(ENABLE_BASE_DOMAIN_SSL_PATH, {"appName": app_name})

    def create_backup(self, file_name: Optional[str] = None) -> str:
        """
        Ask the server to build a backup archive.

        Returns:
            Download token for the archive
        """
        if not file_name:
            date_str = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
            file_name = f"{self.config.namespace}-bck-{date_str}.tar"
        logger.info(f"Creating backup file: {file_name}")
        response = self.transport.post(CREATE_BACKUP_PATH, {"postDownloadFileName": file_name})
        return response.data["downloadToken"]
