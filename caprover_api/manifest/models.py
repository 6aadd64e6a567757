"""
Typed models for one-click app manifests.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ManifestVariable(BaseModel):
    """A placeholder the manifest author expects the caller to fill in."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    label: str
    default_value: Optional[str] = Field(default=None, alias="defaultValue")
    description: Optional[str] = None
    valid_regex: Optional[str] = Field(default=None, alias="validRegex")

    @field_validator("default_value", mode="before")
    @classmethod
    def stringify_default(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class VolumeMount(BaseModel):
    """Either a host path bind mount or a named volume."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    container_path: str = Field(alias="containerPath")
    host_path: Optional[str] = Field(default=None, alias="hostPath")
    volume_name: Optional[str] = Field(default=None, alias="volumeName")

    @classmethod
    def from_entry(cls, entry: str) -> "VolumeMount":
        """Parse "source:containerPath[:mode]"; a source starting with / is a host path."""
        parts = entry.split(":")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"volume entry {entry!r} must look like source:containerPath")
        source, container_path = parts[0], parts[1]
        if source.startswith("/"):
            return cls(host_path=source, container_path=container_path)
        return cls(volume_name=source, container_path=container_path)

    def to_payload(self) -> Dict[str, str]:
        if self.host_path:
            return {"hostPath": self.host_path, "containerPath": self.container_path}
        return {"volumeName": self.volume_name, "containerPath": self.container_path}


class ServiceExtras(BaseModel):
    """Recognised caproverExtra options."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    not_expose_as_web_app: bool = Field(default=False, alias="notExposeAsWebApp")
    container_http_port: int = Field(default=80, alias="containerHttpPort")
    dockerfile_lines: Optional[List[str]] = Field(default=None, alias="dockerfileLines")

    @field_validator("not_expose_as_web_app", mode="before")
    @classmethod
    def parse_flag(cls, value: Any) -> bool:
        # Manifests write this as the string 'true'
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)

    @field_validator("container_http_port", mode="before")
    @classmethod
    def default_port(cls, value: Any) -> Any:
        return 80 if value in (None, "") else value

    @field_validator("dockerfile_lines", mode="before")
    @classmethod
    def empty_lines(cls, value: Any) -> Any:
        return value or None


def _env_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


class ServiceSpec(BaseModel):
    """One service of a bundle, read-only after parsing."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    image: Optional[str] = None
    depends_on: List[str] = Field(default_factory=list)
    environment: Dict[str, Any] = Field(default_factory=dict)
    volumes: List[VolumeMount] = Field(default_factory=list)
    extras: ServiceExtras = Field(default_factory=ServiceExtras, alias="caproverExtra")

    @field_validator("depends_on", mode="before")
    @classmethod
    def normalize_depends_on(cls, value: Any) -> Any:
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, dict):
            # compose long form: {db: {condition: ...}}
            return list(value)
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value: Any) -> Any:
        if not value:
            return {}
        if isinstance(value, list):
            env = {}
            for item in value:
                key, _, val = str(item).partition("=")
                env[key] = val
            return env
        return value

    @field_validator("volumes", mode="before")
    @classmethod
    def parse_volumes(cls, value: Any) -> Any:
        if not value:
            return []
        if not isinstance(value, list):
            raise ValueError("volumes must be a list")
        return [VolumeMount.from_entry(v) if isinstance(v, str) else v for v in value]

    @field_validator("extras", mode="before")
    @classmethod
    def default_extras(cls, value: Any) -> Any:
        return value or {}

    @model_validator(mode="after")
    def check_build_source(self) -> "ServiceSpec":
        if not self.image and not self.extras.dockerfile_lines:
            raise ValueError(f"service {self.name} needs an image or caproverExtra.dockerfileLines")
        return self

    @property
    def has_persistent_data(self) -> bool:
        return bool(self.volumes)

    def env_vars(self) -> List[Dict[str, str]]:
        return [{"key": key, "value": _env_value(value)} for key, value in self.environment.items()]

    def update_payload(self) -> Dict[str, Any]:
        """App definition fields pushed in the configure step."""
        payload: Dict[str, Any] = {
            "instanceCount": 1,
            "envVars": self.env_vars(),
            "notExposeAsWebApp": self.extras.not_expose_as_web_app,
            "containerHttpPort": self.extras.container_http_port,
        }
        if self.volumes:
            payload["volumes"] = [v.to_payload() for v in self.volumes]
        return payload


class Bundle(BaseModel):
    """A parsed, fully resolved multi-service manifest."""
    model_config = ConfigDict(frozen=True)

    services: Dict[str, ServiceSpec]
    required_variables: List[ManifestVariable] = Field(default_factory=list)
    display_name: Optional[str] = None
    instructions_start: Optional[str] = None
    instructions_end: Optional[str] = None
