"""
models.py
- Typed view of the Docker Engine service objects returned by GET /services.
- Attributes are snake_case; field aliases carry the engine's capitalized JSON keys.
- Every model keeps the keys it does not declare, so a spec sent back on update
  carries everything the engine returned, not only what is modelled here.
- Models are frozen. A changed spec is always a new value (see with_image).
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Well-known Labels ---
STACK_IMAGE_LABEL = "com.docker.stack.image"

# Engine timestamps carry nanoseconds; datetime holds microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class EngineModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    def to_engine(self):
        """
        Serialize back to the engine's JSON shape.

        Only fields the engine actually sent (or that were replaced through
        model_copy) are emitted, so absent optional fields stay absent.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# --- Container Spec ---
class Privileges(EngineModel):
    credential_spec: Optional[Dict[str, Any]] = Field(default=None, alias="CredentialSpec")
    selinux_context: Optional[Dict[str, Any]] = Field(default=None, alias="SELinuxContext")


class DriverConfig(EngineModel):
    name: Optional[str] = Field(default=None, alias="Name")
    options: Optional[Dict[str, str]] = Field(default=None, alias="Options")


class VolumeOptions(EngineModel):
    labels: Optional[Dict[str, str]] = Field(default=None, alias="Labels")
    driver_config: Optional[DriverConfig] = Field(default=None, alias="DriverConfig")


class Mount(EngineModel):
    type: str = Field(alias="Type")
    source: Optional[str] = Field(default=None, alias="Source")
    target: str = Field(alias="Target")
    volume_options: Optional[VolumeOptions] = Field(default=None, alias="VolumeOptions")


class ConfigFile(EngineModel):
    name: str = Field(alias="Name")
    uid: str = Field(alias="UID")
    gid: str = Field(alias="GID")
    mode: int = Field(alias="Mode")


class ConfigReference(EngineModel):
    file: Optional[ConfigFile] = Field(default=None, alias="File")
    config_id: str = Field(alias="ConfigID")
    config_name: str = Field(alias="ConfigName")


class HealthCheck(EngineModel):
    test: Optional[List[str]] = Field(default=None, alias="Test")
    interval: Optional[int] = Field(default=None, alias="Interval")
    timeout: Optional[int] = Field(default=None, alias="Timeout")
    retries: Optional[int] = Field(default=None, alias="Retries")


class ContainerSpec(EngineModel):
    image: str = Field(alias="Image")
    labels: Optional[Dict[str, str]] = Field(default=None, alias="Labels")
    args: Optional[List[str]] = Field(default=None, alias="Args")
    env: Optional[List[str]] = Field(default=None, alias="Env")
    privileges: Optional[Privileges] = Field(default=None, alias="Privileges")
    mounts: Optional[List[Mount]] = Field(default=None, alias="Mounts")
    configs: Optional[List[ConfigReference]] = Field(default=None, alias="Configs")
    health_check: Optional[HealthCheck] = Field(default=None, alias="Healthcheck")
    isolation: Optional[str] = Field(default=None, alias="Isolation")


# --- Task Template ---
class Placement(EngineModel):
    constraints: Optional[List[str]] = Field(default=None, alias="Constraints")
    platforms: Optional[List[Dict[str, str]]] = Field(default=None, alias="Platforms")


class NetworkAttachment(EngineModel):
    target: str = Field(alias="Target")
    aliases: Optional[List[str]] = Field(default=None, alias="Aliases")


class Resources(EngineModel):
    limits: Optional[Dict[str, Any]] = Field(default=None, alias="Limits")
    reservations: Optional[Dict[str, Any]] = Field(default=None, alias="Reservations")


class TaskTemplate(EngineModel):
    container_spec: ContainerSpec = Field(alias="ContainerSpec")
    resources: Optional[Resources] = Field(default=None, alias="Resources")
    placement: Optional[Placement] = Field(default=None, alias="Placement")
    networks: Optional[List[NetworkAttachment]] = Field(default=None, alias="Networks")
    force_update: Optional[int] = Field(default=None, alias="ForceUpdate")
    runtime: Optional[str] = Field(default=None, alias="Runtime")


# --- Service Spec ---
class ReplicatedMode(EngineModel):
    replicas: Optional[int] = Field(default=None, alias="Replicas")


class GlobalMode(EngineModel):
    pass


class ServiceMode(EngineModel):
    replicated: Optional[ReplicatedMode] = Field(default=None, alias="Replicated")
    global_: Optional[GlobalMode] = Field(default=None, alias="Global")


class PortConfig(EngineModel):
    protocol: Optional[str] = Field(default=None, alias="Protocol")
    target_port: int = Field(alias="TargetPort")
    published_port: Optional[int] = Field(default=None, alias="PublishedPort")
    publish_mode: Optional[str] = Field(default=None, alias="PublishMode")


class EndpointSpec(EngineModel):
    mode: Optional[str] = Field(default=None, alias="Mode")
    ports: Optional[List[PortConfig]] = Field(default=None, alias="Ports")


class ServiceSpec(EngineModel):
    name: str = Field(alias="Name")
    labels: Optional[Dict[str, str]] = Field(default=None, alias="Labels")
    task_template: TaskTemplate = Field(alias="TaskTemplate")
    mode: Optional[ServiceMode] = Field(default=None, alias="Mode")
    endpoint_spec: Optional[EndpointSpec] = Field(default=None, alias="EndpointSpec")

    @property
    def image(self):
        return self.task_template.container_spec.image

    def with_image(self, image):
        """
        Return a copy of this spec running `image`.

        The stack image label is rewritten only when the spec already carries it.
        Nothing on the original spec changes.
        """
        container_spec = self.task_template.container_spec.model_copy(update={"image": image})
        task_template = self.task_template.model_copy(update={"container_spec": container_spec})
        update = {"task_template": task_template}
        if self.labels is not None and STACK_IMAGE_LABEL in self.labels:
            update["labels"] = {**self.labels, STACK_IMAGE_LABEL: image}
        return self.model_copy(update=update)


# --- Service ---
class ServiceVersion(EngineModel):
    index: int = Field(alias="Index")


class VirtualIP(EngineModel):
    network_id: str = Field(alias="NetworkID")
    addr: str = Field(alias="Addr")


class Endpoint(EngineModel):
    spec: Optional[EndpointSpec] = Field(default=None, alias="Spec")
    virtual_ips: Optional[List[VirtualIP]] = Field(default=None, alias="VirtualIPs")
    ports: Optional[List[PortConfig]] = Field(default=None, alias="Ports")


class UpdateStatus(EngineModel):
    state: Optional[str] = Field(default=None, alias="State")
    started_at: Optional[datetime] = Field(default=None, alias="StartedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="CompletedAt")
    message: Optional[str] = Field(default=None, alias="Message")

    @field_validator("started_at", "completed_at", mode="before")
    @classmethod
    def trim_fraction(cls, value):
        return trim_engine_timestamp(value)


class Service(EngineModel):
    id: str = Field(alias="ID")
    version: ServiceVersion = Field(alias="Version")
    created_at: datetime = Field(alias="CreatedAt")
    updated_at: datetime = Field(alias="UpdatedAt")
    spec: ServiceSpec = Field(alias="Spec")
    previous_spec: Optional[ServiceSpec] = Field(default=None, alias="PreviousSpec")
    endpoint: Optional[Endpoint] = Field(default=None, alias="Endpoint")
    update_status: Optional[UpdateStatus] = Field(default=None, alias="UpdateStatus")

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def trim_fraction(cls, value):
        return trim_engine_timestamp(value)

    @property
    def name(self):
        return self.spec.name

    @property
    def image(self):
        return self.spec.image


def trim_engine_timestamp(value):
    """Cut RFC 3339 fractional seconds down to microsecond precision."""
    if isinstance(value, str):
        return _FRACTION_RE.sub(r"\1", value, count=1)
    return value
