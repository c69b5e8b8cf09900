"""
ctrident — Configuration

Every knob can be overridden from the environment with the CTRIDENT_
prefix (lists as JSON, e.g. CTRIDENT_CONTAINERD_SOCKETS='["/run/x.sock"]').
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─────────────────────────────────────────────
    # Host layout
    # ─────────────────────────────────────────────
    HOST_ROOT: str = Field(
        default="",
        validation_alias=AliasChoices("CTRIDENT_HOST_ROOT", "HOST_ROOT"),
    )
    CGROUP_ROOT: str = "/sys/fs/cgroup"
    PROC_ROOT: str = "/proc"

    # ─────────────────────────────────────────────
    # containerd
    # ─────────────────────────────────────────────
    # Tried in order, relative to HOST_ROOT
    CONTAINERD_SOCKETS: list[str] = [
        "/run/host-containerd/containerd.sock",  # bottlerocket host containers
        "/run/containerd/containerd.sock",
        "/run/containerd/runtime2/containerd.sock",
    ]
    CONTAINERD_NAMESPACE: str = "default"
    RUNTIME_TIMEOUT_MS: int = Field(default=1000, gt=0)

    # ─────────────────────────────────────────────
    # Container metadata
    # ─────────────────────────────────────────────
    LABEL_MAX_LENGTH: int = Field(default=100, ge=0)

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CTRIDENT_",
        env_file=".env",
        extra="forbid",
        populate_by_name=True,
    )


settings = Settings()
