"""
ctrident — Container Metadata Normalization

Turns one raw containerd ``Container`` record into a ContainerRecord:
  - image reference  → repo / name / tag
  - labels           → bounded-length copy
  - spec (OCI JSON)  → mounts + process environment

The spec blob is supplementary: unparsable JSON yields empty mounts and
env, a wrong-typed field only loses that field. Neither fails resolution.
"""

from typing import Any, Mapping, Union

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from ctrident.logging_config import get_logger
from ctrident.tracking.models import ContainerRecord, ContainerType, MountEntry

logger = get_logger("normalize")


# ─────────────────────────────────────────────
# OCI RUNTIME SPEC (subset)
# ─────────────────────────────────────────────


class _SpecNode(BaseModel):
    """
    Every field defaults on absence. Explicit nulls count as absent, and a
    field holding the wrong type falls back to its default on its own
    without taking its siblings down with it.
    """

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("*", mode="wrap")
    @classmethod
    def default_on_invalid(cls, value, handler, info):
        try:
            return handler(value)
        except ValidationError:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


def _strings_only(value):
    """Non-string list elements are skipped."""
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return value


class SpecMount(_SpecNode):
    source: str = ""
    destination: str = ""
    options: list[str] = []

    @field_validator("options", mode="before")
    @classmethod
    def strings_only(cls, value):
        return _strings_only(value)


class SpecProcess(_SpecNode):
    env: list[str] = []

    @field_validator("env", mode="before")
    @classmethod
    def strings_only(cls, value):
        return _strings_only(value)


class SpecLinux(_SpecNode):
    rootfsPropagation: str = ""


class RuntimeSpec(_SpecNode):
    mounts: list[SpecMount] = []
    process: SpecProcess = SpecProcess()
    linux: SpecLinux = SpecLinux()

    @field_validator("mounts", mode="before")
    @classmethod
    def empty_mount_for_non_objects(cls, value):
        # a null or scalar entry still counts as a mount, with empty fields
        if isinstance(value, list):
            return [v if isinstance(v, dict) else {} for v in value]
        return value


def parse_runtime_spec(raw: Union[bytes, str, None]) -> RuntimeSpec:
    """
    Parse the spec JSON. Invalid JSON, or a document that is not an
    object, becomes an empty spec; anything else keeps every valid field.
    """
    if not raw:
        return RuntimeSpec()
    try:
        return RuntimeSpec.model_validate_json(raw)
    except ValidationError as e:
        logger.debug("Ignoring malformed container spec: %s", e.errors()[:1])
        return RuntimeSpec()


# ─────────────────────────────────────────────
# EXTRACTION
# ─────────────────────────────────────────────


def split_image_ref(image_ref: str) -> tuple[str, str, str]:
    """
    Split ``docker.io/library/ubuntu:22.04`` into
    ``("docker.io/library", "ubuntu", "22.04")``.
    """
    name_part, _, tag = image_ref.partition(":")
    repo, slash, name = name_part.rpartition("/")
    if not slash:
        return "", name_part, tag
    return repo, name, tag


def filter_labels(labels: Mapping[str, str], max_length: int) -> dict[str, str]:
    """Keep labels whose value fits in max_length; longer ones are dropped."""
    return {k: v for k, v in labels.items() if len(v) <= max_length}


def extract_mounts(spec: RuntimeSpec) -> list[MountEntry]:
    propagation = spec.linux.rootfsPropagation
    mounts = []
    for m in spec.mounts:
        readonly = False
        mode = ""
        for opt in m.options:
            if opt == "ro":
                readonly = True
            elif opt.startswith("mode="):
                mode = opt[len("mode="):]
        mounts.append(
            MountEntry(
                source=m.source,
                destination=m.destination,
                mode=mode,
                read_write=not readonly,
                propagation=propagation,
            )
        )
    return mounts


def extract_env(spec: RuntimeSpec) -> list[str]:
    return list(spec.process.env)


def normalize_container(
    raw: Any, container_id: str, label_max_length: int
) -> ContainerRecord:
    """
    Build a ContainerRecord from a raw runtime record.

    ``raw`` exposes ``id``, ``image``, ``labels`` and ``spec.value`` (the
    protobuf ``Container`` message does). ``container_id`` is the id the
    caller matched on, kept as the record id.
    """
    repo, name, tag = split_image_ref(raw.image)
    spec = parse_runtime_spec(raw.spec.value)

    return ContainerRecord(
        id=container_id,
        full_id=raw.id,
        type=ContainerType.containerd,
        image=name,
        image_repo=repo,
        image_tag=tag,
        image_digest="",
        labels=filter_labels(raw.labels, label_max_length),
        mounts=extract_mounts(spec),
        env=extract_env(spec),
    )
