"""
ctrident — containerd Containers API messages

The read-only slice of containerd's ``containers.v1`` gRPC service that
attribution needs: ``Containers/List`` and the ``Container`` record.
Message classes are built from a FileDescriptorProto registered in the
default descriptor pool, exactly like protoc-generated ``_pb2`` modules;
field numbers match containerd's containers.proto, so records served by a
real daemon decode with undeclared fields kept as unknown fields.
"""

from google.protobuf import any_pb2  # noqa: F401  (registers google/protobuf/any.proto)
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "containerd.services.containers.v1"
SERVICE = f"{PACKAGE}.Containers"
LIST_METHOD = f"/{SERVICE}/List"

NAMESPACE_METADATA_KEY = "containerd-namespace"

_F = descriptor_pb2.FieldDescriptorProto


def _field(name, number, ftype, label=_F.LABEL_OPTIONAL, type_name=None):
    field = _F(name=name, number=number, type=ftype, label=label)
    if type_name:
        field.type_name = type_name
    return field


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    fd = descriptor_pb2.FileDescriptorProto(
        name="containerd/services/containers/v1/containers.proto",
        package=PACKAGE,
        syntax="proto3",
        dependency=["google/protobuf/any.proto"],
    )

    container = fd.message_type.add(name="Container")

    runtime = container.nested_type.add(name="Runtime")
    runtime.field.append(_field("name", 1, _F.TYPE_STRING))
    runtime.field.append(
        _field("options", 2, _F.TYPE_MESSAGE, type_name=".google.protobuf.Any")
    )

    labels_entry = container.nested_type.add(name="LabelsEntry")
    labels_entry.options.map_entry = True
    labels_entry.field.append(_field("key", 1, _F.TYPE_STRING))
    labels_entry.field.append(_field("value", 2, _F.TYPE_STRING))

    container.field.extend([
        _field("id", 1, _F.TYPE_STRING),
        _field(
            "labels", 2, _F.TYPE_MESSAGE, _F.LABEL_REPEATED,
            f".{PACKAGE}.Container.LabelsEntry",
        ),
        _field("image", 3, _F.TYPE_STRING),
        _field("runtime", 4, _F.TYPE_MESSAGE, type_name=f".{PACKAGE}.Container.Runtime"),
        _field("spec", 5, _F.TYPE_MESSAGE, type_name=".google.protobuf.Any"),
        _field("snapshotter", 6, _F.TYPE_STRING),
        _field("snapshot_key", 7, _F.TYPE_STRING),
        _field("sandbox", 11, _F.TYPE_STRING),
    ])

    request = fd.message_type.add(name="ListContainersRequest")
    request.field.append(_field("filters", 1, _F.TYPE_STRING, _F.LABEL_REPEATED))

    response = fd.message_type.add(name="ListContainersResponse")
    response.field.append(
        _field("containers", 1, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, f".{PACKAGE}.Container")
    )

    return fd


_pool = descriptor_pool.Default()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


Container = _message("Container")
ListContainersRequest = _message("ListContainersRequest")
ListContainersResponse = _message("ListContainersResponse")
