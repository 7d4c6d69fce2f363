import json
from collections.abc import MutableMapping
from io import StringIO
from typing import Any

from ruamel import yaml
from ruamel.yaml.error import YAMLError


class ObjectBodyError(Exception):
    def __init__(self, msg: Any) -> None:
        super().__init__("error decoding object body: " + str(msg))


def create_ruamel_instance(
    preserve_quotes: bool = True,
    width: int = 4096,
) -> yaml.YAML:
    ruamel_instance = yaml.YAML()
    ruamel_instance.preserve_quotes = preserve_quotes
    ruamel_instance.width = width
    return ruamel_instance


def load_object(body: str) -> MutableMapping[str, Any]:
    """
    Decodes an object body. Admission payloads arrive as JSON, manifests
    read from disk as YAML; both are accepted.
    """
    data: Any = None
    if body.lstrip().startswith("{"):
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            # flow style YAML, e.g. {kind: Pod}
            data = None
    if data is None:
        try:
            data = create_ruamel_instance().load(body)
        except YAMLError as e:
            raise ObjectBodyError(e) from e
    if not isinstance(data, MutableMapping):
        raise ObjectBodyError(f"expected a mapping, got {type(data).__name__}")
    return data


def dump_object(data: MutableMapping[str, Any]) -> str:
    stream = StringIO()
    create_ruamel_instance().dump(data, stream)
    return stream.getvalue()
