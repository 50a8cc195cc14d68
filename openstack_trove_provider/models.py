"""
Declared configuration records.

The orchestration engine hands over plain attribute mappings. They are parsed
once into the records below so the adapters never inspect raw types again.
Nested blocks may arrive either as a mapping or as a list of mappings (the
shape block attributes have in engine state).
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

ConfigurationValueType = Union[int, str]

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def coerce_configuration_value(raw: Any) -> ConfigurationValueType:
    """
    Turn a declared configuration value into its wire type.

    The datastore distinguishes numeric parameters from string ones, so a
    string that parses as an integer is sent as an integer.

    Example:
        >>> coerce_configuration_value("5")
        5
        >>> coerce_configuration_value("latin1_swedish_ci")
        'latin1_swedish_ci'
    """
    if isinstance(raw, bool):
        return str(raw).lower()
    if isinstance(raw, int):
        return raw
    value = str(raw)
    if _INTEGER_RE.match(value):
        return int(value)
    return value


def _blocks(raw: Any) -> List[Mapping[str, Any]]:
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [raw]
    return [block for block in raw if block]


def _single_block(raw: Any, block_name: str) -> Mapping[str, Any]:
    blocks = _blocks(raw)
    if not blocks:
        raise ValueError(f"'{block_name}' block is required")
    if len(blocks) > 1:
        raise ValueError(f"only one '{block_name}' block is allowed, got {len(blocks)}")
    return blocks[0]


def _required(block: Mapping[str, Any], key: str, block_name: str) -> str:
    value = block.get(key)
    if value in (None, ""):
        raise ValueError(f"'{block_name}.{key}' is required")
    return str(value)


def _optional(block: Mapping[str, Any], key: str) -> str:
    value = block.get(key)
    return "" if value is None else str(value)


@dataclass
class Datastore:
    version: str
    type: str

    @classmethod
    def from_block(cls, raw: Any) -> "Datastore":
        block = _single_block(raw, "datastore")
        return cls(
            version=_required(block, "version", "datastore"),
            type=_required(block, "type", "datastore"),
        )

    def to_attributes(self) -> List[Dict[str, str]]:
        return [{"version": self.version, "type": self.type}]


@dataclass
class Network:
    uuid: str = ""
    port: str = ""
    fixed_ip_v4: str = ""
    fixed_ip_v6: str = ""

    @classmethod
    def from_block(cls, block: Mapping[str, Any]) -> "Network":
        return cls(
            uuid=_optional(block, "uuid"),
            port=_optional(block, "port"),
            fixed_ip_v4=_optional(block, "fixed_ip_v4"),
            fixed_ip_v6=_optional(block, "fixed_ip_v6"),
        )

    def to_nic(self) -> Dict[str, str]:
        """Nic entry in the form troveclient expects, empty fields omitted."""
        nic = {
            "net-id": self.uuid,
            "port-id": self.port,
            "v4-fixed-ip": self.fixed_ip_v4,
            "v6-fixed-ip": self.fixed_ip_v6,
        }
        return {key: value for key, value in nic.items() if value}


@dataclass
class DatabaseDefinition:
    name: str
    charset: str = ""
    collate: str = ""

    @classmethod
    def from_block(cls, block: Mapping[str, Any]) -> "DatabaseDefinition":
        return cls(
            name=_required(block, "name", "database"),
            charset=_optional(block, "charset"),
            collate=_optional(block, "collate"),
        )

    def to_payload(self) -> Dict[str, str]:
        payload = {"name": self.name}
        if self.charset:
            payload["character_set"] = self.charset
        if self.collate:
            payload["collate"] = self.collate
        return payload


@dataclass
class UserDefinition:
    name: str
    password: str = ""
    host: str = ""
    databases: List[str] = field(default_factory=list)

    @classmethod
    def from_block(cls, block: Mapping[str, Any]) -> "UserDefinition":
        return cls(
            name=_required(block, "name", "user"),
            password=_optional(block, "password"),
            host=_optional(block, "host"),
            databases=sorted({str(name) for name in block.get("databases") or []}),
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "password": self.password,
            "databases": [{"name": name} for name in self.databases],
        }
        if self.host:
            payload["host"] = self.host
        return payload


@dataclass
class ConfigurationValue:
    """One configuration parameter, value already coerced to its wire type."""

    name: str
    value: ConfigurationValueType

    @classmethod
    def from_block(cls, block: Mapping[str, Any]) -> "ConfigurationValue":
        if block.get("value") is None:
            raise ValueError("'configuration.value' is required")
        return cls(
            name=_required(block, "name", "configuration"),
            value=coerce_configuration_value(block["value"]),
        )


@dataclass
class InstanceDefinition:
    name: str
    size: int
    datastore: Datastore
    flavor_id: Optional[str] = None
    networks: List[Network] = field(default_factory=list)
    databases: List[DatabaseDefinition] = field(default_factory=list)
    users: List[UserDefinition] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, Any]) -> "InstanceDefinition":
        name = _required(attributes, "name", "instance")
        try:
            size = int(attributes.get("size"))
        except (TypeError, ValueError) as e:
            raise ValueError(f"'instance.size' must be an integer, got {attributes.get('size')!r}") from e
        if size <= 0:
            raise ValueError(f"'instance.size' must be positive, got {size}")

        return cls(
            name=name,
            size=size,
            datastore=Datastore.from_block(attributes.get("datastore")),
            flavor_id=attributes.get("flavor_id") or None,
            networks=[Network.from_block(block) for block in _blocks(attributes.get("network"))],
            databases=[DatabaseDefinition.from_block(block) for block in _blocks(attributes.get("database"))],
            users=[UserDefinition.from_block(block) for block in _blocks(attributes.get("user"))],
        )


@dataclass
class ConfigurationGroupDefinition:
    name: str
    datastore: Datastore
    description: str = ""
    values: List[ConfigurationValue] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, Any]) -> "ConfigurationGroupDefinition":
        return cls(
            name=_required(attributes, "name", "configuration_group"),
            description=_optional(attributes, "description"),
            datastore=Datastore.from_block(attributes.get("datastore")),
            values=[ConfigurationValue.from_block(block) for block in _blocks(attributes.get("configuration"))],
        )

    def values_payload(self) -> Dict[str, ConfigurationValueType]:
        return {item.name: item.value for item in self.values}


def configuration_blocks(values: Mapping[str, Any]) -> List[Dict[str, str]]:
    """Render remote configuration values back into declared blocks (values as strings)."""
    return [
        {"name": name, "value": str(value).lower() if isinstance(value, bool) else str(value)}
        for name, value in sorted(values.items())
    ]


def database_names(entries: Sequence[Any]) -> List[str]:
    """Names out of a user's database grants, as listed by Trove (dicts or objects)."""
    names = []
    for entry in entries or []:
        name = entry.get("name") if isinstance(entry, Mapping) else getattr(entry, "name", None)
        if name:
            names.append(name)
    return sorted(names)
