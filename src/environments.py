"""Environment registry loading and validation.

The environment descriptor document lists one record per target
environment. Accepted shapes:

- a top-level list of records
- a mapping with an ``environments`` list
- a list-generator ApplicationSet (``spec.generators[].list.elements``)

Each record maps to exactly one deployment unit. Loading is a pure
parse/validate step; nothing here touches the network or the cluster.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Union

import yaml

from config import ConfigError

logger = logging.getLogger(__name__)


class RegistryError(ConfigError):
    """Environment registry could not be loaded."""


class ParseError(RegistryError):
    """Descriptor document is unreadable or malformed."""


class IncompleteRecordError(RegistryError):
    """A record is missing a required field."""

    def __init__(self, env_name: str, field_name: str):
        self.env_name = env_name
        self.field_name = field_name
        super().__init__(f"Environment '{env_name}' is missing required field '{field_name}'")


class DuplicateEnvironmentError(RegistryError):
    """Two records share the same name."""

    def __init__(self, env_name: str):
        self.env_name = env_name
        super().__init__(f"Duplicate environment name '{env_name}'")


# YAML key -> attribute name, in document order
FIELD_MAP = {
    'name': 'name',
    'clusterURL': 'cluster_url',
    'chartVersion': 'chart_version',
    'autoSync': 'auto_sync',
    'hostname': 'hostname',
    'postgresHost': 'postgres_host',
    'clickhouseHost': 'clickhouse_host',
    'clickhouseMigrationURL': 'clickhouse_migration_url',
    'redisHost': 'redis_host',
    'storageBucket': 'storage_bucket',
    'storageEndpoint': 'storage_endpoint',
}


@dataclass(frozen=True)
class EnvironmentRecord:
    """Per-environment parameters driving one deployment unit."""
    name: str
    cluster_url: str
    chart_version: str
    auto_sync: bool
    hostname: str
    postgres_host: str
    clickhouse_host: str
    clickhouse_migration_url: str
    redis_host: str
    storage_bucket: str
    storage_endpoint: str

    @classmethod
    def from_dict(cls, data: dict) -> 'EnvironmentRecord':
        """Create a record from a descriptor entry.

        Raises:
            ParseError: Entry is not a mapping or has a wrongly typed field
            IncompleteRecordError: A required field is absent or empty
        """
        if not isinstance(data, dict):
            raise ParseError(f"Environment record must be a mapping, got {type(data).__name__}")

        env_name = data.get('name')
        if not env_name:
            raise IncompleteRecordError('<unnamed>', 'name')
        env_name = str(env_name)

        kwargs = {}
        for key, attr in FIELD_MAP.items():
            value = data.get(key)
            if value is None or value == '':
                raise IncompleteRecordError(env_name, key)
            if key == 'autoSync':
                # List-generator parameters are strings
                if isinstance(value, str) and value.lower() in ('true', 'false'):
                    value = value.lower() == 'true'
                if not isinstance(value, bool):
                    raise ParseError(
                        f"Environment '{env_name}': autoSync must be true or false, got {value!r}"
                    )
            elif isinstance(value, (dict, list, bool)):
                raise ParseError(
                    f"Environment '{env_name}': {key} must be a scalar, got {type(value).__name__}"
                )
            else:
                value = str(value)
            kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        """Return the record using descriptor key names."""
        return {key: getattr(self, attr) for key, attr in FIELD_MAP.items()}


class EnvironmentRegistry:
    """Ordered, read-only mapping of environment name to record."""

    def __init__(self, records: Iterable[EnvironmentRecord] = ()):
        self._records: dict[str, EnvironmentRecord] = {}
        for record in records:
            if record.name in self._records:
                raise DuplicateEnvironmentError(record.name)
            self._records[record.name] = record

    def __iter__(self) -> Iterator[EnvironmentRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def names(self) -> list[str]:
        return list(self._records)

    def get(self, name: str) -> EnvironmentRecord:
        """Return the record for name.

        Raises:
            KeyError: Unknown environment (message lists available names)
        """
        if name not in self._records:
            available = ', '.join(self._records) or 'none configured'
            raise KeyError(f"Unknown environment '{name}'. Available: {available}")
        return self._records[name]

    def select(self, names: Iterable[str]) -> list[EnvironmentRecord]:
        """Return records for names, in the order given."""
        return [self.get(name) for name in names]


def _extract_entries(data) -> list:
    """Pull the list of record entries out of a parsed document."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        raise ParseError(f"Environment document must be a list or mapping, got {type(data).__name__}")

    if 'environments' in data:
        entries = data['environments'] or []
        if not isinstance(entries, list):
            raise ParseError("'environments' must be a list")
        return entries

    # ApplicationSet with a list generator
    spec = data.get('spec') or {}
    if not isinstance(spec, dict):
        raise ParseError(f"'spec' must be a mapping, got {type(spec).__name__}")
    generators = spec.get('generators') or []
    if not isinstance(generators, list):
        raise ParseError(f"'spec.generators' must be a list, got {type(generators).__name__}")
    for generator in generators:
        if isinstance(generator, dict) and 'list' in generator:
            list_generator = generator['list'] or {}
            if not isinstance(list_generator, dict):
                raise ParseError(
                    f"List generator must be a mapping, got {type(list_generator).__name__}"
                )
            entries = list_generator.get('elements') or []
            if not isinstance(entries, list):
                raise ParseError("List generator 'elements' must be a list")
            return entries

    raise ParseError("Environment document has no 'environments' list or list generator")


def load_environments(source: Union[str, os.PathLike]) -> EnvironmentRegistry:
    """Load and validate the environment registry.

    Args:
        source: Path (any os.PathLike) to the descriptor document, or the
            document's YAML text as a str. A str is never treated as a
            file name; wrap it in Path() to load a file.

    Returns:
        EnvironmentRegistry with one record per entry

    Raises:
        ParseError: Unreadable file, invalid YAML or unexpected shape
        IncompleteRecordError: A record lacks a required field
        DuplicateEnvironmentError: Two records share a name
    """
    if isinstance(source, os.PathLike):
        path = Path(source)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise ParseError(f"Cannot read environment document {path}: {e}") from e
        origin = str(path)
    else:
        text = source
        origin = '<string>'

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML in {origin}: {e}") from e

    if isinstance(data, str) and origin == '<string>':
        raise ParseError(
            f"Environment text is a plain string ({data[:60]!r}), not a list or mapping; "
            f"pass a Path to load a file"
        )

    entries = _extract_entries(data)
    registry = EnvironmentRegistry(EnvironmentRecord.from_dict(entry) for entry in entries)
    logger.debug(f"Loaded {len(registry)} environments from {origin}: {registry.names()}")
    return registry
