"""
pyrsx Element Metadata
======================

Read-only tables the compiler consults while lowering native elements:

- attributes.json: which tags expose an attribute as a genuine DOM
  property, as a list of {"attr": name, "tags": [tag, ...]} records
  (generated from MDN's attribute reference)
- elements.json: the list of recognized HTML tag names

The tables are loaded once per process and never mutated afterwards, so
concurrent compilations can share them freely. A table that is missing or
malformed is a ConfigurationError; it is reported once and then re-raised
for every compilation that asks for the metadata.

Example:
    metadata = get_metadata()
    metadata.is_property("value", "input")   # True
    metadata.is_property("value", "div")     # False
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

import orjson

from pyrsx.core.config import get_config
from pyrsx.core.errors import ConfigurationError
from pyrsx.utils.logger import get_logger


DATA_DIR = Path(__file__).parent / "data"
ATTRIBUTES_FILE = DATA_DIR / "attributes.json"
ELEMENTS_FILE = DATA_DIR / "elements.json"

logger = get_logger("pyrsx.metadata")


@dataclass(frozen=True)
class Metadata:
    """Attribute/tag compatibility table and recognized element names."""
    properties: Mapping[str, FrozenSet[str]]
    elements: FrozenSet[str]

    def is_property(self, name: str, tag: str) -> bool:
        """Check if attribute name is a DOM property on tag."""
        return tag.lower() in self.properties.get(name, frozenset())

    def is_known_element(self, tag: str) -> bool:
        return tag.lower() in self.elements


def _read_json(path: Path) -> Any:
    """Read and decode a JSON table."""
    try:
        content = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(
            f"metadata table not found: {path} ({e.strerror})"
        ) from e

    try:
        return orjson.loads(content)
    except orjson.JSONDecodeError as e:
        raise ConfigurationError(f"metadata table {path} is not valid JSON: {e}") from e


def _parse_attributes(data: Any, path: Path) -> Dict[str, FrozenSet[str]]:
    if not isinstance(data, list):
        raise ConfigurationError(f"{path}: expected a list of attribute records")

    properties: Dict[str, FrozenSet[str]] = {}
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            raise ConfigurationError(f"{path}[{index}]: expected an object")

        name = record.get("attr")
        tags = record.get("tags")
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"{path}[{index}]: 'attr' must be a non-empty string")
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ConfigurationError(f"{path}[{index}]: 'tags' must be a list of strings")

        properties[name] = properties.get(name, frozenset()) | frozenset(
            t.lower() for t in tags
        )
    return properties


def _parse_elements(data: Any, path: Path) -> FrozenSet[str]:
    if not isinstance(data, list) or not all(isinstance(t, str) for t in data):
        raise ConfigurationError(f"{path}: expected a list of tag names")
    return frozenset(t.lower() for t in data)


def load_metadata(
    attributes_path: Optional[Union[str, Path]] = None,
    elements_path: Optional[Union[str, Path]] = None,
) -> Metadata:
    """
    Load metadata tables from disk.

    Args:
        attributes_path: Attribute table (default: packaged attributes.json)
        elements_path: Element list (default: packaged elements.json)

    Returns:
        Metadata

    Raises:
        ConfigurationError: If a table is missing or malformed
    """
    attributes_path = Path(attributes_path) if attributes_path else ATTRIBUTES_FILE
    elements_path = Path(elements_path) if elements_path else ELEMENTS_FILE

    metadata = Metadata(
        properties=_parse_attributes(_read_json(attributes_path), attributes_path),
        elements=_parse_elements(_read_json(elements_path), elements_path),
    )
    logger.debug(
        "Loaded metadata",
        attributes=len(metadata.properties),
        elements=len(metadata.elements),
    )
    return metadata


# Process-wide metadata, loaded on first use
_metadata: Optional[Metadata] = None
_metadata_error: Optional[ConfigurationError] = None
_metadata_lock = threading.Lock()


def get_metadata() -> Metadata:
    """
    Get the process-wide metadata, loading it on first use.

    Table paths come from the metadata.attributes and metadata.elements
    configuration keys.

    Raises:
        ConfigurationError: If the tables could not be loaded. After the
            first failure every call raises a new error chained to the
            cached one, so callers can annotate it freely.
    """
    global _metadata, _metadata_error

    if _metadata is not None:
        return _metadata

    with _metadata_lock:
        if _metadata is None and _metadata_error is None:
            config = get_config()
            try:
                _metadata = load_metadata(
                    config.get("metadata.attributes"),
                    config.get("metadata.elements"),
                )
            except ConfigurationError as e:
                logger.error("Could not load element metadata", exception=e)
                _metadata_error = e

    if _metadata_error is not None:
        raise ConfigurationError(_metadata_error.message) from _metadata_error
    return _metadata


def set_metadata(metadata: Optional[Metadata]) -> None:
    """Replace the process-wide metadata (None forces a reload)."""
    global _metadata, _metadata_error
    with _metadata_lock:
        _metadata = metadata
        _metadata_error = None
