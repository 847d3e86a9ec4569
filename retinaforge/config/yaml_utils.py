"""YAML utilities with duplicate-key validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, TextIO

import yaml


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict:
    mapping = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ValueError(
                f"Duplicate key '{key}' detected in YAML (line {key_node.start_mark.line + 1})."
            )
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def load_yaml(stream: TextIO | str) -> Any:
    """Load YAML from a string or file-like object, rejecting duplicate keys.

    Raises:
        ValueError: If duplicate keys are detected in a mapping.
    """
    return yaml.load(stream, Loader=UniqueKeyLoader)


def load_yaml_file(path: str | Path) -> Any:
    """Load a YAML file from disk with duplicate-key validation.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is empty or holds duplicate keys.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = load_yaml(f)
    if not data:
        raise ValueError(f"Empty or invalid config file: {path}")
    return data
