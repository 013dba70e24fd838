"""
Base configuration class with common functionality.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any, Iterable, Optional, get_origin
import os
import yaml


@dataclass
class BaseConfig:
    """
    Base class for all configuration dataclasses.

    Provides:
    - to_dict() conversion
    - from_dict() factory
    - from_env() environment loading
    - from_yaml() file loading
    """

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseConfig':
        """Create config from dictionary."""
        # Filter only valid fields
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def env_values(cls, prefix: str = "", exclude: Iterable[str] = ()) -> Dict[str, Any]:
        """
        Read `<prefix><FIELD_NAME>` variables, converted to each field's type.

        Lists are comma-separated: CODEGRAPH_SEARCH_KEYWORD_INDEXES="File:file_fts,Class:class_fts"
        """
        data = {}
        for field_name, field_info in cls.__dataclass_fields__.items():
            if field_name in exclude:
                continue
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            # Type conversion
            field_type = field_info.type
            if field_type == bool:
                data[field_name] = env_value.lower() in ('true', '1', 'yes')
            elif field_type == int:
                data[field_name] = int(env_value)
            elif field_type == float:
                data[field_name] = float(env_value)
            elif field_type == list or get_origin(field_type) is list:
                data[field_name] = [item.strip() for item in env_value.split(',') if item.strip()]
            else:
                data[field_name] = env_value
        return data

    @classmethod
    def from_env(cls, prefix: str = "") -> 'BaseConfig':
        """
        Create config from environment variables.

        Args:
            prefix: Environment variable prefix (e.g., "CODEGRAPH_SEARCH_")
        """
        return cls(**cls.env_values(prefix))

    @classmethod
    def from_yaml(cls, path: str, section: Optional[str] = None) -> 'BaseConfig':
        """
        Load config from YAML file.

        Args:
            path: Path to YAML file
            section: Optional section name within the file
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if section and section in data:
            data = data[section]

        return cls.from_dict(data)
