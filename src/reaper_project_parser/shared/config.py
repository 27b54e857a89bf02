"""Configuration classes for REAPER project parsing.

This module provides configuration objects for every parsing layer: line
handling and tokenization, tree building, the public API, and global logging
behaviour. Component configurations validate themselves on construction and
are composed into an immutable ``ParserConfig``.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

_COMPONENT_FIELDS = ("tokenization", "tree", "api", "global_")
_VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class TokenizationConfig:
    """Configuration for line splitting and tokenization."""

    # Characters stripped from both ends of every token
    strip_chars: str = ' "<>'
    # Treat "\r\n" and lone "\r" as line breaks before splitting on "\n"
    normalize_line_endings: bool = True
    # Drop whitespace-only lines instead of turning them into empty nodes
    skip_blank_lines: bool = False

    def __post_init__(self) -> None:
        """Validate tokenization configuration."""
        if not isinstance(self.strip_chars, str):
            raise ValueError("strip_chars must be a string")


@dataclass
class TreeConfig:
    """Configuration for tree building."""

    open_marker: str = "<"
    close_marker: str = ">"
    report_structure_warnings: bool = True

    def __post_init__(self) -> None:
        """Validate tree configuration."""
        if len(self.open_marker) != 1 or len(self.close_marker) != 1:
            raise ValueError("open_marker and close_marker must be single characters")
        if self.open_marker == self.close_marker:
            raise ValueError("open_marker and close_marker must differ")


@dataclass
class ApiConfig:
    """Configuration for API layer behavior."""

    # None means detect from BOM, then UTF-8 with a Latin-1 fallback
    default_encoding: Optional[str] = None
    encoding_errors: str = "replace"
    raise_on_access_error: bool = False

    def __post_init__(self) -> None:
        """Validate API configuration."""
        valid_errors = ["strict", "replace", "ignore"]
        if self.encoding_errors not in valid_errors:
            raise ValueError(f"encoding_errors must be one of {valid_errors}")


@dataclass
class GlobalConfig:
    """Global configuration settings that apply across all components."""

    logging_level: str = "INFO"
    enable_correlation_tracking: bool = True

    def __post_init__(self) -> None:
        """Validate global configuration."""
        if self.logging_level not in _VALID_LEVELS:
            raise ValueError(f"logging_level must be one of {_VALID_LEVELS}")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class ParserConfig:
    """Comprehensive configuration for all parser components.

    Immutable once built; use ``override`` to derive a changed copy. Thread-safe
    due to the frozen dataclass implementation.
    """

    tokenization: TokenizationConfig = field(default_factory=TokenizationConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete parser configuration."""
        try:
            for field_name in _COMPONENT_FIELDS:
                getattr(self, field_name).__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        markers = self.tree.open_marker + self.tree.close_marker
        if not all(marker in self.tokenization.strip_chars for marker in markers):
            raise ConfigValidationError(
                "Bracket markers must be stripped from tokens",
                field_name="tokenization.strip_chars",
                suggestions=["Add the open and close markers to strip_chars"],
            )

    def override(self, **kwargs: Any) -> "ParserConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Fields to override; ``component__field`` addresses a field
                of a component configuration

        Returns:
            New ParserConfig instance with overrides applied

        Example:
            >>> config = ParserConfig().override(
            ...     tokenization__normalize_line_endings=False,
            ...     api__raise_on_access_error=True,
            ... )
        """
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                # "global___field" addresses the global_ component
                component = next(
                    (name for name in _COMPONENT_FIELDS if key.startswith(name + "__")),
                    key.split("__", 1)[0],
                )
                field_name = key[len(component) + 2:]
                if component not in _COMPONENT_FIELDS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                        suggestions=list(_COMPONENT_FIELDS),
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}
        for key, value in nested_overrides.items():
            if key in _COMPONENT_FIELDS and isinstance(value, dict):
                try:
                    new_fields[key] = replace(getattr(self, key), **value)
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            else:
                new_fields[key] = value

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        result: Dict[str, Any] = {}
        for field_name in self.__dataclass_fields__:
            value = getattr(self, field_name)
            if hasattr(value, "__dataclass_fields__"):
                value = {
                    name: getattr(value, name) for name in value.__dataclass_fields__
                }
            result[field_name] = value
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParserConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected with ``ConfigValidationError``.
        """
        field_values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in cls.__dataclass_fields__:
                raise ConfigValidationError(
                    f"Unknown configuration field: {key}", field_name=key
                )
            if key in _COMPONENT_FIELDS:
                component_class = cls.__dataclass_fields__[key].default_factory
                try:
                    value = component_class(**value)
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            field_values[key] = value
        return cls(**field_values)

    @classmethod
    def from_json(cls, json_str: str) -> "ParserConfig":
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    # Preset factory methods
    @classmethod
    def default(cls) -> "ParserConfig":
        """Create the default configuration."""
        return cls(name="default")

    @classmethod
    def faithful(cls) -> "ParserConfig":
        """Create a preset that keeps lines exactly as read and reports nothing."""
        return cls(
            tokenization=TokenizationConfig(normalize_line_endings=False),
            tree=TreeConfig(report_structure_warnings=False),
            name="faithful",
            description="Lines are tokenized as read; structural recoveries are silent",
        )

    @classmethod
    def strict(cls) -> "ParserConfig":
        """Create a preset that raises when the document cannot be read."""
        return cls(
            api=ApiConfig(encoding_errors="strict", raise_on_access_error=True),
            name="strict",
            description="Access and decoding failures raise DocumentAccessError",
        )
