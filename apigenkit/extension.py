"""Readers for the vendor extension values found in API specifications."""

from __future__ import annotations

from typing import Any

__all__ = [
    "ExtensionError",
    "EXT_PROP_GO_TYPE",
    "EXT_PROP_GO_IMPORT",
    "EXT_GO_NAME",
    "EXT_GO_TYPE_NAME",
    "EXT_PROP_GO_JSON_IGNORE",
    "EXT_PROP_OMIT_EMPTY",
    "EXT_PROP_EXTRA_TAGS",
    "EXT_ENUM_VAR_NAMES",
    "EXT_ENUM_NAMES",
    "EXT_DEPRECATION_REASON",
    "ext_string",
    "ext_type_name",
    "ext_parse_go_field_name",
    "ext_parse_omit_empty",
    "ext_extra_tags",
    "ext_parse_go_json_ignore",
    "ext_parse_enum_var_names",
    "ext_parse_deprecation_reason",
]

EXT_PROP_GO_TYPE = "x-go-type"
EXT_PROP_GO_IMPORT = "x-go-type-import"
EXT_GO_NAME = "x-go-name"
EXT_GO_TYPE_NAME = "x-go-type-name"
EXT_PROP_GO_JSON_IGNORE = "x-go-json-ignore"
EXT_PROP_OMIT_EMPTY = "x-omitempty"
EXT_PROP_EXTRA_TAGS = "x-oapi-codegen-extra-tags"
EXT_ENUM_VAR_NAMES = "x-enum-varnames"
EXT_ENUM_NAMES = "x-enumNames"
EXT_DEPRECATION_REASON = "x-deprecated-reason"


class ExtensionError(TypeError):
    """Raised when an extension value has the wrong type."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"failed to convert type: {type(value).__name__}")
        self.value = value


def ext_string(value: Any) -> str:
    """Return the value if it is a string."""
    if not isinstance(value, str):
        raise ExtensionError(value)
    return value


def ext_type_name(value: Any) -> str:
    """Read an overriding type name."""
    return ext_string(value)


def ext_parse_go_field_name(value: Any) -> str:
    """Read an overriding field name."""
    return ext_string(value)


def _ext_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ExtensionError(value)
    return value


def ext_parse_omit_empty(value: Any) -> bool:
    """Read the omit-empty flag."""
    return _ext_bool(value)


def ext_extra_tags(value: Any) -> dict[str, str]:
    """Read a mapping of extra struct tags, all values being strings."""
    if not isinstance(value, dict):
        raise ExtensionError(value)
    tags: dict[str, str] = {}
    for key, tag in value.items():
        if not isinstance(tag, str):
            raise ExtensionError(tag)
        tags[key] = tag
    return tags


def ext_parse_go_json_ignore(value: Any) -> bool:
    """Read the JSON-ignore flag."""
    return _ext_bool(value)


def ext_parse_enum_var_names(value: Any) -> list[str]:
    """Read a list of enum constant names."""
    if not isinstance(value, list):
        raise ExtensionError(value)
    for name in value:
        if not isinstance(name, str):
            raise ExtensionError(name)
    return list(value)


def ext_parse_deprecation_reason(value: Any) -> str:
    """Read a deprecation reason."""
    return ext_string(value)