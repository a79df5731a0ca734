"""Code generation settings and the rules that check them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

__all__ = [
    "ConfigurationError",
    "AdditionalImport",
    "GenerateOptions",
    "CompatibilityOptions",
    "OutputOptions",
    "Configuration",
]


class ConfigurationError(ValueError):
    """Raised when a configuration cannot be read or is not valid."""


_FACTORIES = {"bool": bool, "str": str, "list": list, "map": dict}


def _opt(key: str, kind: str, omitempty: bool = True) -> Any:
    return field(
        default_factory=_FACTORIES[kind],
        metadata={"yaml": key, "kind": kind, "omitempty": omitempty},
    )


def _coerce(value: Any, kind: str, key: str) -> Any:
    if value is None:
        return _FACTORIES[kind]()
    if kind == "bool":
        if not isinstance(value, bool):
            raise ConfigurationError(f"field {key!r}: expected a boolean, got {type(value).__name__}")
        return value
    if kind == "str":
        if not isinstance(value, str):
            raise ConfigurationError(f"field {key!r}: expected a string, got {type(value).__name__}")
        return value
    if kind == "list":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"field {key!r}: expected a list of strings")
        return list(value)
    if not isinstance(value, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConfigurationError(f"field {key!r}: expected a mapping of strings to strings")
    return dict(value)


def _check_mapping(data: Any, what: str) -> Mapping:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{what}: expected a mapping, got {type(data).__name__}")
    return data


def _check_keys(data: Mapping, known: set[str], what: str) -> None:
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise ConfigurationError(f"{what}: unknown field(s) {', '.join(unknown)}")


def _load_flat(cls: type, data: Any, what: str, strict: bool) -> Any:
    data = _check_mapping(data, what)
    by_key = {f.metadata["yaml"]: f for f in fields(cls)}
    if strict:
        _check_keys(data, set(by_key), what)
    kwargs = {
        f.name: _coerce(data[key], f.metadata["kind"], key)
        for key, f in by_key.items()
        if key in data
    }
    return cls(**kwargs)


def _dump_flat(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if f.metadata["omitempty"] and not value:
            continue
        out[f.metadata["yaml"]] = list(value) if isinstance(value, list) else (
            dict(value) if isinstance(value, dict) else value
        )
    return out


@dataclass
class AdditionalImport:
    """An extra import to add to the generated code."""

    alias: str = _opt("alias", "str")
    package: str = _opt("package", "str", omitempty=False)


@dataclass
class GenerateOptions:
    """Which kinds of output to generate."""

    chi_server: bool = _opt("chi-server", "bool")
    echo_server: bool = _opt("echo-server", "bool")
    gin_server: bool = _opt("gin-server", "bool")
    gorilla_server: bool = _opt("gorilla-server", "bool")
    strict: bool = _opt("strict-server", "bool")
    client: bool = _opt("client", "bool")
    models: bool = _opt("models", "bool")
    embedded_spec: bool = _opt("embedded-spec", "bool")

    def is_zero(self) -> bool:
        """True when no output kind is selected."""
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass
class CompatibilityOptions:
    """Switches that restore older generator behaviour."""

    old_merge_schemas: bool = _opt("old-merge-schemas", "bool")
    old_enum_conflicts: bool = _opt("old-enum-conflicts", "bool")
    old_aliasing: bool = _opt("old-aliasing", "bool")
    disable_flatten_additional_properties: bool = _opt(
        "disable-flatten-additional-properties", "bool"
    )
    disable_required_readonly_as_pointer: bool = _opt(
        "disable-required-readonly-as-pointer", "bool"
    )
    always_prefix_enum_values: bool = _opt("always-prefix-enum-values", "bool")
    apply_chi_middleware_first_to_last: bool = _opt(
        "apply-chi-middleware-first-to-last", "bool"
    )
    apply_gorilla_middleware_first_to_last: bool = _opt(
        "apply-gorilla-middleware-first-to-last", "bool"
    )


@dataclass
class OutputOptions:
    """Options that change the generated output."""

    skip_fmt: bool = _opt("skip-fmt", "bool")
    skip_prune: bool = _opt("skip-prune", "bool")
    include_tags: list[str] = _opt("include-tags", "list")
    exclude_tags: list[str] = _opt("exclude-tags", "list")
    user_templates: dict[str, str] = _opt("user-templates", "map")
    exclude_schemas: list[str] = _opt("exclude-schemas", "list")
    response_type_suffix: str = _opt("response-type-suffix", "str")
    client_type_name: str = _opt("client-type-name", "str")
    initialism_overrides: bool = _opt("initialism-overrides", "bool")


_CONFIG_KEYS = {
    "package",
    "generate",
    "compatibility",
    "output-options",
    "import-mapping",
    "additional-imports",
}


@dataclass
class Configuration:
    """All settings for one code generation run."""

    package_name: str = ""
    generate: GenerateOptions = field(default_factory=GenerateOptions)
    compatibility: CompatibilityOptions = field(default_factory=CompatibilityOptions)
    output_options: OutputOptions = field(default_factory=OutputOptions)
    import_mapping: dict[str, str] = field(default_factory=dict)
    additional_imports: list[AdditionalImport] = field(default_factory=list)

    def update_defaults(self) -> Configuration:
        """Return a copy with default output kinds set when none are chosen."""
        if self.generate.is_zero():
            return replace(
                self,
                generate=GenerateOptions(echo_server=True, models=True, embedded_spec=True),
            )
        return replace(self)

    def validate(self) -> None:
        """Raise ConfigurationError if the configuration is not usable."""
        if not self.package_name:
            raise ConfigurationError("package name must be specified")
        servers = sum(
            (self.generate.chi_server, self.generate.echo_server, self.generate.gin_server)
        )
        if servers > 1:
            raise ConfigurationError("only one server type is supported at a time")

    @classmethod
    def from_dict(cls, data: Any) -> Configuration:
        """Build a configuration from a parsed YAML mapping, rejecting unknown keys."""
        return cls._load(data, strict=True)

    @classmethod
    def _load(cls, data: Any, strict: bool) -> Configuration:
        data = _check_mapping(data, "configuration")
        if strict:
            _check_keys(data, _CONFIG_KEYS, "configuration")
        imports_raw = data.get("additional-imports")
        if imports_raw is None:
            imports_raw = []
        if not isinstance(imports_raw, list):
            raise ConfigurationError("field 'additional-imports': expected a list")
        return cls(
            package_name=_coerce(data.get("package"), "str", "package"),
            generate=_load_flat(GenerateOptions, data.get("generate"), "generate", strict),
            compatibility=_load_flat(
                CompatibilityOptions, data.get("compatibility"), "compatibility", strict
            ),
            output_options=_load_flat(
                OutputOptions, data.get("output-options"), "output-options", strict
            ),
            import_mapping=_coerce(data.get("import-mapping"), "map", "import-mapping"),
            additional_imports=[
                _load_flat(AdditionalImport, item, "additional-imports", strict)
                for item in imports_raw
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as a YAML-ready mapping, leaving out empty fields."""
        out: dict[str, Any] = {"package": self.package_name}
        for key, section in (
            ("generate", self.generate),
            ("compatibility", self.compatibility),
            ("output-options", self.output_options),
        ):
            dumped = _dump_flat(section)
            if dumped:
                out[key] = dumped
        if self.import_mapping:
            out["import-mapping"] = dict(self.import_mapping)
        if self.additional_imports:
            out["additional-imports"] = [_dump_flat(i) for i in self.additional_imports]
        return out