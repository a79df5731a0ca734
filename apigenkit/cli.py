"""Command line handling: flags, configuration styles and package naming."""

from __future__ import annotations

import argparse
import copy
import os
import re
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .configuration import (
    CompatibilityOptions,
    Configuration,
    ConfigurationError,
    GenerateOptions,
)

__all__ = [
    "CliError",
    "CommandLineOptions",
    "OldConfiguration",
    "RunConfiguration",
    "DEFAULT_GENERATE",
    "DEPRECATED_FLAGS",
    "parse_args",
    "generation_targets",
    "load_template_overrides",
    "update_config_from_flags",
    "update_old_config_from_flags",
    "new_config_from_old_config",
    "detect_config_style",
    "resolve_configuration",
    "detect_package_name",
]

DEFAULT_GENERATE = "types,client,server,spec"

# Flags whose presence means the old configuration style is in use.
DEPRECATED_FLAGS = frozenset(
    {
        "include-tags",
        "exclude-tags",
        "import-mapping",
        "exclude-schemas",
        "response-type-suffix",
        "alias-types",
    }
)


class CliError(Exception):
    """Raised when the command line or the configuration cannot be used."""


@dataclass(frozen=True)
class CommandLineOptions:
    """Values given on the command line."""

    spec_path: str = ""
    output_file: str = ""
    config_file: str = ""
    old_config_style: bool = False
    output_config: bool = False
    print_version: bool = False
    package_name: str = ""
    print_usage: bool = False
    generate: str = DEFAULT_GENERATE
    templates_dir: str = ""
    include_tags: str = ""
    exclude_tags: str = ""
    import_mapping: str = ""
    exclude_schemas: str = ""
    response_type_suffix: str = ""
    alias_types: bool = False
    initialism_overrides: bool = False
    explicitly_set: frozenset = frozenset()


@dataclass
class OldConfiguration:
    """The older, flat configuration file layout."""

    package_name: str = ""
    generate_targets: list[str] | None = None
    output_file: str = ""
    include_tags: list[str] | None = None
    exclude_tags: list[str] | None = None
    templates_dir: str = ""
    import_mapping: dict[str, str] | None = None
    exclude_schemas: list[str] | None = None
    response_type_suffix: str = ""
    compatibility: CompatibilityOptions = field(default_factory=CompatibilityOptions)


@dataclass
class RunConfiguration:
    """A generator configuration together with where its output goes."""

    configuration: Configuration = field(default_factory=Configuration)
    output_file: str = ""


# name, destination, takes a value, help
_FLAGS = (
    ("o", "output_file", True, "Where to output generated code, stdout is default"),
    ("old-config-style", "old_config_style", False, "whether to use the older style config file format"),
    ("output-config", "output_config", False, "output a configuration file using current settings"),
    ("config", "config_file", True, "a YAML config file that controls generator behavior"),
    ("version", "print_version", False, "when specified, print version and exit"),
    ("package", "package_name", True, "The package name for generated code"),
    ("help", "print_usage", False, "show this help and exit"),
    ("h", "print_usage", False, "same as -help"),
    ("generate", "generate", True, "Comma-separated list of code to generate"),
    ("include-tags", "include_tags", True, "Only include operations with the given tags"),
    ("exclude-tags", "exclude_tags", True, "Exclude operations tagged with the given tags"),
    ("templates", "templates_dir", True, "Path to directory containing user templates"),
    ("import-mapping", "import_mapping", True, "A dict from the external reference to package path"),
    ("exclude-schemas", "exclude_schemas", True, "Comma separated list of schemas to exclude"),
    ("response-type-suffix", "response_type_suffix", True, "the suffix used for responses types"),
    ("alias-types", "alias_types", False, "Alias type declarations if possible"),
    ("initialism-overrides", "initialism_overrides", False, "Use initialism overrides"),
)


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> Any:  # type: ignore[override]
        raise CliError(message)


def _build_parser() -> _Parser:
    parser = _Parser(prog="apigen", add_help=False, allow_abbrev=False)
    for name, dest, takes_value, help_text in _FLAGS:
        names = [f"-{name}"] + ([f"--{name}"] if len(name) > 1 else [])
        if takes_value:
            parser.add_argument(*names, dest=dest, default=argparse.SUPPRESS, help=help_text)
        else:
            parser.add_argument(
                *names, dest=dest, action="store_true", default=argparse.SUPPRESS, help=help_text
            )
    parser.add_argument("specs", nargs="*", default=[])
    return parser


def parse_args(argv: Sequence[str]) -> CommandLineOptions:
    """Parse command line arguments into options."""
    namespace = vars(_build_parser().parse_args(list(argv)))
    specs = namespace.pop("specs")
    dest_to_name = {dest: name for name, dest, _, _ in _FLAGS}
    explicitly_set = frozenset(dest_to_name[dest] for dest in namespace)
    options = CommandLineOptions(explicitly_set=explicitly_set, **namespace)
    if not (options.print_usage or options.print_version):
        if not specs:
            raise CliError("Please specify a path to a OpenAPI 3.0 spec file")
        if len(specs) > 1:
            raise CliError(
                "Only one OpenAPI 3.0 spec file is accepted and it must be the last CLI argument"
            )
    return replace(options, spec_path=specs[0] if specs else "")


def _parse_list(text: str) -> list[str]:
    return [item.strip() for item in text.split(",") if item.strip()]


def _parse_map(text: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for item in (part.strip() for part in text.split(",")):
        if not item:
            continue
        key, sep, value = item.rpartition(":")
        if not sep or not key.strip():
            raise CliError(f"invalid mapping entry {item!r}, expected key:value")
        result[key.strip()] = value.strip()
    return result


_TARGETS = {
    "chi-server": "chi_server",
    "chi": "chi_server",
    "server": "echo_server",
    "echo-server": "echo_server",
    "echo": "echo_server",
    "gin": "gin_server",
    "gin-server": "gin_server",
    "gorilla": "gorilla_server",
    "gorilla-server": "gorilla_server",
    "strict-server": "strict",
    "client": "client",
    "types": "models",
    "models": "models",
    "spec": "embedded_spec",
    "embedded-spec": "embedded_spec",
}


def generation_targets(cfg: Configuration, targets: Sequence[str]) -> Configuration:
    """Return a copy of cfg whose output kinds are exactly the given targets."""
    selected: dict[str, bool] = {}
    output_options = replace(cfg.output_options)
    for target in targets:
        if target in _TARGETS:
            selected[_TARGETS[target]] = True
        elif target == "skip-fmt":
            output_options.skip_fmt = True
        elif target == "skip-prune":
            output_options.skip_prune = True
        else:
            raise CliError(f'unknown generate option "{target}"')
    return replace(cfg, generate=GenerateOptions(**selected), output_options=output_options)


def load_template_overrides(templates_dir: str) -> dict[str, str]:
    """Read every file below templates_dir, keyed by its relative path."""
    if not templates_dir:
        return {}
    templates: dict[str, str] = {}
    for entry in sorted(Path(templates_dir).iterdir()):
        if entry.is_dir():
            for sub_name, text in load_template_overrides(str(entry)).items():
                templates[f"{entry.name}/{sub_name}"] = text
        else:
            templates[entry.name] = entry.read_text(encoding="utf-8")
    return templates


def update_config_from_flags(cfg: RunConfiguration, flags: CommandLineOptions) -> RunConfiguration:
    """Return cfg with command line flags applied over it."""
    run = copy.deepcopy(cfg)
    conf = run.configuration
    if flags.package_name:
        conf.package_name = flags.package_name
    if flags.generate != DEFAULT_GENERATE:
        conf = generation_targets(conf, _parse_list(flags.generate))
    out = conf.output_options
    if flags.include_tags:
        out.include_tags = _parse_list(flags.include_tags)
    if flags.exclude_tags:
        out.exclude_tags = _parse_list(flags.exclude_tags)
    if flags.templates_dir:
        try:
            out.user_templates = load_template_overrides(flags.templates_dir)
        except OSError as exc:
            raise CliError(f'load templates from "{flags.templates_dir}": {exc}') from exc
    if flags.import_mapping:
        conf.import_mapping = _parse_map(flags.import_mapping)
    if flags.exclude_schemas:
        out.exclude_schemas = _parse_list(flags.exclude_schemas)
    if flags.response_type_suffix:
        out.response_type_suffix = flags.response_type_suffix
    if flags.alias_types:
        raise CliError("--alias-types isn't supported any more")
    if not run.output_file:
        run.output_file = flags.output_file
    out.initialism_overrides = flags.initialism_overrides
    run.configuration = conf
    return run


def update_old_config_from_flags(cfg: OldConfiguration, flags: CommandLineOptions) -> OldConfiguration:
    """Fill fields left empty in an old-style configuration from the flags."""
    result = copy.deepcopy(cfg)
    if not result.package_name:
        result.package_name = flags.package_name
    if result.generate_targets is None:
        result.generate_targets = _parse_list(flags.generate)
    if result.include_tags is None:
        result.include_tags = _parse_list(flags.include_tags)
    if result.exclude_tags is None:
        result.exclude_tags = _parse_list(flags.exclude_tags)
    if not result.templates_dir:
        result.templates_dir = flags.templates_dir
    if result.import_mapping is None and flags.import_mapping:
        try:
            result.import_mapping = _parse_map(flags.import_mapping)
        except CliError as exc:
            raise CliError(f"error parsing import-mapping: {exc}") from exc
    if result.exclude_schemas is None:
        result.exclude_schemas = _parse_list(flags.exclude_schemas)
    if not result.output_file:
        result.output_file = flags.output_file
    return result


def new_config_from_old_config(old: OldConfiguration, flags: CommandLineOptions) -> RunConfiguration:
    """Convert an old-style configuration, with flags taken into account."""
    cfg = update_old_config_from_flags(old, flags)
    conf = Configuration(package_name=cfg.package_name)
    conf.output_options.response_type_suffix = flags.response_type_suffix
    conf = generation_targets(conf, cfg.generate_targets or [])
    conf.output_options.include_tags = list(cfg.include_tags or [])
    conf.output_options.exclude_tags = list(cfg.exclude_tags or [])
    conf.output_options.exclude_schemas = list(cfg.exclude_schemas or [])
    try:
        conf.output_options.user_templates = load_template_overrides(cfg.templates_dir)
    except OSError as exc:
        raise CliError(f"error loading template overrides: {exc}") from exc
    conf.import_mapping = dict(cfg.import_mapping or {})
    conf.compatibility = replace(cfg.compatibility)
    return RunConfiguration(configuration=conf, output_file=cfg.output_file)


def _load_mapping(text: str) -> dict:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CliError(f"invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise CliError(f"expected a mapping at the top level, got {type(data).__name__}")
    return dict(data)


def _parse_new_config(text: str) -> RunConfiguration:
    data = _load_mapping(text)
    output = data.pop("output", None)
    if output is not None and not isinstance(output, str):
        raise CliError("field 'output': expected a string")
    try:
        conf = Configuration.from_dict(data)
    except ConfigurationError as exc:
        raise CliError(str(exc)) from exc
    return RunConfiguration(configuration=conf, output_file=output or "")


_OLD_KEYS = {
    "package",
    "generate",
    "output",
    "include-tags",
    "exclude-tags",
    "templates",
    "import-mapping",
    "exclude-schemas",
    "response-type-suffix",
    "compatibility",
}


def _old_str(data: Mapping, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CliError(f"field {key!r}: expected a string")
    return value


def _old_list(data: Mapping, key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CliError(f"field {key!r}: expected a list of strings")
    return list(value)


def _old_map(data: Mapping, key: str) -> dict[str, str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise CliError(f"field {key!r}: expected a mapping of strings")
    return dict(value)


def _old_compatibility(value: Any, strict: bool) -> CompatibilityOptions:
    if value is None:
        return CompatibilityOptions()
    if not isinstance(value, Mapping):
        raise CliError("field 'compatibility': expected a mapping")
    by_key = {f.metadata["yaml"]: f.name for f in fields(CompatibilityOptions)}
    unknown = sorted(str(k) for k in value if k not in by_key)
    if strict and unknown:
        raise CliError(f"compatibility: unknown field(s) {', '.join(unknown)}")
    kwargs = {}
    for key, name in by_key.items():
        if key in value and value[key] is not None:
            if not isinstance(value[key], bool):
                raise CliError(f"field {key!r}: expected a boolean")
            kwargs[name] = value[key]
    return CompatibilityOptions(**kwargs)


def _parse_old_config(text: str, strict: bool) -> OldConfiguration:
    data = _load_mapping(text)
    unknown = sorted(str(k) for k in data if k not in _OLD_KEYS)
    if strict and unknown:
        raise CliError(f"unknown field(s) {', '.join(unknown)}")
    return OldConfiguration(
        package_name=_old_str(data, "package"),
        generate_targets=_old_list(data, "generate"),
        output_file=_old_str(data, "output"),
        include_tags=_old_list(data, "include-tags"),
        exclude_tags=_old_list(data, "exclude-tags"),
        templates_dir=_old_str(data, "templates"),
        import_mapping=_old_map(data, "import-mapping"),
        exclude_schemas=_old_list(data, "exclude-schemas"),
        response_type_suffix=_old_str(data, "response-type-suffix"),
        compatibility=_old_compatibility(data.get("compatibility"), strict),
    )


def detect_config_style(config_text: str | None, flags: CommandLineOptions) -> bool:
    """Return True when the old configuration style should be used."""
    if flags.old_config_style:
        return True
    if config_text is not None:
        old_error = new_error = None
        try:
            _parse_old_config(config_text, strict=True)
        except CliError as exc:
            old_error = exc
        try:
            _parse_new_config(config_text)
        except CliError as exc:
            new_error = exc
        if old_error is not None and new_error is None:
            return False
        if old_error is None and new_error is not None:
            return True
        if old_error is not None and new_error is not None:
            raise CliError(
                f"error parsing configuration style as old version or new version: {new_error}"
            )
    return bool(flags.explicitly_set & DEPRECATED_FLAGS)


def _read_config(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CliError(f"error reading config file '{path}': {exc}") from exc


def resolve_configuration(flags: CommandLineOptions) -> RunConfiguration:
    """Build the final, validated configuration from the flags and config file."""
    config_text = _read_config(flags.config_file) if flags.config_file else None
    if not detect_config_style(config_text, flags):
        if config_text is not None:
            run = _parse_new_config(config_text)
        else:
            run = RunConfiguration(
                configuration=Configuration(
                    generate=GenerateOptions(
                        echo_server=True, client=True, models=True, embedded_spec=True
                    )
                ),
                output_file=flags.output_file,
            )
        try:
            run = update_config_from_flags(run, flags)
        except CliError as exc:
            raise CliError(f"error processing flags: {exc}") from exc
    else:
        old = (
            _parse_old_config(config_text, strict=False)
            if config_text is not None
            else OldConfiguration()
        )
        run = new_config_from_old_config(old, flags)

    run = replace(run, configuration=run.configuration.update_defaults())
    run = detect_package_name(run, flags.spec_path)
    try:
        run.configuration.validate()
    except ConfigurationError as exc:
        raise CliError(f"configuration error: {exc}") from exc
    return run


def _to_camel_case(text: str) -> str:
    words = re.split(r"[\W_]+", text.strip())
    return "".join(word[:1].upper() + word[1:] for word in words if word)


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def detect_package_name(cfg: RunConfiguration, spec_path: str) -> RunConfiguration:
    """Return cfg with a package name, derived if none was given."""
    if cfg.configuration.package_name:
        return cfg
    if cfg.output_file:
        directory = os.path.dirname(cfg.output_file) or "."
        try:
            proc = subprocess.run(
                ["go", "list", "-f", "{{.Name}}", directory],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise CliError(f'detect package name for "{directory}" output: {exc}') from exc
        output = proc.stdout or ""
        if proc.returncode == 0:
            return replace(
                cfg, configuration=replace(cfg.configuration, package_name=output.strip())
            )
        if not (
            "expected 'package', found 'EOF'" in output or output.startswith("no Go files in")
        ):
            raise CliError(
                f'detect package name for "{directory}" output: {output!r}: '
                f"exit status {proc.returncode}"
            )
    base = os.path.basename(spec_path).split(".")[0]
    name = _lower_first(_to_camel_case(base))
    return replace(cfg, configuration=replace(cfg.configuration, package_name=name))