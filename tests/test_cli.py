import subprocess
from unittest.mock import patch

import pytest

from apigenkit.cli import (
    CliError,
    OldConfiguration,
    RunConfiguration,
    detect_config_style,
    detect_package_name,
    generation_targets,
    load_template_overrides,
    new_config_from_old_config,
    parse_args,
    resolve_configuration,
    update_config_from_flags,
    update_old_config_from_flags,
)
from apigenkit.configuration import Configuration, GenerateOptions


def test_parse_args_reads_flags_and_spec():
    flags = parse_args(["-o", "out.go", "--package", "api", "-config=c.yaml", "spec.yaml"])
    assert flags.output_file == "out.go"
    assert flags.package_name == "api"
    assert flags.config_file == "c.yaml"
    assert flags.spec_path == "spec.yaml"
    assert flags.generate == "types,client,server,spec"
    assert flags.explicitly_set == {"o", "package", "config"}


def test_parse_args_requires_one_spec():
    with pytest.raises(CliError, match="Please specify a path"):
        parse_args([])
    with pytest.raises(CliError, match="Only one OpenAPI 3.0 spec file"):
        parse_args(["a.yaml", "b.yaml"])


def test_parse_args_help_without_spec():
    flags = parse_args(["-h"])
    assert flags.print_usage is True
    assert flags.spec_path == ""


def test_parse_args_unknown_flag():
    with pytest.raises(CliError):
        parse_args(["--no-such-flag", "spec.yaml"])


def test_generation_targets_sets_only_given_kinds():
    cfg = Configuration(generate=GenerateOptions(echo_server=True, models=True))
    result = generation_targets(cfg, ["chi", "client", "skip-fmt", "skip-prune"])
    assert result.generate == GenerateOptions(chi_server=True, client=True)
    assert result.output_options.skip_fmt is True
    assert result.output_options.skip_prune is True
    assert cfg.output_options.skip_fmt is False


@pytest.mark.parametrize(
    "target, attribute",
    [
        ("server", "echo_server"),
        ("gin-server", "gin_server"),
        ("gorilla", "gorilla_server"),
        ("strict-server", "strict"),
        ("models", "models"),
        ("embedded-spec", "embedded_spec"),
    ],
)
def test_generation_targets_aliases(target, attribute):
    result = generation_targets(Configuration(), [target])
    assert getattr(result.generate, attribute) is True


def test_generation_targets_unknown():
    with pytest.raises(CliError, match='unknown generate option "bogus"'):
        generation_targets(Configuration(), ["bogus"])


def test_load_template_overrides(tmp_path):
    (tmp_path / "typedef.tmpl").write_text("//blah", encoding="utf-8")
    (tmp_path / "chi").mkdir()
    (tmp_path / "chi" / "chi-handler.tmpl").write_text("handler", encoding="utf-8")
    assert load_template_overrides(str(tmp_path)) == {
        "typedef.tmpl": "//blah",
        "chi/chi-handler.tmpl": "handler",
    }


def test_load_template_overrides_empty_and_missing(tmp_path):
    assert load_template_overrides("") == {}
    with pytest.raises(OSError):
        load_template_overrides(str(tmp_path / "missing"))


def test_update_config_from_flags_applies_overrides():
    flags = parse_args(
        [
            "--package", "api",
            "--include-tags", "a, b",
            "--import-mapping", "other.yaml:github.com/x/y",
            "--response-type-suffix", "Resp",
            "-o", "flag.go",
            "spec.yaml",
        ]
    )
    run = RunConfiguration(output_file="")
    result = update_config_from_flags(run, flags)
    assert result.configuration.package_name == "api"
    assert result.configuration.output_options.include_tags == ["a", "b"]
    assert result.configuration.import_mapping == {"other.yaml": "github.com/x/y"}
    assert result.configuration.output_options.response_type_suffix == "Resp"
    assert result.output_file == "flag.go"
    assert run.configuration.package_name == ""


def test_update_config_from_flags_keeps_file_output_and_generate():
    flags = parse_args(["-o", "flag.go", "spec.yaml"])
    run = RunConfiguration(
        configuration=Configuration(generate=GenerateOptions(models=True)),
        output_file="file.go",
    )
    result = update_config_from_flags(run, flags)
    assert result.output_file == "file.go"
    assert result.configuration.generate == GenerateOptions(models=True)


def test_update_config_from_flags_rejects_alias_types():
    flags = parse_args(["--alias-types", "spec.yaml"])
    with pytest.raises(CliError, match="--alias-types isn't supported any more"):
        update_config_from_flags(RunConfiguration(), flags)


def test_update_old_config_prefers_file_values():
    flags = parse_args(["--package", "flagpkg", "-o", "flag.go", "spec.yaml"])
    old = OldConfiguration(package_name="filepkg", generate_targets=["models"])
    result = update_old_config_from_flags(old, flags)
    assert result.package_name == "filepkg"
    assert result.generate_targets == ["models"]
    assert result.output_file == "flag.go"
    assert result.include_tags == []


def test_new_config_from_old_config_defaults():
    flags = parse_args(["--package", "api", "spec.yaml"])
    run = new_config_from_old_config(OldConfiguration(), flags)
    assert run.configuration.package_name == "api"
    assert run.configuration.generate == GenerateOptions(
        echo_server=True, client=True, models=True, embedded_spec=True
    )


def test_detect_config_style():
    flags = parse_args(["spec.yaml"])
    new_text = "package: api\noutput-options:\n  skip-prune: true\n"
    old_text = "package: api\ngenerate:\n  - types\n"
    assert detect_config_style(new_text, flags) is False
    assert detect_config_style(old_text, flags) is True
    assert detect_config_style(None, flags) is False


def test_detect_config_style_ambiguous_uses_deprecated_flags():
    text = "package: api\n"
    assert detect_config_style(text, parse_args(["spec.yaml"])) is False
    assert detect_config_style(text, parse_args(["--exclude-tags", "x", "spec.yaml"])) is True
    assert detect_config_style(text, parse_args(["--old-config-style", "spec.yaml"])) is True


def test_detect_config_style_both_fail():
    with pytest.raises(CliError, match="old version or new version"):
        detect_config_style("unknown-key: 1\n", parse_args(["spec.yaml"]))


def test_resolve_configuration_defaults():
    run = resolve_configuration(parse_args(["petstore-expanded.yaml"]))
    assert run.configuration.package_name == "petstoreExpanded"
    assert run.configuration.generate == GenerateOptions(
        echo_server=True, client=True, models=True, embedded_spec=True
    )
    assert run.output_file == ""


def test_resolve_configuration_new_style_file(tmp_path):
    config = tmp_path / "cfg.yaml"
    config.write_text(
        "package: api\ngenerate:\n  models: true\noutput-options:\n  skip-prune: true\n",
        encoding="utf-8",
    )
    run = resolve_configuration(parse_args(["--config", str(config), "spec.yaml"]))
    assert run.configuration.generate == GenerateOptions(models=True)
    assert run.configuration.output_options.skip_prune is True
    assert run.configuration.package_name == "api"


def test_resolve_configuration_old_style_file(tmp_path):
    config = tmp_path / "cfg.yaml"
    config.write_text(
        "package: api\ngenerate:\n  - types\n  - chi-server\noutput: out.go\n",
        encoding="utf-8",
    )
    run = resolve_configuration(parse_args(["--config", str(config), "spec.yaml"]))
    assert run.configuration.generate == GenerateOptions(models=True, chi_server=True)
    assert run.output_file == "out.go"


def test_resolve_configuration_rejects_two_servers(tmp_path):
    config = tmp_path / "cfg.yaml"
    config.write_text(
        "package: api\ngenerate:\n  chi-server: true\n  echo-server: true\n",
        encoding="utf-8",
    )
    with pytest.raises(CliError, match="only one server type is supported at a time"):
        resolve_configuration(parse_args(["--config", str(config), "spec.yaml"]))


def test_resolve_configuration_missing_file(tmp_path):
    missing = str(tmp_path / "missing.yaml")
    with pytest.raises(CliError, match="error reading config file"):
        resolve_configuration(parse_args(["--config", missing, "spec.yaml"]))


def test_detect_package_name_keeps_existing():
    run = RunConfiguration(configuration=Configuration(package_name="api"), output_file="x.go")
    assert detect_package_name(run, "spec.yaml").configuration.package_name == "api"


def test_detect_package_name_from_go_list():
    done = subprocess.CompletedProcess(args=[], returncode=0, stdout="api\n")
    with patch("apigenkit.cli.subprocess.run", return_value=done) as run_mock:
        run = detect_package_name(RunConfiguration(output_file="gen/out.go"), "spec.yaml")
    assert run.configuration.package_name == "api"
    assert run_mock.call_args.args[0] == ["go", "list", "-f", "{{.Name}}", "gen"]


def test_detect_package_name_falls_back_when_no_go_files():
    done = subprocess.CompletedProcess(args=[], returncode=1, stdout="no Go files in /tmp/gen\n")
    with patch("apigenkit.cli.subprocess.run", return_value=done):
        run = detect_package_name(RunConfiguration(output_file="gen/out.go"), "dir/petstore.yaml")
    assert run.configuration.package_name == "petstore"


def test_detect_package_name_reports_other_failures():
    done = subprocess.CompletedProcess(args=[], returncode=1, stdout="something broke\n")
    with patch("apigenkit.cli.subprocess.run", return_value=done):
        with pytest.raises(CliError, match="detect package name"):
            detect_package_name(RunConfiguration(output_file="out.go"), "spec.yaml")