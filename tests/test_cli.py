from collections.abc import Callable
from dataclasses import FrozenInstanceError
import argparse
from pathlib import Path

import pytest

import vgen


def _assert_config_code(exc_info: pytest.ExceptionInfo[Exception], code: str) -> None:
    err = exc_info.value
    assert getattr(err, "code") == code
    assert getattr(err, "code") in vgen.VALID_ERROR_CODES


def test_import_vgen_module_smoke() -> None:
    assert callable(vgen.main)


def test_build_argument_parser_exposes_surface_and_defaults() -> None:
    parser = vgen.build_argument_parser()
    option_actions = {
        option: action for action in parser._actions for option in action.option_strings
    }

    assert {"-i", "--in", "-o", "--out", "--no-summary"}.issubset(option_actions.keys())
    assert option_actions["--in"].default is None
    assert option_actions["--out"].default is None
    assert option_actions["--no-summary"].default is False


def test_parse_args_maps_positionals_without_validation() -> None:
    args = vgen.parse_args(["does/not/exist.xml", "out"])

    assert args.vk_xml == Path("does/not/exist.xml")
    assert args.output_dir == Path("out")
    assert args.in_file is None
    assert args.out_dir is None


def test_parse_args_maps_flags() -> None:
    args = vgen.parse_args(["--in", "vk.xml", "-o", "build", "--no-summary"])

    assert args.in_file == Path("vk.xml")
    assert args.out_dir == Path("build")
    assert args.vk_xml is None
    assert args.no_summary is True


def test_parse_args_unknown_flag_exits_with_usage_code() -> None:
    with pytest.raises(SystemExit) as exc_info:
        vgen.parse_args(["--not-a-flag"])

    assert exc_info.value.code == 2


def test_validate_config_positional_paths(
    make_args: Callable[..., argparse.Namespace], existing_paths: dict[str, Path]
) -> None:
    config = vgen.validate_config(make_args())

    assert config == vgen.GenerateConfig(
        vk_xml=existing_paths["vk_xml"],
        output_dir=existing_paths["output_dir"],
        show_summary=True,
    )


def test_validate_config_flag_paths(
    make_args: Callable[..., argparse.Namespace], existing_paths: dict[str, Path]
) -> None:
    config = vgen.validate_config(
        make_args(
            vk_xml=None,
            output_dir=None,
            in_file=existing_paths["vk_xml"],
            out_dir=existing_paths["output_dir"],
            no_summary=True,
        )
    )

    assert config.vk_xml == existing_paths["vk_xml"]
    assert config.output_dir == existing_paths["output_dir"]
    assert config.show_summary is False


def test_validate_config_same_path_twice_is_not_a_conflict(
    make_args: Callable[..., argparse.Namespace], existing_paths: dict[str, Path]
) -> None:
    config = vgen.validate_config(make_args(in_file=existing_paths["vk_xml"]))

    assert config.vk_xml == existing_paths["vk_xml"]


def test_validate_config_output_defaults_to_cwd(
    make_args: Callable[..., argparse.Namespace],
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)

    config = vgen.validate_config(make_args(output_dir=None))

    assert config.output_dir == Path.cwd()


def test_validate_config_missing_input(make_args: Callable[..., argparse.Namespace]) -> None:
    with pytest.raises(vgen.ConfigError) as exc_info:
        vgen.validate_config(make_args(vk_xml=None))

    _assert_config_code(exc_info, "MISSING_INPUT")
    assert exc_info.value.suggestion is not None


def test_validate_config_conflicting_input(
    make_args: Callable[..., argparse.Namespace], tmp_path: Path
) -> None:
    with pytest.raises(vgen.ConfigError) as exc_info:
        vgen.validate_config(make_args(in_file=tmp_path / "other.xml"))

    _assert_config_code(exc_info, "CONFLICT_INPUT")


def test_validate_config_conflicting_output(
    make_args: Callable[..., argparse.Namespace], tmp_path: Path
) -> None:
    with pytest.raises(vgen.ConfigError) as exc_info:
        vgen.validate_config(make_args(out_dir=tmp_path / "elsewhere"))

    _assert_config_code(exc_info, "CONFLICT_OUTPUT")


def test_validate_config_missing_vk_xml(
    make_args: Callable[..., argparse.Namespace], missing_path: Path
) -> None:
    with pytest.raises(vgen.ConfigError) as exc_info:
        vgen.validate_config(make_args(vk_xml=missing_path))

    _assert_config_code(exc_info, "PATH_NOT_FOUND")
    assert str(missing_path) in exc_info.value.message


def test_validate_config_output_is_a_file(
    make_args: Callable[..., argparse.Namespace], existing_paths: dict[str, Path]
) -> None:
    with pytest.raises(vgen.ConfigError) as exc_info:
        vgen.validate_config(make_args(output_dir=existing_paths["vk_xml"]))

    _assert_config_code(exc_info, "INVALID_OUTPUT_DIR")


def test_config_error_rejects_unknown_code() -> None:
    with pytest.raises(ValueError, match="Unknown config error code"):
        vgen.ConfigError("NOT_A_CODE", "message")


def test_generate_config_is_frozen(existing_paths: dict[str, Path]) -> None:
    config = vgen.GenerateConfig(existing_paths["vk_xml"], existing_paths["output_dir"])

    with pytest.raises(FrozenInstanceError):
        config.show_summary = False  # type: ignore[misc]


def test_build_config_end_to_end(existing_paths: dict[str, Path]) -> None:
    config = vgen.build_config(
        [str(existing_paths["vk_xml"]), str(existing_paths["output_dir"])]
    )

    assert config.vk_xml == existing_paths["vk_xml"]
    assert config.output_dir == existing_paths["output_dir"]


# ===--- main ---=== #


def test_main_config_error_prints_code_and_hint(
    capsys: pytest.CaptureFixture[str], missing_path: Path
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        vgen.main([str(missing_path)])

    out = capsys.readouterr().out
    assert exc_info.value.code == 1
    assert "Config error [PATH_NOT_FOUND]:" in out
    assert "Hint: " in out


def test_main_parse_error_maps_to_error_line(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    broken = tmp_path / "vk.xml"
    broken.write_text("<registry>", encoding="utf-8")

    with pytest.raises(SystemExit) as exc_info:
        vgen.main([str(broken), str(tmp_path / "out")])

    assert exc_info.value.code == 1
    assert "Error: " in capsys.readouterr().out


def test_main_registry_error_maps_to_registry_line(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    registry = tmp_path / "vk.xml"
    registry.write_text(
        '<registry><commands><command name="vkFooKHR" alias="vkFoo"/></commands></registry>',
        encoding="utf-8",
    )

    with pytest.raises(SystemExit) as exc_info:
        vgen.main([str(registry), str(tmp_path / "out")])

    assert exc_info.value.code == 1
    assert "Registry error: VK_HEADER_VERSION" in capsys.readouterr().out
