import argparse
import sys
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import vgen  # noqa: E402


@pytest.fixture
def existing_paths(tmp_path: Path) -> dict[str, Path]:
    vk_xml = tmp_path / "vk.xml"
    vk_xml.write_text("<registry />\n", encoding="utf-8")

    output_dir = tmp_path / "out"
    return {
        "vk_xml": vk_xml,
        "output_dir": output_dir,
    }


@pytest.fixture
def missing_path(tmp_path: Path) -> Path:
    return tmp_path / "missing"


@pytest.fixture
def make_args(existing_paths: dict[str, Path]) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "vk_xml": existing_paths["vk_xml"],
            "output_dir": existing_paths["output_dir"],
            "in_file": None,
            "out_dir": None,
            "no_summary": False,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_registry_root() -> Callable[[str], ET.Element]:
    def _make_registry_root(inner_xml: str) -> ET.Element:
        return ET.fromstring(f"<registry>{inner_xml}</registry>")

    return _make_registry_root


@pytest.fixture
def make_command() -> Callable[..., vgen.Command]:
    def _make_command(
        name: str,
        *,
        return_type: str = "int",
        params: str = "Foo foo, Bar bar",
        param_names: str = "foo, bar",
        comment: str = "",
        is_device_command: bool = True,
    ) -> vgen.Command:
        return vgen.Command(
            name=name,
            prototype=f"{return_type} {name}",
            params=params,
            param_names=param_names,
            comment=comment,
            returns_void=return_type == "void",
            is_device_command=is_device_command,
        )

    return _make_command


@pytest.fixture
def test_commands(make_command: Callable[..., vgen.Command]) -> vgen.CommandMap:
    return {
        "test_void": make_command("test_void", return_type="void", comment="// comment\n"),
        "test_int": make_command("test_int"),
    }


@pytest.fixture
def struct_commands(make_command: Callable[..., vgen.Command]) -> vgen.CommandMap:
    return {
        name: make_command(
            name,
            return_type="VkResult",
            params="int foo, char bar",
            comment=f"// a comment #{index}\n",
            is_device_command=False,
        )
        for index, name in enumerate(("fn_one", "fn_two"), start=1)
    }


@pytest.fixture
def test_feature() -> vgen.Feature:
    return vgen.Feature(
        name="test_feature",
        comment="// test feature comment\n",
        sections=(
            vgen.Section(comment="// section comment\n", commands=("fn_one", "fn_two")),
        ),
    )
