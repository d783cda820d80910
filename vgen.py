"""Vulkan loader generator.

Reads the Khronos vk.xml registry and generates a C loader library:
`vulkan_loader.h` declaring the loader interface and `vulkan_loader.c`
providing runtime-resolved function pointers for every command, guarded by
the feature or extension that makes each command available.

Usage:
    python vgen.py path/to/vk.xml [output dir]
    python vgen.py --in path/to/vk.xml --out build/generated
"""

import argparse
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

HEADER_FILENAME = "vulkan_loader.h"
SOURCE_FILENAME = "vulkan_loader.c"


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    vk_xml: Path
    output_dir: Path
    show_summary: bool = True


VALID_ERROR_CODES = {
    "MISSING_INPUT",
    "CONFLICT_INPUT",
    "CONFLICT_OUTPUT",
    "PATH_NOT_FOUND",
    "INVALID_OUTPUT_DIR",
}


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_path_exists(
    path: Path | None, flag: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            suggestion or f"Pass the path explicitly: {flag} /path/to/resource",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this flag.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vgen", description="Vulkan loader library generator"
    )

    parser.add_argument(
        "vk_xml",
        nargs="?",
        type=Path,
        default=None,
        help="Vulkan API Registry file (vk.xml) location",
    )
    parser.add_argument(
        "output_dir", nargs="?", type=Path, default=None, help="output directory"
    )
    parser.add_argument("-i", "--in", dest="in_file", type=Path, default=None)
    parser.add_argument("-o", "--out", dest="out_dir", type=Path, default=None)
    parser.add_argument("--no-summary", action="store_true", default=False)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def _pick_path(
    positional: Path | None, flagged: Path | None, code: str, flag: str
) -> Path | None:
    if positional is not None and flagged is not None and positional != flagged:
        raise ConfigError(
            code,
            f"Conflicting paths: {positional} (positional) and {flagged} ({flag}).",
            f"Pass the path either positionally or with {flag}, not both.",
        )
    return flagged if flagged is not None else positional


def validate_config(args: argparse.Namespace) -> GenerateConfig:
    vk_xml = _pick_path(args.vk_xml, args.in_file, "CONFLICT_INPUT", "--in")
    if vk_xml is None:
        raise ConfigError(
            "MISSING_INPUT",
            "No input file specified.",
            "Pass the registry location: vgen path/to/vk.xml [output dir]",
        )
    vk_xml = validate_path_exists(
        vk_xml,
        "--in",
        "vk.xml ships with Vulkan-Docs (xml/vk.xml) and Vulkan-Headers "
        "(registry/vk.xml).",
    )

    output_dir = _pick_path(args.output_dir, args.out_dir, "CONFLICT_OUTPUT", "--out")
    if output_dir is None:
        output_dir = Path.cwd()
    if output_dir.exists() and not output_dir.is_dir():
        raise ConfigError(
            "INVALID_OUTPUT_DIR",
            f"Output path is not a directory: {output_dir}",
            "Pass a directory (it is created if missing).",
        )

    return GenerateConfig(
        vk_xml=vk_xml,
        output_dir=output_dir,
        show_summary=not args.no_summary,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig:
    return validate_config(parse_args(argv))


# ===--- Constants ---=== #

# A command whose first parameter is one of these dispatches through the instance.
INSTANCE_LEVEL_TYPES = {"VkInstance", "VkPhysicalDevice"}

# Loaded by vgen_init_vulkan_loader, before any instance exists.
GLOBAL_COMMANDS = (
    "vkCreateInstance",
    "vkEnumerateInstanceExtensionProperties",
    "vkEnumerateInstanceLayerProperties",
)

COMMENT_STYLES = ("plain", "none", "struct")

_PROC_ADDR_GETTERS = {
    "instance": ("vkGetInstanceProcAddr", "instance"),
    "device": ("vkGetDeviceProcAddr", "device"),
}


# ===--- Data classes ---=== #


class RegistryError(RuntimeError):
    """The registry is structurally inconsistent and cannot be generated from."""


@dataclass(frozen=True)
class Command:
    """One registry command, pre-rendered into the text fragments the emitter needs.

    Attributes:
        name: Command name, e.g. "vkCmdFillBuffer". Unique key in the command map.
        prototype: Return type and name, e.g. "void vkCmdFillBuffer".
        params: Full parameter list, e.g. "VkCommandBuffer commandBuffer, ...".
        param_names: Parameter names for call-through, e.g. "commandBuffer, ...".
        comment: "// <comment>\\n" or "" when the command has no comment.
        returns_void: True when the wrapper must not `return` the call result.
        is_device_command: True when the first parameter has a type other
            than VkInstance or VkPhysicalDevice.
    """

    name: str
    prototype: str
    params: str
    param_names: str
    comment: str = ""
    returns_void: bool = False
    is_device_command: bool = False


@dataclass(frozen=True)
class Section:
    comment: str
    commands: tuple[str, ...]


@dataclass(frozen=True)
class Feature:
    name: str
    comment: str
    sections: tuple[Section, ...] = field(default_factory=tuple)


class ExtensionEntry(NamedTuple):
    requirements: frozenset[str]
    command: str


ExtensionIndex = tuple[ExtensionEntry, ...]
CommandMap = dict[str, Command]
CommandEmitter = Callable[[str], str]


def find_command(name: str, commands: CommandMap) -> Command:
    command = commands.get(name)
    if command is None:
        raise RegistryError(f"Command {name} not found in command map")
    return command


# ===--- XML parsing ---=== #


def _supports_vulkan_api(api_value: str) -> bool:
    """Return True when a comma-separated api/supported value includes vulkan."""
    return any(token.strip() == "vulkan" for token in api_value.split(","))


def _is_vulkan_node(node: ET.Element) -> bool:
    api = node.get("api")
    return api is None or _supports_vulkan_api(api)


def read_full_text(node: ET.Element) -> str:
    """Concatenate every text fragment under node, trimmed and space separated.

    `<param>const <type>VkAllocationCallbacks</type>* <name>pAllocator</name></param>`
    reads as "const VkAllocationCallbacks * pAllocator".
    """
    fragments = (text.strip() for text in node.itertext())
    return " ".join(text for text in fragments if text)


def read_comment(node: ET.Element) -> str:
    comment = node.get("comment")
    if comment is not None:
        return f"// {comment}\n"
    return ""


def _command_params(command_node: ET.Element) -> list[ET.Element]:
    return [p for p in command_node.findall("param") if _is_vulkan_node(p)]


def is_device_command(command_node: ET.Element) -> bool:
    """Return True when the first parameter is a device-level dispatchable handle.

    Commands whose first parameter is VkInstance or VkPhysicalDevice, and
    commands without parameters, are instance-level.
    """
    params = _command_params(command_node)
    if not params:
        return False
    type_el = params[0].find("type")
    if type_el is None or type_el.text is None:
        return False
    return type_el.text not in INSTANCE_LEVEL_TYPES


def read_command(command_node: ET.Element) -> Command:
    """Pre-render one primary <command> into a Command.

    Args:
        command_node: A registry/commands/command element with a <proto>.

    Returns:
        Command with prototype, parameter list and call-argument text.
        Parameters restricted to another API variant are left out.
    """
    params = _command_params(command_node)
    proto_el = command_node.find("proto")
    name = proto_el.findtext("name", default="") if proto_el is not None else ""
    return_type = proto_el.findtext("type") if proto_el is not None else None

    param_names = []
    for p in params:
        name_el = p.find("name")
        if name_el is not None and name_el.text:
            param_names.append(name_el.text)

    return Command(
        name=name,
        prototype=" ".join(read_full_text(p) for p in command_node.findall("proto")),
        params=", ".join(read_full_text(p) for p in params),
        param_names=", ".join(param_names),
        comment=read_comment(command_node),
        returns_void=return_type == "void",
        is_device_command=is_device_command(command_node),
    )


def collect_commands(root: ET.Element) -> tuple[CommandMap, dict[str, str]]:
    """First pass over registry/commands: primary definitions and alias declarations.

    Returns:
        (primaries keyed by proto name, alias name -> aliased name). When the
        registry declares a name twice the first declaration wins.
    """
    primaries: CommandMap = {}
    aliases: dict[str, str] = {}
    for command_node in root.findall("commands/command"):
        if not _is_vulkan_node(command_node):
            continue
        alias = command_node.get("alias")
        if alias is not None:
            aliases.setdefault(command_node.get("name", ""), alias)
            continue
        command = read_command(command_node)
        primaries.setdefault(command.name, command)
    return primaries, aliases


def resolve_alias(
    alias: str, target: str, primaries: CommandMap, aliases: dict[str, str]
) -> Command:
    """Materialize `alias` as a copy of the primary command it (transitively) names.

    The alias chain is followed through `aliases` until a primary command is
    found. The copy is renamed and the first occurrence of the primary name in
    its prototype is replaced by the alias name.

    Raises:
        RegistryError: The chain dead-ends, loops, or the primary name does
            not occur in the prototype text.
    """
    name = target
    visited = {alias}
    while name not in primaries:
        if name not in aliases or name in visited:
            raise RegistryError(f"Alias '{target}' not found in map")
        visited.add(name)
        name = aliases[name]

    existing = primaries[name]
    pos = existing.prototype.find(existing.name)
    if pos < 0:
        raise RegistryError(
            f"Alias '{alias}': '{existing.name}' does not occur in prototype "
            f"'{existing.prototype}'"
        )
    prototype = (
        existing.prototype[:pos] + alias + existing.prototype[pos + len(existing.name):]
    )
    return replace(existing, name=alias, prototype=prototype)


def resolve_command_aliases(
    primaries: CommandMap, aliases: dict[str, str]
) -> CommandMap:
    commands = dict(primaries)
    for alias, target in aliases.items():
        commands.setdefault(alias, resolve_alias(alias, target, primaries, aliases))
    return commands


def read_commands(root: ET.Element) -> CommandMap:
    """Read every Vulkan command in the registry, aliases included.

    Args:
        root: The <registry> element.

    Returns:
        Commands keyed by name.

    Raises:
        RegistryError: An alias cannot be resolved to a primary command.
    """
    primaries, aliases = collect_commands(root)
    return resolve_command_aliases(primaries, aliases)


def read_feature(feature_node: ET.Element) -> Feature:
    """Read one <feature> into its guard name, comment and command sections.

    Args:
        feature_node: A registry/feature element.

    Returns:
        Feature whose sections keep registry order. <require> blocks without
        commands, or restricted to another API variant, are skipped.
    """
    sections = []
    for require in feature_node.findall("require"):
        if not _is_vulkan_node(require):
            continue
        names = tuple(cmd.get("name", "") for cmd in require.findall("command"))
        # blocks that only pull in types and enums are not interesting to the loader
        if not names:
            continue
        sections.append(Section(comment=read_comment(require), commands=names))
    return Feature(
        name=feature_node.get("name", ""),
        comment=read_comment(feature_node),
        sections=tuple(sections),
    )


def read_features(root: ET.Element) -> list[Feature]:
    """Read the Vulkan core features in registry order."""
    return [read_feature(node) for node in root.findall("feature") if _is_vulkan_node(node)]


def read_vulkan_header_version(root: ET.Element) -> str:
    """Return the VK_HEADER_VERSION literal, e.g. "42", as opaque text.

    The value is the last text fragment directly inside the define, after
    its <name> child.

    Raises:
        RegistryError: No VK_HEADER_VERSION define exists.
    """
    for type_node in root.findall("types/type[@category='define']"):
        if not _is_vulkan_node(type_node):
            continue
        if type_node.findtext("name") != "VK_HEADER_VERSION":
            continue
        fragments = [type_node.text or ""] + [child.tail or "" for child in type_node]
        values = [text.strip() for text in fragments if text.strip()]
        if values:
            return values[-1]
    raise RegistryError("VK_HEADER_VERSION define not found in registry")


# ===--- Requirement aggregation ---=== #


def defined(name: str) -> str:
    return f"defined({name})"


def _extension_supported(extension_node: ET.Element) -> bool:
    supported = extension_node.get("supported")
    # supported="disabled" lists no API at all
    return supported is None or _supports_vulkan_api(supported)


def requirement_path(require_node: ET.Element, extension_node: ET.Element) -> str:
    """AND-join the guards one <require> block places on its commands.

    Collects the block's extension= and feature= attributes and the enclosing
    extension's name, each as "defined(X)", sorted.
    """
    reqs = set()
    for attr in ("extension", "feature"):
        value = require_node.get(attr)
        if value is not None:
            reqs.add(defined(value))
    name = extension_node.get("name")
    if name is not None:
        reqs.add(defined(name))
    return " && ".join(sorted(reqs))


def requirement_sort_key(requirements: frozenset[str]) -> tuple[str, ...]:
    return tuple(sorted(requirements))


def requirement_guard(requirements: frozenset[str]) -> str:
    """Preprocessor condition for one requirement set.

    Every member is one complete way to reach the command, so the members
    are OR-ed.
    """
    return " || ".join(sorted(requirements))


def build_extension_index(
    entries: Iterable[tuple[frozenset[str], str]],
) -> ExtensionIndex:
    """Order (requirement set, command) pairs the way the emitter groups them.

    Entries sort by requirement set; entries with equal sets keep their input
    order. A repeated (set, command) pair is kept once.
    """
    seen: set[tuple[frozenset[str], str]] = set()
    unique: list[ExtensionEntry] = []
    for requirements, command in entries:
        key = (frozenset(requirements), command)
        if key in seen:
            continue
        seen.add(key)
        unique.append(ExtensionEntry(*key))
    return tuple(sorted(unique, key=lambda e: requirement_sort_key(e.requirements)))


def read_extensions(root: ET.Element) -> ExtensionIndex:
    """Map every extension command to the requirement set that guards it.

    A command can be required by several <require> blocks (different
    extensions, or the same extension gated on a feature or another
    extension). Each distinct requirement path is kept; commands with the
    exact same set of paths end up in one guard group.
    """
    paths_by_command: dict[str, set[str]] = {}
    for extension_node in root.findall("extensions/extension"):
        if not _extension_supported(extension_node):
            continue
        for require_node in extension_node.findall("require"):
            if not _is_vulkan_node(require_node):
                continue
            path = requirement_path(require_node, extension_node)
            for command_node in require_node.findall("command"):
                name = command_node.get("name", "")
                paths_by_command.setdefault(name, set()).add(path)

    return build_extension_index(
        (frozenset(paths), name) for name, paths in paths_by_command.items()
    )


# ===--- Device views ---=== #


def get_device_features(
    features: list[Feature], commands: CommandMap
) -> list[Feature]:
    """Project features down to device-level commands, dropping anything left empty."""
    device_features = []
    for feature in features:
        sections = []
        for section in feature.sections:
            names = tuple(
                name
                for name in section.commands
                if find_command(name, commands).is_device_command
            )
            if names:
                sections.append(replace(section, commands=names))
        if sections:
            device_features.append(replace(feature, sections=tuple(sections)))
    return device_features


def get_device_extensions(
    extensions: ExtensionIndex, commands: CommandMap
) -> ExtensionIndex:
    return tuple(
        entry
        for entry in extensions
        if find_command(entry.command, commands).is_device_command
    )


# ===--- Command emitters ---=== #


def format_guard_start(guard: str) -> str:
    return f"#if defined({guard})\n"


def format_guard_end(guard: str) -> str:
    return f"#endif // defined({guard})\n"


def format_command_definition(command: Command) -> str:
    """Static function pointer plus the exported wrapper that calls through it.

    Output shape (void command with a comment):

        <blank line>
        // comment
        static PFN_name pfn_name;
        VKAPI_ATTR void name(params)
        {
            assert(pfn_name);
            pfn_name(param_names);
        }
    """
    call = "" if command.returns_void else "return "
    name = command.name
    return (
        f"\n{command.comment}static PFN_{name} pfn_{name};\n"
        f"VKAPI_ATTR {command.prototype}({command.params})\n"
        "{\n"
        f"\tassert(pfn_{name});\n"
        f"\t{call}pfn_{name}({command.param_names});\n"
        "}\n"
    )


def format_struct_command_field(command: Command) -> str:
    tab = "\t" if command.comment else ""
    return f"\t{command.comment}{tab}PFN_{command.name} {command.name};\n"


def format_pointer_init(name: str, scope: str, struct: bool = False) -> str:
    """One pointer assignment through vkGetInstanceProcAddr or vkGetDeviceProcAddr.

    Args:
        name: Command name.
        scope: "instance" or "device".
        struct: Assign `vk->name` through the struct's getter instead of the
            static `pfn_name`.

    Raises:
        ValueError: `scope` is not a known proc address scope.
    """
    if scope not in _PROC_ADDR_GETTERS:
        raise ValueError(f"Unknown proc address scope: {scope}")
    getter, handle = _PROC_ADDR_GETTERS[scope]
    if struct:
        return f'\tvk->{name} = (PFN_{name})vk->{getter}({handle}, "{name}");\n'
    return f'\tpfn_{name} = (PFN_{name}){getter}({handle}, "{name}");\n'


def definition_emitter(commands: CommandMap) -> CommandEmitter:
    """Emit the static pointer and wrapper for each command name."""
    return lambda name: format_command_definition(find_command(name, commands))


def struct_field_emitter(commands: CommandMap) -> CommandEmitter:
    return lambda name: format_struct_command_field(find_command(name, commands))


def pointer_init_emitter(
    scope: str, struct: bool = False, skip: Iterable[str] = ()
) -> CommandEmitter:
    """Emit pointer initialization lines for `scope`.

    Args:
        scope: "instance" or "device".
        struct: Initialize `vk->` members instead of static pointers.
        skip: Command names that produce no output.

    Returns:
        Emitter for the feature and extension walks.
    """
    skipped = frozenset(skip)

    def emit(name: str) -> str:
        if name in skipped:
            return ""
        return format_pointer_init(name, scope, struct)

    return emit


# ===--- Feature and extension walks ---=== #


def _format_section_header(section: Section, comments: str) -> str:
    if comments == "plain":
        return f"\n{section.comment}"
    if comments == "struct":
        tab = "\t" if section.comment else ""
        return f"\n{tab}{section.comment}\n"
    return "\n"


def format_feature_commands(
    feature: Feature, emit: CommandEmitter, comments: str = "plain"
) -> str:
    """Render one feature: its guard, then every section's commands through `emit`.

    Args:
        feature: Feature to render.
        emit: Per-command strategy; receives each command name in section order.
        comments: "plain" writes feature and section comments as-is, "none"
            drops both, "struct" indents section comments for a struct body.

    Returns:
        The guarded block, starting with a blank line.
    """
    if comments not in COMMENT_STYLES:
        raise ValueError(f"Unknown comment style: {comments}")

    parts = ["\n"]
    if comments != "none":
        parts.append(feature.comment)
    parts.append(format_guard_start(feature.name))

    for section in feature.sections:
        parts.append(_format_section_header(section, comments))
        parts.extend(emit(name) for name in section.commands)

    parts.append("\n")
    parts.append(format_guard_end(feature.name))
    return "".join(parts)


def format_extension_commands(
    extensions: ExtensionIndex, emit: CommandEmitter
) -> str:
    """Render the extension index, one #if/#endif pair per run of equal requirement sets."""
    parts: list[str] = []
    current: frozenset[str] | None = None

    for entry in extensions:
        if current is None or entry.requirements != current:
            if current is not None:
                parts.append(f"#endif // {requirement_guard(current)}\n")
            current = entry.requirements
            parts.append(f"#if {requirement_guard(current)}\n")
        parts.append(emit(entry.command))

    if current is not None:
        parts.append(f"#endif // {requirement_guard(current)}\n")
    return "".join(parts)


def format_feature_definitions(feature: Feature, commands: CommandMap) -> str:
    return format_feature_commands(feature, definition_emitter(commands))


def format_extension_definitions(
    extensions: ExtensionIndex, commands: CommandMap
) -> str:
    return format_extension_commands(extensions, definition_emitter(commands))


def format_struct_feature_fields(feature: Feature, commands: CommandMap) -> str:
    return format_feature_commands(feature, struct_field_emitter(commands), "struct")


def format_struct_extension_fields(
    extensions: ExtensionIndex, commands: CommandMap
) -> str:
    return format_extension_commands(extensions, struct_field_emitter(commands))


def format_feature_instance_init(feature: Feature, struct: bool = False) -> str:
    # the global commands are loaded by vgen_init_vulkan_loader instead
    emit = pointer_init_emitter("instance", struct, skip=GLOBAL_COMMANDS)
    return format_feature_commands(feature, emit, "none")


def format_feature_device_init(feature: Feature, struct: bool = False) -> str:
    return format_feature_commands(feature, pointer_init_emitter("device", struct), "none")


def format_extensions_instance_init(
    extensions: ExtensionIndex, struct: bool = False
) -> str:
    return format_extension_commands(extensions, pointer_init_emitter("instance", struct))


def format_extensions_device_init(
    extensions: ExtensionIndex, struct: bool = False
) -> str:
    return format_extension_commands(extensions, pointer_init_emitter("device", struct))


# ===--- Header and source assembly ---=== #

_HEADER_PREAMBLE = """#if !defined(VGEN_VULKAN_LOADER_HEADER)
#define VGEN_VULKAN_LOADER_HEADER

/*******************************************************************************
This file was generated by vulkan_loader_generator on {timestamp} UTC
For more information, see: https://github.com/oracleoftroy/vulkan_loader_generator

INSTRUCTIONS:

The loader comes in two variants.

When VK_NO_PROTOTYPES is not defined, it
provides implementations of the prototypes found in vulkan.h, and once loaded,
you can use the normal C vulkan api.

When VK_NO_PROTOTYPES is defined, the loader provides a struct containing function pointers for the vulkan API.

The loader provides three functions:
\tvgen_init_vulkan_loader
\tvgen_load_instance_procs
\tvgen_load_device_procs

vgen_init_vulkan_loader is required to initialize the loader and requires the caller to provide
vkGetInstnaceProcAddr, obtainable via GetProcAddr(), dlsym(), SDL_Vulkan_GetVkGetInstanceProcAddr(), etc.

On completion, the following functions will be available:
\tvkGetInstanceProcAddr
\tvkCreateInstance
\tvkEnumerateInstanceExtensionProperties
\tvkEnumerateInstanceLayerProperties

Once a vulkan instance is created, call vgen_load_instance_procs to load the rest of the vulkan api.

After creating a device, you may load device specific instances via vgen_load_device_procs. See the
Vulkan API docs for vkGetDeviceProcAddr for more information.

---

This file is distributed under the terms of the MIT License

Copyright {year} Marc Gallagher

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
*******************************************************************************/

#include <vulkan/vulkan.h>

#if defined(__cplusplus)
extern "C" {{
#endif
"""

_HEADER_STRUCT_START = """
#if !defined(VK_NO_PROTOTYPES)

void vgen_init_vulkan_loader(PFN_vkGetInstanceProcAddr get_address);
void vgen_load_instance_procs(VkInstance instance);
void vgen_load_device_procs(VkDevice device);

#else // !defined(VK_NO_PROTOTYPES)

struct vgen_vulkan_api
{"""

_HEADER_STRUCT_END = """};

void vgen_init_vulkan_loader(PFN_vkGetInstanceProcAddr get_address, struct vgen_vulkan_api *vk);
void vgen_load_instance_procs(VkInstance instance, struct vgen_vulkan_api *vk);
void vgen_load_device_procs(VkDevice device, struct vgen_vulkan_api *vk);

#endif // !defined(VK_NO_PROTOTYPES)

#if defined(__cplusplus)
} // extern "C"
#endif

#endif // !defined(VGEN_VULKAN_LOADER_HEADER)
"""

_SOURCE_PREAMBLE = """#include <vulkan_loader.h>

#if !defined(VKLG_ASSERT_MACRO)
\t#include <assert.h>
\t#define VKLG_ASSERT_MACRO assert;
#endif

#if VK_HEADER_VERSION > {version} && !defined(VK_NO_PROTOTYPES) && !defined(VGEN_VULKAN_LOADER_DISABLE_VERSION_CHECK)
// If you get an error here, the version of vulkan.h you are using is newer than this generator was expecting. Things should mostly work, but newer functions will not have definitions created and will cause linking errors.
// Please check for a newer version of vulkan_loader at https://github.com/oracleoftroy/vulkan_loader
// define VK_NO_PROTOTYPES for a purely dynamic interface or disable this check by defining VGEN_VULKAN_LOADER_DISABLE_VERSION_CHECK.
#error vulkan.h is newer than vulkan_loader. Define VK_NO_PROTOTYPES for the dynamic interface or disable this check via VGEN_VULKAN_LOADER_DISABLE_VERSION_CHECK.
#endif

#if defined(VK_NO_PROTOTYPES)

void vgen_init_vulkan_loader(PFN_vkGetInstanceProcAddr get_address, struct vgen_vulkan_api *vk)
{{
\tvk->vkGetInstanceProcAddr = get_address;
\tvk->vkCreateInstance = (PFN_vkCreateInstance)vk->vkGetInstanceProcAddr(0, "vkCreateInstance");
\tvk->vkEnumerateInstanceExtensionProperties = (PFN_vkEnumerateInstanceExtensionProperties)vk->vkGetInstanceProcAddr(0, "vkEnumerateInstanceExtensionProperties");
\tvk->vkEnumerateInstanceLayerProperties = (PFN_vkEnumerateInstanceLayerProperties)vk->vkGetInstanceProcAddr(0, "vkEnumerateInstanceLayerProperties");
}}

void vgen_load_instance_procs(VkInstance instance, struct vgen_vulkan_api *vk)
{{
"""

_SOURCE_STRUCT_DEVICE_START = """}

void vgen_load_device_procs(VkDevice device, struct vgen_vulkan_api *vk)
{
"""

_SOURCE_STRUCT_END = """}

#else // defined(VK_NO_PROTOTYPES)
"""

_SOURCE_STATIC_INIT = """
void vgen_init_vulkan_loader(PFN_vkGetInstanceProcAddr get_address)
{
\tpfn_vkGetInstanceProcAddr = get_address;
\tpfn_vkCreateInstance = (PFN_vkCreateInstance)vkGetInstanceProcAddr(0, "vkCreateInstance");
\tpfn_vkEnumerateInstanceExtensionProperties = (PFN_vkEnumerateInstanceExtensionProperties)vkGetInstanceProcAddr(0, "vkEnumerateInstanceExtensionProperties");
\tpfn_vkEnumerateInstanceLayerProperties = (PFN_vkEnumerateInstanceLayerProperties)vkGetInstanceProcAddr(0, "vkEnumerateInstanceLayerProperties");
}

void vgen_load_instance_procs(VkInstance instance)
{
"""

_SOURCE_STATIC_DEVICE_START = """}

void vgen_load_device_procs(VkDevice device)
{
"""

_SOURCE_END = """}

#endif // defined(VK_NO_PROTOTYPES)
"""


def format_header(
    features: list[Feature],
    extensions: ExtensionIndex,
    commands: CommandMap,
    now: datetime | None = None,
) -> str:
    """Assemble vulkan_loader.h.

    The header declares the three loader functions for the prototype variant
    and, behind VK_NO_PROTOTYPES, a struct with one function pointer per
    command plus struct-taking loader functions.

    Args:
        features: Core features in registry order.
        extensions: Extension index from read_extensions.
        commands: Command map from read_commands.
        now: Generation time for the preamble. Defaults to the current UTC time.

    Returns:
        Complete header text with trailing newline.

    Raises:
        RegistryError: A feature or extension names an unknown command.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    parts = [
        _HEADER_PREAMBLE.format(timestamp=now.strftime("%c"), year=now.strftime("%Y")),
        _HEADER_STRUCT_START,
    ]
    parts.extend(format_struct_feature_fields(feature, commands) for feature in features)
    parts.append(format_struct_extension_fields(extensions, commands))
    parts.append(_HEADER_STRUCT_END)
    return "".join(parts)


def format_source(
    header_version: str,
    features: list[Feature],
    extensions: ExtensionIndex,
    commands: CommandMap,
    device_features: list[Feature] | None = None,
    device_extensions: ExtensionIndex | None = None,
) -> str:
    """Assemble vulkan_loader.c.

    Emits the struct variant (VK_NO_PROTOTYPES) first, then the wrapper
    definitions and static-pointer loaders. Device loaders only cover
    device-level commands; the device views are derived from the full views
    when not supplied.

    Raises:
        RegistryError: A feature or extension names an unknown command.
    """
    if device_features is None:
        device_features = get_device_features(features, commands)
    if device_extensions is None:
        device_extensions = get_device_extensions(extensions, commands)

    parts = [_SOURCE_PREAMBLE.format(version=header_version)]

    parts.extend(format_feature_instance_init(f, struct=True) for f in features)
    parts.append(format_extensions_instance_init(extensions, struct=True))
    parts.append(_SOURCE_STRUCT_DEVICE_START)
    parts.extend(format_feature_device_init(f, struct=True) for f in device_features)
    parts.append(format_extensions_device_init(device_extensions, struct=True))
    parts.append(_SOURCE_STRUCT_END)

    parts.extend(format_feature_definitions(f, commands) for f in features)
    parts.append(format_extension_definitions(extensions, commands))

    parts.append(_SOURCE_STATIC_INIT)
    parts.extend(format_feature_instance_init(f) for f in features)
    parts.append(format_extensions_instance_init(extensions))
    parts.append(_SOURCE_STATIC_DEVICE_START)
    parts.extend(format_feature_device_init(f) for f in device_features)
    parts.append(format_extensions_device_init(device_extensions))
    parts.append(_SOURCE_END)
    return "".join(parts)


# ===--- Writer I/O ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing a single generated file.

    Attributes:
        filename: Filename written, e.g. "vulkan_loader.h".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


@dataclass(frozen=True)
class OutputWriteResult:
    output_dir: Path
    files: tuple[FileWriteResult, ...]

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)


def write_file(output_dir: Path, filename: str, content: str) -> FileWriteResult:
    """Write one generated file, creating output_dir if needed.

    Args:
        output_dir: Destination directory.
        filename: Name of the file inside output_dir.
        content: Full file text, written as UTF-8 without newline translation.

    Returns:
        FileWriteResult with the resolved path and line/byte counts.

    Raises:
        OSError: Propagated directly from the filesystem.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    file_path = output_dir / filename
    # newline="" keeps \n line endings on every platform
    with open(file_path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)
    resolved = file_path.resolve()
    return FileWriteResult(
        filename=filename,
        path=resolved,
        line_count=content.count("\n"),
        byte_count=len(resolved.read_bytes()),
    )


def write_outputs(output_dir: Path, header: str, source: str) -> OutputWriteResult:
    """Write vulkan_loader.h then vulkan_loader.c into output_dir.

    No rollback: if the source write fails the header stays on disk.

    Raises:
        OSError: Propagated directly from the filesystem.
    """
    files = (
        write_file(output_dir, HEADER_FILENAME, header),
        write_file(output_dir, SOURCE_FILENAME, source),
    )
    return OutputWriteResult(output_dir=Path(output_dir), files=files)


# ===--- Pipeline ---=== #


@dataclass(frozen=True)
class LoaderRegistry:
    """Everything the emitter needs from one vk.xml parse.

    Attributes:
        header_version: VK_HEADER_VERSION literal, e.g. "343".
        commands: All commands, aliases included, keyed by name.
        features: Core features in registry order.
        extensions: Extension index ordered by requirement set.
        alias_count: Number of commands materialized from alias declarations.
    """

    header_version: str
    commands: CommandMap
    features: list[Feature]
    extensions: ExtensionIndex
    alias_count: int = 0


def extract_registry(root: ET.Element) -> LoaderRegistry:
    """Read everything the loader needs from a parsed vk.xml.

    Args:
        root: The <registry> element.

    Returns:
        LoaderRegistry with header version, commands, features and the
        extension index.

    Raises:
        RegistryError: VK_HEADER_VERSION is missing or an alias is broken.
    """
    header_version = read_vulkan_header_version(root)
    primaries, aliases = collect_commands(root)
    commands = resolve_command_aliases(primaries, aliases)
    features = read_features(root)
    extensions = read_extensions(root)
    return LoaderRegistry(
        header_version=header_version,
        commands=commands,
        features=features,
        extensions=extensions,
        alias_count=len(commands) - len(primaries),
    )


def run_generate(
    config: GenerateConfig, now: datetime | None = None
) -> OutputWriteResult:
    """Parse vk.xml, generate both loader files and write them.

    Raises:
        OSError: XML file not readable or filesystem write failure.
        ET.ParseError: Malformed vk.xml.
        RegistryError: Inconsistent registry (dangling alias, unknown command).
    """
    print(f"Parsing: {config.vk_xml}")
    root = ET.parse(config.vk_xml).getroot()

    registry = extract_registry(root)
    print(
        f"  Registry: {len(registry.commands)} commands "
        f"({registry.alias_count} aliases), {len(registry.features)} features, "
        f"{len(registry.extensions)} extension commands"
    )

    device_features = get_device_features(registry.features, registry.commands)
    device_extensions = get_device_extensions(registry.extensions, registry.commands)

    print("Generating loader")
    header = format_header(registry.features, registry.extensions, registry.commands, now)
    source = format_source(
        registry.header_version,
        registry.features,
        registry.extensions,
        registry.commands,
        device_features,
        device_extensions,
    )

    result = write_outputs(config.output_dir, header, source)
    for file_result in result.files:
        print(f"  Written: {file_result.path}")

    if config.show_summary:
        print_generation_summary(
            build_generation_summary(
                config, registry, device_features, device_extensions, result
            )
        )
    return result


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Immutable data for the post-generation console report.

    Attributes:
        source_label: Registry file name and header version,
            e.g. "vk.xml (VK_HEADER_VERSION 343)".
        output_dir: Output directory as a string.
        command_count: All commands, aliases included.
        alias_count: Commands materialized from aliases.
        device_command_count: Commands classified device-level.
        feature_count: Core features with at least one command section.
        device_feature_count: Features still present in the device view.
        extension_command_count: Distinct commands in the extension index.
        extension_group_count: Distinct requirement sets (guard blocks).
        device_extension_command_count: Extension index entries in the device view.
        files: Write results in write order.
    """

    source_label: str
    output_dir: str
    command_count: int
    alias_count: int
    device_command_count: int
    feature_count: int
    device_feature_count: int
    extension_command_count: int
    extension_group_count: int
    device_extension_command_count: int
    files: tuple[FileWriteResult, ...]


def build_generation_summary(
    config: GenerateConfig,
    registry: LoaderRegistry,
    device_features: list[Feature],
    device_extensions: ExtensionIndex,
    write_result: OutputWriteResult,
) -> GenerationSummary:
    return GenerationSummary(
        source_label=f"{config.vk_xml.name} (VK_HEADER_VERSION {registry.header_version})",
        output_dir=str(write_result.output_dir),
        command_count=len(registry.commands),
        alias_count=registry.alias_count,
        device_command_count=sum(
            1 for c in registry.commands.values() if c.is_device_command
        ),
        feature_count=len(registry.features),
        device_feature_count=len(device_features),
        extension_command_count=len({e.command for e in registry.extensions}),
        extension_group_count=len({e.requirements for e in registry.extensions}),
        device_extension_command_count=len(device_extensions),
        files=write_result.files,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary for the console, with one trailing newline."""
    primary_count = summary.command_count - summary.alias_count

    lines: list[str] = []
    lines.append("Vulkan loader generated:")
    lines.append("")
    lines.append(f"  Source:     {summary.source_label}")
    lines.append(f"  Output:     {summary.output_dir}")
    lines.append("")
    lines.append("  Commands:")
    lines.append(
        f"    {'Total:':<12}{summary.command_count:>6}"
        f"  ({primary_count} primary + {summary.alias_count} aliases)"
    )
    lines.append(f"    {'Device:':<12}{summary.device_command_count:>6}")
    lines.append(
        f"    {'Features:':<12}{summary.feature_count:>6}"
        f"  ({summary.device_feature_count} with device commands)"
    )
    lines.append(
        f"    {'Extensions:':<12}{summary.extension_command_count:>6}"
        f"  ({summary.extension_group_count} guard groups,"
        f" {summary.device_extension_command_count} device entries)"
    )
    lines.append("")
    lines.append("  Files written:")
    for file_result in summary.files:
        line_str = f"{file_result.line_count:>7,} lines"
        lines.append(f"    {file_result.filename:<20} {line_str}")

    total_lines = sum(f.line_count for f in summary.files)
    lines.append("")
    lines.append(f"  Total: {total_lines:,} lines across {len(summary.files)} files")
    lines.append("")

    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Main generation ---=== #


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    try:
        run_generate(config)
    except (OSError, ET.ParseError) as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except RegistryError as err:
        print(f"Registry error: {err}")
        raise SystemExit(1) from err
    except (RuntimeError, ValueError) as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
