"""
Text, JSON and YAML output for exploration results and linear sweeps.
"""

import json
from typing import Any, Callable, Dict, Iterable, List

import yaml

from .analysis.explorer import ExplorationResult
from .core.instruction import Instruction

OUTPUT_FORMATS = ("text", "json", "yaml")


def format_instructions(instructions: Iterable[Instruction], indent: str = "") -> str:
    return "\n".join(f"{indent}{insn}" for insn in instructions)


def format_result(result: ExplorationResult) -> str:
    """Render the recovered blocks as a readable listing."""
    lines = [f"Discovered {len(result.blocks)} blocks from seed 0x{result.seed:x}"]
    for block in result.blocks:
        successors = ", ".join(f"0x{s:x}" for s in block.successors) or "-"
        lines.append("")
        lines.append(
            f"block begins: 0x{block.rva_begin:x} block ends: 0x{block.rva_end:x} "
            f"successors: {successors}"
        )
        lines.append(format_instructions(block.instructions, indent="    "))

    if result.failures:
        lines.append("")
        lines.append("Failed addresses:")
        for failure in result.failures:
            lines.append(f"    0x{failure.address:x} [{failure.kind}] {failure.message}")

    if result.fenced:
        lines.append("")
        lines.append("Outside fence: " + ", ".join(f"0x{a:x}" for a in result.fenced))

    if result.pending:
        lines.append("")
        lines.append("Not explored (block limit): " + ", ".join(f"0x{a:x}" for a in result.pending))

    return "\n".join(lines)


def _dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2)


_SERIALIZERS: Dict[str, Callable[[Any], str]] = {"json": _dump_json, "yaml": _dump_yaml}


def render_result(result: ExplorationResult, output_format: str = "text") -> str:
    if output_format == "text":
        return format_result(result)
    return _serializer(output_format)(result.to_dict())


def render_dump(instructions: List[Instruction], output_format: str = "text") -> str:
    if output_format == "text":
        return format_instructions(instructions)
    return _serializer(output_format)([insn.to_dict() for insn in instructions])


def _serializer(output_format: str) -> Callable[[Any], str]:
    try:
        return _SERIALIZERS[output_format]
    except KeyError:
        raise ValueError(f"Unsupported output format: {output_format}") from None


def write_output(text: str, filename: str) -> None:
    with open(filename, "w") as f:
        f.write(text)
        f.write("\n")
