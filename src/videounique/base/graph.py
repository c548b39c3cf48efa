from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from videounique.base.exceptions import GraphError, InvalidParameterError
from videounique.base.params import FilterOperation, FilterParams

__all__ = ["FilterNode", "FilterGraph", "FINAL_VIDEO_LABEL", "FINAL_AUDIO_LABEL", "is_input_reference"]

FINAL_VIDEO_LABEL = "v"
FINAL_AUDIO_LABEL = "a"

_INPUT_REFERENCE = re.compile(r"^\d+:[va]$")
_LABEL = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_input_reference(label: str) -> bool:
    """True for raw input stream references like `0:v` or `2:a`."""
    return bool(_INPUT_REFERENCE.match(label))


@dataclass(frozen=True)
class FilterNode:
    """One filter of the graph: `[inputs]filter=args[output]`."""

    operation: FilterOperation
    params: FilterParams
    input_labels: tuple[str, ...]
    output_label: str

    def __post_init__(self):
        if not isinstance(self.params, self.operation.params_type):
            raise InvalidParameterError(
                f"{self.operation.value} takes {self.operation.params_type.__name__}, "
                f"got {type(self.params).__name__}"
            )
        if len(self.input_labels) != self.operation.input_count:
            raise InvalidParameterError(
                f"{self.operation.value} takes {self.operation.input_count} input(s), got {len(self.input_labels)}"
            )
        if not _LABEL.match(self.output_label):
            raise InvalidParameterError(f"Invalid output label: {self.output_label!r}")

    def __str__(self) -> str:
        return self.to_clause()

    def to_clause(self) -> str:
        inputs = "".join(f"[{label}]" for label in self.input_labels)
        args = self.params.to_args()
        body = f"{self.operation.filter_name}={args}" if args else self.operation.filter_name
        return f"{inputs}{body}[{self.output_label}]"


@dataclass(frozen=True)
class FilterGraph:
    """Ordered filter nodes plus the terminal video and audio labels."""

    nodes: tuple[FilterNode, ...]
    final_video_label: str = FINAL_VIDEO_LABEL
    final_audio_label: str = FINAL_AUDIO_LABEL

    def __iter__(self) -> Iterator[FilterNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __str__(self) -> str:
        return self.to_filter_complex()

    @property
    def has_overlay(self) -> bool:
        return any(node.operation is FilterOperation.COMPOSITE_OVERLAY for node in self.nodes)

    def operations(self) -> list[FilterOperation]:
        return [node.operation for node in self.nodes]

    def find(self, operation: FilterOperation) -> list[FilterNode]:
        return [node for node in self.nodes if node.operation is operation]

    def producer_index(self, label: str) -> int:
        """Position of the node that produces `label`."""
        for index, node in enumerate(self.nodes):
            if node.output_label == label:
                return index
        raise KeyError(label)

    def validate(self) -> FilterGraph:
        """Checks the nodes form a DAG emitted in dependency order.

        Every input must be a raw input reference or the output of an earlier
        node, no label is produced twice and both terminal labels exist.

        Raises:
            GraphError: If any of these doesn't hold.
        """
        produced: set[str] = set()
        for position, node in enumerate(self.nodes):
            for label in node.input_labels:
                if not is_input_reference(label) and label not in produced:
                    raise GraphError(f"Node {position} ({node.operation.value}) reads [{label}] before it is produced")
            if node.output_label in produced:
                raise GraphError(f"Label [{node.output_label}] is produced more than once")
            produced.add(node.output_label)

        for label in (self.final_video_label, self.final_audio_label):
            if label not in produced:
                raise GraphError(f"Terminal label [{label}] is never produced")
        return self

    def to_filter_complex(self) -> str:
        """Serializes the graph into an ffmpeg `-filter_complex` argument."""
        return ";".join(node.to_clause() for node in self.nodes)

    def output_maps(self) -> list[str]:
        return ["-map", f"[{self.final_video_label}]", "-map", f"[{self.final_audio_label}]"]
