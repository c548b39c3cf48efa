from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Mapping

from videounique.base.config import OverlayConfig
from videounique.base.exceptions import InvalidConfigurationError


class InputRole(str, Enum):
    """Logical inputs of the filter graph, in slot assignment order."""

    MAIN = "main"
    GIF_OVERLAY = "gifOverlay"
    HAIR_OVERLAY = "hairOverlay"


@dataclass(frozen=True)
class InputPlan:
    """Assignment of input roles to ffmpeg input slots.

    `MAIN` is always slot 0 and auxiliary roles follow on consecutive slots in
    the order `InputRole` declares them. Roles that aren't attached are absent.
    """

    slots: tuple[tuple[InputRole, int], ...]

    def __post_init__(self):
        roles = [role for role, _ in self.slots]
        indices = [index for _, index in self.slots]
        if not roles or roles[0] is not InputRole.MAIN:
            raise InvalidConfigurationError("Input plan must start with the main input")
        if indices != list(range(len(indices))):
            raise InvalidConfigurationError(f"Input slots must be consecutive from 0, got {indices}")
        if len(set(roles)) != len(roles):
            raise InvalidConfigurationError("Input plan can't hold the same role twice")

    def __contains__(self, role: object) -> bool:
        return any(role is slot_role for slot_role, _ in self.slots)

    def __iter__(self) -> Iterator[InputRole]:
        return iter(self.roles)

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def roles(self) -> tuple[InputRole, ...]:
        return tuple(role for role, _ in self.slots)

    def as_dict(self) -> Mapping[InputRole, int]:
        return dict(self.slots)

    def index_of(self, role: InputRole) -> int:
        for slot_role, index in self.slots:
            if slot_role is role:
                return index
        raise KeyError(role)

    def video_ref(self, role: InputRole) -> str:
        return f"{self.index_of(role)}:v"

    def audio_ref(self, role: InputRole) -> str:
        return f"{self.index_of(role)}:a"


def build_input_plan(config: OverlayConfig) -> InputPlan:
    """Decides which inputs get attached and at which position.

    Args:
        config: Overlay configuration of the request.

    Returns:
        Plan with the main input at 0, then the GIF and hair overlays when enabled.
    """
    enabled = {
        InputRole.MAIN: True,
        InputRole.GIF_OVERLAY: config.enable_subscribe_overlay,
        InputRole.HAIR_OVERLAY: config.enable_hair_overlay,
    }
    roles = [role for role in InputRole if enabled[role]]
    return InputPlan(slots=tuple((role, index) for index, role in enumerate(roles)))
