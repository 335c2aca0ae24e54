"""Engine configuration loaded from the environment."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class PacketFlowSettings(BaseSettings):
    """Tunable engine behaviour.

    Every value can be overridden with a ``PACKETFLOW_`` prefixed environment
    variable, e.g. ``PACKETFLOW_AUTOFILL_ON_ENTER=false``.
    """

    model_config = {"env_prefix": "PACKETFLOW_"}

    autofill_on_enter: bool = True
    completion_weighting: Literal["estimated_time", "uniform"] = "estimated_time"
    min_abuse_description_length: int = Field(default=50, ge=0)
    expense_income_warning_ratio: float = Field(default=1.2, gt=0)


def get_settings() -> PacketFlowSettings:
    """Build settings from the current environment."""
    return PacketFlowSettings()


__all__ = [
    "PacketFlowSettings",
    "get_settings",
]
