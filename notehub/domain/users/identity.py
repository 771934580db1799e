"""Identidad del llamador tal como la exponen los claims del access token."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    user_id: str
    display_name: str
