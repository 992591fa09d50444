# src/stardust/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..web.origin_gate import OriginGate
from .ports import TaskRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access from the web layer.
    settings: object

    task_store: TaskRepo
    origin_gate: OriginGate

    # Shared secret for mutating calls; None means every write is refused.
    secret_password: str | None = None
