from .replay import ReplayAction, ReplayHarness
from .runtime import PlayerRuntime

__all__ = ["PlayerRuntime", "ReplayAction", "ReplayHarness"]
