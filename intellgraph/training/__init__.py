"""Chain orchestration, loss strategies and config-driven runs."""

from .chain import Chain, Link
from .losses import REGISTRY as LOSSES

__all__ = ["Chain", "LOSSES", "Link"]
