"""Coupling engine exports."""

from .engine import CouplingEngine
from .interfaces import ILinkableEngine
from .link import Link, build_link

__all__ = ["CouplingEngine", "ILinkableEngine", "Link", "build_link"]
