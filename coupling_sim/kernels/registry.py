"""Model kernel registry and factory."""

from __future__ import annotations

from collections.abc import Callable

from .base import IModelKernel
from .builtins import ConstantKernel, NullKernel, RelayKernel


KernelFactory = Callable[[dict], IModelKernel]


_REGISTRY: dict[str, KernelFactory] = {
    "null": lambda _params: NullKernel(),
    "default": lambda _params: NullKernel(),
    "constant": lambda params: ConstantKernel(params=params),
    "relay": lambda _params: RelayKernel(),
}


def register_kernel(name: str, factory: KernelFactory) -> None:
    _REGISTRY[name.lower()] = factory


def create_kernel(name: str = "default", params: dict | None = None) -> IModelKernel:
    key = name.lower()
    if key not in _REGISTRY:
        raise ValueError(f"unknown model kernel {name}")
    return _REGISTRY[key](params or {})
