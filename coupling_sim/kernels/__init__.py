"""Model kernel exports."""

from .base import IModelKernel, KernelStep
from .builtins import ConstantKernel, NullKernel, RelayKernel
from .registry import create_kernel, register_kernel

__all__ = [
    "ConstantKernel",
    "IModelKernel",
    "KernelStep",
    "NullKernel",
    "RelayKernel",
    "create_kernel",
    "register_kernel",
]
