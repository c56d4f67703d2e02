from __future__ import annotations

from coupling_sim.core.engine import CouplingEngine
from coupling_sim.core.interfaces import ILinkableEngine
from coupling_sim.kernels import IModelKernel
from coupling_sim.metrics import IMetric


def test_ilinkableengine_declares_pull_protocol() -> None:
    abstract_methods = ILinkableEngine.__abstractmethods__
    for name in ("initialize", "perform_time_step", "get_values", "set_values", "finish", "output_slot"):
        assert name in abstract_methods
    assert "get_missing_value_definition" in abstract_methods


def test_couplingengine_implements_interface_contract() -> None:
    engine = CouplingEngine()
    assert isinstance(engine, ILinkableEngine)
    assert callable(engine.connect)
    assert callable(engine.request_cancel)


def test_kernel_and_metric_contracts() -> None:
    assert {"prepare", "update"} <= IModelKernel.__abstractmethods__
    assert {"consume", "report", "reset"} <= IMetric.__abstractmethods__
