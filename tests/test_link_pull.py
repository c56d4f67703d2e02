from __future__ import annotations

import pytest

from coupling_sim.core import CouplingEngine, build_link
from coupling_sim.errors import IncompatibleLink, InvalidStateTransition, TemporalDeadlock
from coupling_sim.events import EventType
from coupling_sim.io import ConfigLoader
from coupling_sim.model import TimeStamp


def _quiet() -> CouplingEngine:
    return CouplingEngine(sleep=lambda _seconds: None)


def _component(
    model_id: str,
    *,
    outputs: list[dict] | None = None,
    inputs: list[dict] | None = None,
    step: float = 86400,
    element_count: int = 2,
    **extras: object,
) -> CouplingEngine:
    payload = {
        "model_id": model_id,
        "time_horizon": {"start": 58000.0, "end": 58010.0, "time_step_seconds": step},
        "element_sets": [
            {
                "id": "Grid",
                "elements": [
                    {"id": f"e{index}", "vertices": [{"x": float(index), "y": 0.0}]}
                    for index in range(element_count)
                ],
            }
        ],
        "outputs": outputs or [],
        "inputs": inputs or [],
        "extras": {"processingTime": 0, **extras},
    }
    engine = _quiet()
    assert engine.initialize(description=ConfigLoader().load_data(payload))
    return engine


def _item(quantity_id: str, **quantity: object) -> dict:
    return {"element_set_id": "Grid", "quantity": {"id": quantity_id, **quantity}}


CELSIUS = {"id": "degC", "conversion_factor_to_si": 1.0, "offset_to_si": 273.15}
KELVIN = {"id": "K"}
TEMPERATURE = {"powers": {"Temperature": 1}}


def test_pull_advances_provider_to_consumer_time() -> None:
    provider = _component("Upstream", outputs=[_item("Flow")], kernel="constant", constantValue="5")
    consumer = _component("Downstream", inputs=[_item("Flow")])
    consumer.connect("Flow", "Grid", provider)

    assert consumer.perform_time_step()
    assert provider.get_current_time() == TimeStamp(58001.0)
    assert consumer.runtime_state.inputs[("Flow", "Grid")].values == [5.0, 5.0]
    pulls = [event for event in consumer.events if event.type == EventType.PULL]
    assert len(pulls) == 1
    assert pulls[0].payload["requested_time"] == 58001.0


def test_faster_provider_takes_several_steps_per_pull() -> None:
    provider = _component("Hourly", outputs=[_item("Flow")], step=3600, kernel="constant", constantValue="1")
    consumer = _component("Daily", inputs=[_item("Flow")])
    consumer.connect("Flow", "Grid", provider)

    consumer.perform_time_step()
    assert provider.runtime_state.steps_performed == 24
    assert provider.get_current_time().compare(TimeStamp(58001.0)).value == "equal"


def test_pull_converts_units_through_si() -> None:
    provider = _component(
        "Air",
        outputs=[_item("Temp", unit=CELSIUS, dimension=TEMPERATURE)],
        kernel="constant",
        constantValue="20",
    )
    consumer = _component("Soil", inputs=[_item("Temp", unit=KELVIN, dimension=TEMPERATURE)])
    consumer.connect("Temp", "Grid", provider, strict_dimensions=True)

    consumer.perform_time_step()
    values = consumer.runtime_state.inputs[("Temp", "Grid")].values
    assert values == pytest.approx([293.15, 293.15])


def test_provider_missing_value_maps_to_consumer_sentinel() -> None:
    provider = _component("Silent", outputs=[_item("Flow")], missingValue="-1")
    consumer = _component("Listener", inputs=[_item("Flow")])
    consumer.connect("Flow", "Grid", provider)

    consumer.perform_time_step()
    assert consumer.runtime_state.inputs[("Flow", "Grid")].values == [999.0, 999.0]


def test_staged_values_take_precedence_over_link() -> None:
    provider = _component("Upstream", outputs=[_item("Flow")], kernel="constant", constantValue="5")
    consumer = _component("Downstream", inputs=[_item("Flow")])
    consumer.connect("Flow", "Grid", provider)
    consumer.set_values("Flow", "Grid", [7.0, 8.0])

    consumer.perform_time_step()
    assert consumer.runtime_state.inputs[("Flow", "Grid")].values == [7.0, 8.0]
    assert provider.runtime_state.steps_performed == 0


def test_lagged_link_requests_earlier_time() -> None:
    provider = _component("Upstream", outputs=[_item("Flow")], kernel="constant", constantValue="5")
    consumer = _component("Downstream", inputs=[_item("Flow")])
    link = consumer.connect("Flow", "Grid", provider, lag_seconds=86400)

    assert link.requested_time(TimeStamp(58001.0)) == TimeStamp(58000.0)
    consumer.perform_time_step()
    assert provider.runtime_state.steps_performed == 0


def test_cyclic_pull_is_reported_as_deadlock() -> None:
    first = _component("A", outputs=[_item("X")], inputs=[_item("Y")])
    second = _component("B", outputs=[_item("Y")], inputs=[_item("X")])
    first.connect("Y", "Grid", second)
    second.connect("X", "Grid", first)

    assert first.perform_time_step() is False
    assert first.get_current_time() == TimeStamp(58000.0)
    errors = [event for event in first.events if event.type == EventType.ERROR]
    assert errors and errors[-1].payload["error"] == "TemporalDeadlock"


def test_reentrant_get_values_raises_deadlock() -> None:
    first = _component("A", outputs=[_item("X")])
    first.runtime_state.in_step = True
    with pytest.raises(TemporalDeadlock):
        first.get_values("X", "Grid", time=TimeStamp(58001.0))


def test_step_limit_exceeded_raises_deadlock() -> None:
    provider = _component("Slow", outputs=[_item("Flow")], maxStepsPerPull="3")
    with pytest.raises(TemporalDeadlock, match="more than 3 steps"):
        provider.get_values("Flow", "Grid", time=TimeStamp(58005.0))
    assert provider.runtime_state.steps_performed == 3


def test_finished_provider_cannot_satisfy_pull() -> None:
    provider = _component("Upstream", outputs=[_item("Flow")])
    consumer = _component("Downstream", inputs=[_item("Flow")])
    consumer.connect("Flow", "Grid", provider)
    provider.finish()

    assert consumer.perform_time_step() is False
    with pytest.raises(InvalidStateTransition):
        provider.get_values("Flow", "Grid")


def test_element_count_mismatch_rejects_link() -> None:
    provider = _component("Wide", outputs=[_item("Flow")], element_count=3)
    consumer = _component("Narrow", inputs=[_item("Flow")])
    with pytest.raises(IncompatibleLink):
        consumer.connect("Flow", "Grid", provider)


def test_strict_dimension_check_is_opt_in() -> None:
    provider = _component("Air", outputs=[_item("Temp", dimension=TEMPERATURE)])
    consumer = _component("Soil", inputs=[_item("Temp")])
    with pytest.raises(IncompatibleLink, match="dimension mismatch"):
        consumer.connect("Temp", "Grid", provider, strict_dimensions=True)
    assert consumer.connect("Temp", "Grid", provider) is not None


def test_negative_lag_rejected() -> None:
    provider = _component("Upstream", outputs=[_item("Flow")])
    consumer = _component("Downstream", inputs=[_item("Flow")])
    with pytest.raises(IncompatibleLink):
        build_link(
            consumer.input_slot("Flow", "Grid"),
            provider,
            provider.output_slot("Flow", "Grid"),
            lag_seconds=-1.0,
        )


def test_disconnect_stops_pulling() -> None:
    provider = _component("Upstream", outputs=[_item("Flow")], kernel="constant", constantValue="5")
    consumer = _component("Downstream", inputs=[_item("Flow")])
    consumer.connect("Flow", "Grid", provider)
    consumer.disconnect("Flow", "Grid")

    consumer.perform_time_step()
    assert consumer.links == {}
    assert provider.runtime_state.steps_performed == 0


def test_relay_chain_moves_values_downstream() -> None:
    source = _component(
        "Source",
        outputs=[_item("Temp", unit=CELSIUS)],
        kernel="constant",
        constantValue="10",
    )
    relay = _component(
        "Relay",
        inputs=[_item("Temp", unit=CELSIUS)],
        outputs=[_item("Temp", unit=KELVIN)],
        kernel="relay",
    )
    sink = _component("Sink", inputs=[_item("Temp", unit=CELSIUS)])
    relay.connect("Temp", "Grid", source)
    sink.connect("Temp", "Grid", relay)

    assert sink.perform_time_step()
    assert relay.get_values("Temp", "Grid") == pytest.approx([283.15, 283.15])
    assert sink.runtime_state.inputs[("Temp", "Grid")].values == pytest.approx([10.0, 10.0])
