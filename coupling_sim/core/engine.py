"""SimPy-clocked coupling engine with pull-based value exchange."""

from __future__ import annotations

import time as wallclock
from typing import Any, Callable, Optional, Sequence

import simpy

from coupling_sim.errors import (
    CouplingError,
    InitializationError,
    InvalidStateTransition,
    TemporalDeadlock,
    UnknownExchangeItem,
    ValueCountMismatch,
)
from coupling_sim.events import CouplingEvent, EventBus, EventType
from coupling_sim.io import ConfigLoader, TraceFile
from coupling_sim.kernels import IModelKernel, KernelStep, create_kernel
from coupling_sim.metrics import ExchangeMetrics, IMetric
from coupling_sim.model import (
    ComponentDescription,
    EngineRuntimeState,
    ExchangeItem,
    ExchangeSlot,
    LifecyclePhase,
    SlotKey,
    SlotRole,
    TimeOrdering,
    TimeSpan,
    TimeStamp,
)
from coupling_sim.model.time import SECONDS_PER_DAY, coerce_timestamp

from .interfaces import ILinkableEngine
from .link import Link, build_link


class CouplingEngine(ILinkableEngine):
    """One linkable component: exchange surface, time cursor and pull protocol."""

    VERSION = "1"
    DEFAULT_MISSING_VALUE = 999.0
    DEFAULT_MAX_STEPS_PER_PULL = 10_000
    DEFAULT_REQUIRED_EXTRAS = ("processingTime",)
    # millisecond hints and the per-pull step limit, read from extras
    INTEGER_EXTRAS = ("processingTime", "startupDelay", "shutdownDelay", "maxStepsPerPull")

    def __init__(
        self,
        kernel: IModelKernel | None = None,
        metrics: list[IMetric] | None = None,
        *,
        loader: ConfigLoader | None = None,
        required_extras: Sequence[str] = DEFAULT_REQUIRED_EXTRAS,
        trace_dir: str | None = None,
        sleep: Callable[[float], None] = wallclock.sleep,
        event_id_mode: str = "deterministic",
    ) -> None:
        self._external_kernel = kernel
        self._metrics = metrics if metrics is not None else [ExchangeMetrics()]
        self._loader = loader or ConfigLoader()
        self._required_extras = tuple(required_extras)
        self._trace_dir = trace_dir
        self._sleep = sleep
        self._subscribers: list[Callable[[CouplingEvent], None]] = []

        self._event_bus = EventBus(event_id_mode=event_id_mode)
        self._events: list[CouplingEvent] = []
        self._event_bus.subscribe(self._events.append)
        for metric in self._metrics:
            self._event_bus.subscribe(metric.consume)

        self._env = simpy.Environment()
        self._state = EngineRuntimeState()
        self._description: ComponentDescription | None = None
        self._kernel: IModelKernel | None = None
        self._trace: TraceFile | None = None
        self._links: dict[SlotKey, Link] = {}
        self._init_error: InitializationError | None = None

        self._missing_value = self.DEFAULT_MISSING_VALUE
        self._max_steps_per_pull = self.DEFAULT_MAX_STEPS_PER_PULL
        self._processing_time_ms = 0
        self._shutdown_delay_ms = 0

    def subscribe(self, handler: Callable[[CouplingEvent], None]) -> None:
        if handler in self._subscribers:
            return
        self._subscribers.append(handler)
        self._event_bus.subscribe(handler)

    # lifecycle

    def initialize(
        self,
        properties: dict[str, str] | None = None,
        *,
        description: ComponentDescription | None = None,
    ) -> bool:
        if self._state.phase not in (LifecyclePhase.UNINITIALIZED, LifecyclePhase.FAILED):
            raise InvalidStateTransition(f"initialize() not allowed in phase {self._state.phase.value}")
        self._state = EngineRuntimeState()
        self._init_error = None
        props = properties if properties is not None else {}
        try:
            if description is None:
                config_file = props.get("ConfigFile")
                if not config_file:
                    raise InitializationError("missing required property 'ConfigFile'")
                description = self._loader.load(config_file, props.get("ElementSetFile"))
            for name, value in description.extras.items():
                props[name] = value
            hints = self._resolve_hints(description.extras)
            kernel = self._external_kernel or create_kernel(
                description.extras.get("kernel", "default"),
                dict(description.extras),
            )
            kernel.prepare(description)
            inputs, outputs = self._build_slots(description, hints["missingValue"])
        except (CouplingError, ValueError) as exc:
            self._fail_initialize(exc, description)
            return False

        self._description = description
        self._kernel = kernel
        self._missing_value = hints["missingValue"]
        self._max_steps_per_pull = hints["maxStepsPerPull"]
        self._processing_time_ms = hints["processingTime"]
        self._shutdown_delay_ms = hints["shutdownDelay"]
        self._state.inputs = inputs
        self._state.outputs = outputs
        self._state.phase = LifecyclePhase.INITIALIZED
        self._env = simpy.Environment(initial_time=description.time_horizon.start.modified_julian_day)
        self._links = {}
        self._close_trace()
        self._open_trace(description.model_id)

        if hints["startupDelay"] > 0:
            self._sleep(hints["startupDelay"] / 1000.0)
        horizon = description.time_horizon
        self._publish(
            EventType.INITIALIZED,
            payload={
                "version": self.VERSION,
                "start": horizon.start.modified_julian_day,
                "end": horizon.end.modified_julian_day,
                "time_step_seconds": horizon.time_step_seconds,
                "processing_time": self._processing_time_ms,
                "inputs": len(inputs),
                "outputs": len(outputs),
            },
        )
        return True

    def perform_time_step(self) -> bool:
        phase = self._state.phase
        if phase == LifecyclePhase.FAILED:
            return False
        if phase not in (LifecyclePhase.INITIALIZED, LifecyclePhase.STEPPING):
            raise InvalidStateTransition(f"perform_time_step() not allowed in phase {phase.value}")
        if self._state.in_step:
            raise TemporalDeadlock("perform_time_step() re-entered while a step is in progress")
        if self._state.cancel_requested:
            self._publish(EventType.CANCELLED)
            self.finish()
            return False

        assert self._description is not None and self._kernel is not None
        step_seconds = self._description.time_step_seconds
        time_from = self.get_current_time()
        time_to = time_from.add_seconds(step_seconds)

        self._state.phase = LifecyclePhase.STEPPING
        self._state.in_step = True
        self._publish(EventType.STEP_BEGIN, time=time_from)
        try:
            try:
                self._gather_inputs(time_to)
            except (TemporalDeadlock, InvalidStateTransition) as exc:
                self._publish_error("upstream_unresolved", exc, time=time_from)
                return False
            self._kernel.update(
                KernelStep(
                    time_from=time_from,
                    time_to=time_to,
                    inputs=self._state.inputs,
                    outputs=self._state.outputs,
                    missing_value=self._missing_value,
                )
            )
            if self._processing_time_ms > 0:
                self._sleep(self._processing_time_ms / 1000.0)
            timeout = self._env.timeout(step_seconds / SECONDS_PER_DAY)
            self._env.run(until=timeout)
            self._state.current_time = TimeStamp(float(self._env.now))
            self._state.last_consumed_time = self._state.current_time
            self._state.steps_performed += 1
        finally:
            self._state.in_step = False

        for slot in self._state.outputs.values():
            slot.updated_at = self._state.current_time
        self._publish(EventType.STEP_END)
        return True

    def finish(self) -> None:
        if self._state.phase == LifecyclePhase.FINISHED:
            return
        was_running = self._state.phase in (LifecyclePhase.INITIALIZED, LifecyclePhase.STEPPING)
        if was_running and self._shutdown_delay_ms > 0:
            self._sleep(self._shutdown_delay_ms / 1000.0)
        if self._kernel is not None:
            self._kernel.finish()
        for slot in self._state.inputs.values():
            slot.staged = None
        self._links = {}
        self._state.phase = LifecyclePhase.FINISHED
        self._publish(EventType.FINISHED)
        self._close_trace()

    def request_cancel(self) -> None:
        """Ask the engine to stop; honoured at the next step boundary."""
        self._state.cancel_requested = True

    # value exchange

    def get_values(
        self,
        quantity_id: str,
        element_set_id: str,
        time: TimeStamp | float | None = None,
    ) -> list[float]:
        self._require_active("get_values")
        slot = self.output_slot(quantity_id, element_set_id)
        if time is not None:
            self._advance_to(coerce_timestamp(time))
        values = list(slot.values)
        self._publish(
            EventType.GET_VALUES,
            quantity_id=slot.key[0],
            element_set_id=slot.key[1],
            value_count=len(values),
            payload={"missing_count": sum(1 for value in values if value == self._missing_value)},
        )
        return values

    def set_values(self, quantity_id: str, element_set_id: str, values: Sequence[float]) -> None:
        self._require_active("set_values")
        slot = self.input_slot(quantity_id, element_set_id)
        buffer = [float(value) for value in values]
        if len(buffer) != slot.element_count:
            raise ValueCountMismatch(
                f"set_values({quantity_id}/{element_set_id}): expected {slot.element_count} "
                f"values, got {len(buffer)}"
            )
        slot.staged = buffer
        self._publish(
            EventType.SET_VALUES,
            quantity_id=quantity_id,
            element_set_id=element_set_id,
            value_count=len(buffer),
        )

    def connect(
        self,
        quantity_id: str,
        element_set_id: str,
        provider: ILinkableEngine,
        provider_quantity_id: str | None = None,
        provider_element_set_id: str | None = None,
        *,
        strict_dimensions: bool = False,
        lag_seconds: float = 0.0,
    ) -> Link:
        """Feed one of this engine's inputs from an output of ``provider``."""
        self._require_active("connect")
        input_slot = self.input_slot(quantity_id, element_set_id)
        output_slot = provider.output_slot(
            provider_quantity_id or quantity_id,
            provider_element_set_id or element_set_id,
        )
        link = build_link(
            input_slot,
            provider,
            output_slot,
            strict_dimensions=strict_dimensions,
            lag_seconds=lag_seconds,
        )
        self._links[input_slot.key] = link
        return link

    def disconnect(self, quantity_id: str, element_set_id: str) -> None:
        self._links.pop((quantity_id, element_set_id), None)

    def input_slot(self, quantity_id: str, element_set_id: str) -> ExchangeSlot:
        return self._lookup(self._state.inputs, SlotRole.INPUT, quantity_id, element_set_id)

    def output_slot(self, quantity_id: str, element_set_id: str) -> ExchangeSlot:
        """Resolve an output by element set; the quantity id only breaks ties.

        Several outputs may share one element set. The exact quantity match wins,
        otherwise the first declared output on that set is served.
        """
        exact = self._state.outputs.get((quantity_id, element_set_id))
        if exact is not None:
            return exact
        for (_quantity, set_id), slot in self._state.outputs.items():
            if set_id == element_set_id:
                return slot
        raise UnknownExchangeItem(f"no output exchange item on element set {element_set_id}")

    # time queries

    def get_current_time(self) -> TimeStamp:
        description = self._require_description()
        if self._state.current_time is None:
            return description.time_horizon.start
        return self._state.current_time

    def get_earliest_needed_time(self) -> TimeStamp:
        description = self._require_description()
        if self._state.last_consumed_time is None:
            return description.time_horizon.start
        return self._state.last_consumed_time

    def get_input_time(self, quantity_id: str, element_set_id: str) -> TimeStamp:
        """Time of the step being computed, for which the input is needed."""
        self.input_slot(quantity_id, element_set_id)
        return self.get_current_time().add_seconds(self._require_description().time_step_seconds)

    def get_time_horizon(self) -> TimeSpan:
        return self._require_description().time_span

    def get_missing_value_definition(self) -> float:
        return self._missing_value

    # inspection

    @property
    def phase(self) -> LifecyclePhase:
        return self._state.phase

    @property
    def runtime_state(self) -> EngineRuntimeState:
        return self._state

    @property
    def initialization_error(self) -> InitializationError | None:
        return self._init_error

    @property
    def description(self) -> ComponentDescription | None:
        return self._description

    @property
    def model_id(self) -> str:
        return self._require_description().model_id

    @property
    def model_description(self) -> str:
        return self._require_description().model_description

    @property
    def inputs(self) -> list[ExchangeItem]:
        return list(self._description.inputs) if self._description else []

    @property
    def outputs(self) -> list[ExchangeItem]:
        return list(self._description.outputs) if self._description else []

    @property
    def links(self) -> dict[SlotKey, Link]:
        return dict(self._links)

    @property
    def events(self) -> list[CouplingEvent]:
        return list(self._events)

    @property
    def trace_path(self) -> Optional[str]:
        return str(self._trace.path) if self._trace is not None else None

    def metric_report(self) -> dict:
        merged: dict = {}
        for metric in self._metrics:
            merged.update(metric.report())
        return merged

    # internals

    def _resolve_hints(self, extras: dict[str, str]) -> dict[str, Any]:
        for name in self._required_extras:
            if name not in extras:
                raise InitializationError(f"missing required extra setting '{name}'")
        hints: dict[str, Any] = {
            "processingTime": 0,
            "startupDelay": 0,
            "shutdownDelay": 0,
            "maxStepsPerPull": self.DEFAULT_MAX_STEPS_PER_PULL,
        }
        for name in self.INTEGER_EXTRAS:
            if name not in extras:
                continue
            raw = extras[name]
            try:
                value = int(str(raw).strip())
            except ValueError as exc:
                raise InitializationError(f"extra setting '{name}' is not an integer: '{raw}'") from exc
            if value < 0 or (name == "maxStepsPerPull" and value == 0):
                raise InitializationError(f"extra setting '{name}' out of range: {value}")
            hints[name] = value

        raw_missing = extras.get("missingValue")
        hints["missingValue"] = self.DEFAULT_MISSING_VALUE
        if raw_missing is not None:
            try:
                hints["missingValue"] = float(raw_missing)
            except ValueError as exc:
                raise InitializationError(f"extra setting 'missingValue' is not a number: '{raw_missing}'") from exc
        return hints

    @staticmethod
    def _build_slots(
        description: ComponentDescription,
        missing_value: float,
    ) -> tuple[dict[SlotKey, ExchangeSlot], dict[SlotKey, ExchangeSlot]]:
        inputs = {
            item.key: ExchangeSlot.from_item(
                SlotRole.INPUT, item, description.element_set(item.element_set_id), missing_value
            )
            for item in description.inputs
        }
        outputs = {
            item.key: ExchangeSlot.from_item(
                SlotRole.OUTPUT, item, description.element_set(item.element_set_id), missing_value
            )
            for item in description.outputs
        }
        return inputs, outputs

    def _gather_inputs(self, time_to: TimeStamp) -> None:
        for key, slot in self._state.inputs.items():
            if slot.staged is not None:
                slot.values = slot.staged
                slot.staged = None
                slot.updated_at = time_to
                continue
            link = self._links.get(key)
            if link is None:
                continue
            slot.values = link.pull(time_to, self._missing_value)
            slot.updated_at = time_to
            self._publish(
                EventType.PULL,
                quantity_id=key[0],
                element_set_id=key[1],
                value_count=len(slot.values),
                payload={"requested_time": link.requested_time(time_to).modified_julian_day},
            )

    def _advance_to(self, target: TimeStamp) -> None:
        steps = 0
        while self.get_current_time().compare(target) == TimeOrdering.BEFORE:
            if self._state.in_step:
                raise TemporalDeadlock(
                    f"{self.model_id}: values for {target} requested while stepping at "
                    f"{self.get_current_time()} (cyclic pull)"
                )
            if steps >= self._max_steps_per_pull:
                raise TemporalDeadlock(
                    f"{self.model_id}: reaching {target} needs more than "
                    f"{self._max_steps_per_pull} steps"
                )
            if not self.perform_time_step():
                raise TemporalDeadlock(f"{self.model_id}: could not advance to {target}")
            steps += 1

    def _lookup(
        self,
        slots: dict[SlotKey, ExchangeSlot],
        role: SlotRole,
        quantity_id: str,
        element_set_id: str,
    ) -> ExchangeSlot:
        slot = slots.get((quantity_id, element_set_id))
        if slot is None:
            raise UnknownExchangeItem(f"no {role.value} exchange item {quantity_id}/{element_set_id}")
        return slot

    def _require_description(self) -> ComponentDescription:
        if self._description is None:
            raise InvalidStateTransition("engine is not initialized")
        return self._description

    def _require_active(self, operation: str) -> None:
        if self._state.phase not in (LifecyclePhase.INITIALIZED, LifecyclePhase.STEPPING):
            raise InvalidStateTransition(f"{operation}() not allowed in phase {self._state.phase.value}")

    def _fail_initialize(self, exc: Exception, description: ComponentDescription | None) -> None:
        if isinstance(exc, InitializationError):
            error = exc
        else:
            error = InitializationError(f"initialize failed: {exc}", cause=exc)
        self._init_error = error
        self._description = None
        self._state.phase = LifecyclePhase.FAILED
        if self._trace is None:
            self._open_trace(description.model_id if description is not None else "component")
        self._publish_error("initialize_failed", error)

    def _open_trace(self, model_id: str) -> None:
        if self._trace_dir is None or self._trace is not None:
            return
        self._trace = TraceFile(model_id, self._trace_dir)
        self._event_bus.subscribe(self._trace.consume)

    def _close_trace(self) -> None:
        if self._trace is None:
            return
        self._event_bus.unsubscribe(self._trace.consume)
        self._trace.close()
        self._trace = None

    def _publish_error(self, reason: str, exc: Exception, *, time: TimeStamp | None = None) -> None:
        self._publish(
            EventType.ERROR,
            time=time,
            payload={"reason": reason, "error": type(exc).__name__, "message": str(exc)},
        )

    def _publish(
        self,
        event_type: EventType,
        *,
        time: TimeStamp | None = None,
        quantity_id: str | None = None,
        element_set_id: str | None = None,
        value_count: int | None = None,
        payload: dict | None = None,
    ) -> CouplingEvent:
        if time is None:
            time = self.get_current_time() if self._description is not None else None
        correlation_id = self._description.model_id if self._description is not None else "engine"
        return self._event_bus.publish(
            event_type=event_type,
            time=time.modified_julian_day if time is not None else 0.0,
            correlation_id=correlation_id,
            quantity_id=quantity_id,
            element_set_id=element_set_id,
            value_count=value_count,
            payload=payload,
        )
