"""Built-in model kernels."""

from __future__ import annotations

from coupling_sim.model import ComponentDescription, convert

from .base import IModelKernel, KernelStep


class NullKernel(IModelKernel):
    """Produces no data; every output keeps the missing-value sentinel."""

    def prepare(self, description: ComponentDescription) -> None:  # noqa: ARG002
        return

    def update(self, step: KernelStep) -> None:  # noqa: ARG002
        return


class ConstantKernel(IModelKernel):
    """Writes one constant value to every output element each step."""

    def __init__(self, params: dict | None = None) -> None:
        params = params or {}
        raw = params.get("constantValue", params.get("value", 0.0))
        try:
            self.value = float(raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"constant kernel value must be numeric, got {raw!r}") from exc

    def prepare(self, description: ComponentDescription) -> None:  # noqa: ARG002
        return

    def update(self, step: KernelStep) -> None:
        for slot in step.outputs.values():
            slot.values = [self.value] * slot.element_count


class RelayKernel(IModelKernel):
    """Copies each consumed input onto the output with the same quantity id.

    Values are converted between the two declared units through SI; the
    missing-value sentinel is passed through untouched.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], tuple[str, str]] = {}

    def prepare(self, description: ComponentDescription) -> None:
        self._routes = {}
        for output in description.outputs:
            output_count = description.element_set(output.element_set_id).element_count
            for item in description.inputs:
                if item.quantity.id != output.quantity.id:
                    continue
                if description.element_set(item.element_set_id).element_count != output_count:
                    continue
                self._routes[output.key] = item.key
                break

    def update(self, step: KernelStep) -> None:
        for output_key, input_key in self._routes.items():
            source = step.inputs.get(input_key)
            target = step.outputs.get(output_key)
            if source is None or target is None or source.updated_at is None:
                continue
            target.values = [
                step.missing_value
                if value == step.missing_value
                else convert(value, source.quantity.unit, target.quantity.unit)
                for value in source.values
            ]
