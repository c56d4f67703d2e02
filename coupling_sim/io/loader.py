"""Configuration loading, XML tree walking and validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
import json
from pathlib import Path
from typing import Any, Optional, TypeVar

import jsonschema
import yaml
from pydantic import ValidationError

from coupling_sim.errors import InvalidTimeFormat, MalformedConfiguration
from coupling_sim.model import ComponentDescription, DimensionBase, ElementKind, TimeStamp, ValueKind

from .document import (
    DocumentNode,
    attribute,
    find_child,
    find_child_value,
    force_node_name,
    read_xml,
)
from .schema import CONFIG_SCHEMA, ELEMENT_SETS_SCHEMA


E = TypeVar("E", bound=Enum)


@dataclass(slots=True)
class ValidationIssue:
    path: str
    message: str


class ConfigLoader:
    """Build a ComponentDescription from XML, YAML or JSON documents."""

    CONFIG_ROOT_TAG = "Configuration"
    ELEMENT_SETS_ROOT_TAG = "ElementSets"
    # ModelInfo extension fields copied into extras
    MODEL_INFO_EXTRAS = {
        "PrefetchEnabled": "prefetchEnabled",
        "CacheEnabled": "cacheEnabled",
        "CacheName": "cacheName",
        "ProcessingTime": "processingTime",
        "EnableParallel": "enableParallel",
        "UsePersistence": "usePersistence",
        "StartupDelay": "startupDelay",
        "ShutdownDelay": "shutdownDelay",
    }

    def load(self, config_path: str, element_set_path: str | None = None) -> ComponentDescription:
        element_sets = self.read_element_sets(element_set_path) if element_set_path else []
        if _is_xml(config_path):
            root = read_xml(config_path)
            payload = self.config_payload_from_node(root, element_sets)
            return self._validate(payload)
        payload = self._read_mapping(config_path)
        return self.load_data(payload, element_sets)

    def load_data(
        self,
        payload: dict[str, Any],
        element_sets: list[dict[str, Any]] | None = None,
    ) -> ComponentDescription:
        merged = _normalize_times(payload)
        merged["element_sets"] = _merge_element_sets(
            _element_set_list(element_sets, "element set file"),
            _element_set_list(payload.get("element_sets"), "element_sets"),
        )
        return self._validate(merged)

    def read_element_sets(self, path: str) -> list[dict[str, Any]]:
        if _is_xml(path):
            return self.element_sets_from_node(read_xml(path))
        data = self._read_mapping(path)
        _validate_schema(ELEMENT_SETS_SCHEMA, data)
        return list(data["element_sets"])

    def save(self, description: ComponentDescription, path: str) -> None:
        output_path = Path(path)
        payload = description.model_dump(mode="json")
        if output_path.suffix.lower() in {".yaml", ".yml"}:
            output_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        else:
            output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    def validate(
        self,
        description_or_path: ComponentDescription | str,
        element_set_path: str | None = None,
    ) -> list[ValidationIssue]:
        if isinstance(description_or_path, ComponentDescription):
            return []
        issues: list[ValidationIssue] = []
        try:
            self.load(description_or_path, element_set_path)
        except MalformedConfiguration as exc:
            issues.append(ValidationIssue(path=description_or_path, message=str(exc)))
        return issues

    # XML tree walking. The order matters: exchange items resolve against the
    # element set table filled first.

    def config_payload_from_node(
        self,
        root: DocumentNode,
        element_sets: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        force_node_name(root, self.CONFIG_ROOT_TAG)

        table: dict[str, dict[str, Any]] = {item["id"]: item for item in element_sets or []}
        sets_node = find_child(root, "ElementSets", must_exist=False)
        if sets_node is not None:
            for element_set in self._read_element_set_nodes(sets_node):
                table[element_set["id"]] = element_set

        extras = self._read_extras(find_child(root, "Extras", must_exist=False))

        items_node = find_child(root, "ExchangeItems")
        outputs = self._read_exchange_items(items_node, "OutputExchangeItem", table)
        inputs = self._read_exchange_items(items_node, "InputExchangeItem", table)

        horizon_node = find_child(root, "TimeHorizon")
        time_horizon = {
            "start": _parse_time(find_child_value(horizon_node, "StartDateTime"), "StartDateTime"),
            "end": _parse_time(find_child_value(horizon_node, "EndDateTime"), "EndDateTime"),
            "time_step_seconds": _parse_float(
                find_child_value(horizon_node, "TimeStepInSeconds"), "TimeStepInSeconds"
            ),
        }

        info_node = find_child(root, "ModelInfo")
        model_id = find_child_value(info_node, "ID")
        model_description = find_child_value(info_node, "Description")
        for tag, extra_name in self.MODEL_INFO_EXTRAS.items():
            node = find_child(info_node, tag, must_exist=False)
            if node is not None:
                extras[extra_name] = node.text

        return {
            "model_id": model_id,
            "model_description": model_description,
            "time_horizon": time_horizon,
            "element_sets": list(table.values()),
            "outputs": outputs,
            "inputs": inputs,
            "extras": extras,
        }

    def element_sets_from_node(self, root: DocumentNode) -> list[dict[str, Any]]:
        force_node_name(root, self.ELEMENT_SETS_ROOT_TAG)
        return self._read_element_set_nodes(root)

    def _read_element_set_nodes(self, node: DocumentNode) -> list[dict[str, Any]]:
        element_sets = []
        for set_node in node.children_named("ElementSet"):
            element_sets.append(
                {
                    "id": find_child_value(set_node, "ID"),
                    "description": find_child_value(set_node, "Description", must_exist=False),
                    "kind": _parse_enum(ElementKind, find_child_value(set_node, "Kind"), "element kind").value,
                    "elements": self._read_elements(find_child(set_node, "Elements")),
                }
            )
        return element_sets

    @staticmethod
    def _read_elements(node: DocumentNode) -> list[dict[str, Any]]:
        elements = []
        for element_node in node.children_named("Element"):
            element_id = find_child_value(element_node, "ID")
            vertex = {
                "x": _parse_float(find_child_value(element_node, "X"), f"element '{element_id}' X"),
                "y": _parse_float(find_child_value(element_node, "Y"), f"element '{element_id}' Y"),
            }
            elements.append({"id": element_id, "vertices": [vertex]})
        return elements

    @staticmethod
    def _read_extras(node: Optional[DocumentNode]) -> dict[str, str]:
        extras: dict[str, str] = {}
        if node is None:
            return extras
        for extra_node in node.children_named("Extra"):
            extras[attribute(extra_node, "name")] = attribute(extra_node, "value")
        return extras

    def _read_exchange_items(
        self,
        node: DocumentNode,
        tag: str,
        element_sets: dict[str, dict[str, Any]],
    ) -> list[dict[str, Any]]:
        items = []
        for item_node in node.children_named(tag):
            element_set_id = find_child_value(item_node, "ElementSetID")
            if element_set_id not in element_sets:
                raise MalformedConfiguration(
                    f"{tag} references unknown element set '{element_set_id}'"
                )
            items.append(
                {
                    "element_set_id": element_set_id,
                    "quantity": self._read_quantity(find_child(item_node, "Quantity")),
                }
            )
        return items

    def _read_quantity(self, node: DocumentNode) -> dict[str, Any]:
        quantity: dict[str, Any] = {
            "id": find_child_value(node, "ID"),
            "description": find_child_value(node, "Description", must_exist=False),
        }
        value_type = find_child(node, "ValueType", must_exist=False)
        if value_type is not None:
            quantity["value_kind"] = _parse_enum(ValueKind, value_type.text, "value type").value
        dimensions = find_child(node, "Dimensions", must_exist=False)
        if dimensions is not None:
            quantity["dimension"] = self._read_dimension(dimensions)
        unit = find_child(node, "Unit", must_exist=False)
        if unit is not None:
            quantity["unit"] = self._read_unit(unit)
        return quantity

    @staticmethod
    def _read_dimension(node: DocumentNode) -> dict[str, Any]:
        powers: dict[str, int] = {}
        for dimension_node in node.children_named("Dimension"):
            base = _parse_enum(DimensionBase, find_child_value(dimension_node, "Base"), "dimension base")
            powers[base.value] = _parse_int(find_child_value(dimension_node, "Power"), f"{base.value} power")
        return {"powers": {base: power for base, power in powers.items() if power != 0}}

    @staticmethod
    def _read_unit(node: DocumentNode) -> dict[str, Any]:
        unit: dict[str, Any] = {"id": find_child_value(node, "ID")}
        description = find_child(node, "Description", must_exist=False)
        if description is not None:
            unit["description"] = description.text
        factor = find_child(node, "ConversionFactorToSI", must_exist=False)
        if factor is not None:
            unit["conversion_factor_to_si"] = _parse_float(factor.text, "ConversionFactorToSI")
        offset = find_child(node, "OffSetToSI", must_exist=False)
        if offset is not None:
            unit["offset_to_si"] = _parse_float(offset.text, "OffSetToSI")
        return unit

    @staticmethod
    def _read_mapping(path: str) -> dict[str, Any]:
        input_path = Path(path)
        if not input_path.exists():
            raise MalformedConfiguration(f"config file not found: {path}")

        try:
            text = input_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise MalformedConfiguration(f"cannot read config file {path}: {exc}") from exc
        try:
            if input_path.suffix.lower() in {".yaml", ".yml"}:
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise MalformedConfiguration(f"invalid config syntax: {exc}") from exc

        if not isinstance(data, dict):
            raise MalformedConfiguration("config root must be object")
        return data

    @staticmethod
    def _validate(payload: dict[str, Any]) -> ComponentDescription:
        _validate_schema(CONFIG_SCHEMA, payload)
        try:
            return ComponentDescription.model_validate(payload)
        except ValidationError as exc:
            raise MalformedConfiguration(str(exc)) from exc


def _is_xml(path: str) -> bool:
    return Path(path).suffix.lower() == ".xml"


def _element_set_list(value: Any, source: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedConfiguration(f"invalid config structure: {source} must be array")
    return value


def _merge_element_sets(*sources: list[dict[str, Any]]) -> list[dict[str, Any]]:
    table: dict[str, dict[str, Any]] = {}
    for source in sources:
        for element_set in source:
            if not isinstance(element_set, dict) or "id" not in element_set:
                raise MalformedConfiguration("invalid config structure: element set must be object with id")
            table[element_set["id"]] = element_set
    return list(table.values())


def _normalize_times(payload: dict[str, Any]) -> dict[str, Any]:
    normalized = dict(payload)
    horizon = normalized.get("time_horizon")
    if isinstance(horizon, dict):
        # YAML turns unquoted timestamps into date/datetime objects
        normalized["time_horizon"] = {
            key: value.isoformat() if isinstance(value, (date, datetime)) else value
            for key, value in horizon.items()
        }
    return normalized


def _validate_schema(schema: dict, payload: dict[str, Any]) -> None:
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda err: list(err.path))
    if not errors:
        return
    formatted = []
    for error in errors[:8]:
        path = ".".join(str(x) for x in error.path)
        formatted.append(f"{path or '<root>'}: {error.message}")
    raise MalformedConfiguration("schema validation failed: " + " | ".join(formatted))


def _parse_float(text: str, field: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise MalformedConfiguration(f"{field} is not a number: '{text}'") from exc


def _parse_int(text: str, field: str) -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise MalformedConfiguration(f"{field} is not an integer: '{text}'") from exc


def _parse_enum(enum_cls: type[E], literal: str, field: str) -> E:
    try:
        return enum_cls(literal.strip())
    except ValueError as exc:
        raise MalformedConfiguration(f"invalid {field} '{literal}'") from exc


def _parse_time(text: str, field: str) -> float:
    try:
        return TimeStamp.parse(text).modified_julian_day
    except InvalidTimeFormat as exc:
        raise MalformedConfiguration(f"{field}: {exc.reason}") from exc
