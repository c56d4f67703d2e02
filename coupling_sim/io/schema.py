"""JSON schemas for configuration and element-set payload validation."""

from __future__ import annotations

_DIMENSION_BASES = [
    "Length",
    "Time",
    "Mass",
    "ElectricCurrent",
    "Temperature",
    "AmountOfSubstance",
    "LuminousIntensity",
    "Currency",
]

_TIME_VALUE = {"type": ["string", "number"]}

_DEFS: dict = {
    "ElementSet": {
        "type": "object",
        "required": ["id", "elements"],
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "description": {"type": "string"},
            "kind": {"type": "string", "enum": ["Point"]},
            "elements": {"type": "array", "items": {"$ref": "#/$defs/Element"}},
        },
        "additionalProperties": False,
    },
    "Element": {
        "type": "object",
        "required": ["id", "vertices"],
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "vertices": {
                "type": "array",
                "minItems": 1,
                "items": {
                    "type": "object",
                    "required": ["x", "y"],
                    "properties": {"x": {"type": "number"}, "y": {"type": "number"}},
                    "additionalProperties": False,
                },
            },
        },
        "additionalProperties": False,
    },
    "ExchangeItem": {
        "type": "object",
        "required": ["element_set_id", "quantity"],
        "properties": {
            "element_set_id": {"type": "string", "minLength": 1},
            "quantity": {"$ref": "#/$defs/Quantity"},
        },
        "additionalProperties": False,
    },
    "Quantity": {
        "type": "object",
        "required": ["id"],
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "description": {"type": "string"},
            "value_kind": {"type": "string", "enum": ["Scalar", "Vector"]},
            "dimension": {
                "type": "object",
                "required": ["powers"],
                "properties": {
                    "powers": {
                        "type": "object",
                        "propertyNames": {"enum": _DIMENSION_BASES},
                        "additionalProperties": {"type": "integer"},
                    }
                },
                "additionalProperties": False,
            },
            "unit": {"$ref": "#/$defs/Unit"},
        },
        "additionalProperties": False,
    },
    "Unit": {
        "type": "object",
        "required": ["id"],
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "description": {"type": "string"},
            "conversion_factor_to_si": {"type": "number"},
            "offset_to_si": {"type": "number"},
        },
        "additionalProperties": False,
    },
}

CONFIG_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Coupled Component Config",
    "type": "object",
    "required": ["model_id", "time_horizon"],
    "properties": {
        "model_id": {"type": "string", "minLength": 1},
        "model_description": {"type": "string"},
        "time_horizon": {
            "type": "object",
            "required": ["start", "end", "time_step_seconds"],
            "properties": {
                "start": _TIME_VALUE,
                "end": _TIME_VALUE,
                "time_step_seconds": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": False,
        },
        "element_sets": {
            "type": "array",
            "items": {"$ref": "#/$defs/ElementSet"},
            "default": [],
        },
        "outputs": {
            "type": "array",
            "items": {"$ref": "#/$defs/ExchangeItem"},
            "default": [],
        },
        "inputs": {
            "type": "array",
            "items": {"$ref": "#/$defs/ExchangeItem"},
            "default": [],
        },
        "extras": {
            "type": "object",
            "additionalProperties": {"type": ["string", "number", "boolean"]},
            "default": {},
        },
    },
    "$defs": _DEFS,
    "additionalProperties": False,
}

ELEMENT_SETS_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Element Sets",
    "type": "object",
    "required": ["element_sets"],
    "properties": {
        "element_sets": {
            "type": "array",
            "items": {"$ref": "#/$defs/ElementSet"},
        },
    },
    "$defs": _DEFS,
    "additionalProperties": False,
}
