from __future__ import annotations

from typing import Any, Dict, List, Union

from jsonschema.validators import Draft202012Validator

from letex.models import CONTROL_TYPES, ControlSpec, GeneratedSimulation


CONTROL_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "type"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "type": {"enum": list(CONTROL_TYPES)},
        "label": {"type": "string"},
        "min": {"type": "number"},
        "max": {"type": "number"},
        "step": {"type": "number"},
        "options": {"type": "array", "items": {"type": "string"}},
    },
    "allOf": [
        {
            "if": {"properties": {"type": {"const": "slider"}}, "required": ["type"]},
            "then": {"required": ["min", "max", "step"]},
        },
        {
            "if": {"properties": {"type": {"const": "select"}}, "required": ["type"]},
            "then": {"required": ["options"], "properties": {"options": {"minItems": 1}}},
        },
    ],
}

_validator = Draft202012Validator(CONTROL_SCHEMA)


def _controls_of(target: Union[GeneratedSimulation, Dict[str, Any], List[Any]]) -> Any:
    if isinstance(target, GeneratedSimulation):
        return target.controls
    if isinstance(target, dict):
        return target.get("controls", [])
    return target


def collect_errors(target: Union[GeneratedSimulation, Dict[str, Any], List[Any]]) -> List[Dict[str, str]]:
    """
    Return a list of {"path": "...", "message": "..."} dicts for malformed controls.
    Accepts a simulation, a simulation-shaped dict, or the bare controls list.
    """
    errors: List[Dict[str, str]] = []
    controls = _controls_of(target)
    if not isinstance(controls, list):
        errors.append({"path": "controls", "message": "required property 'controls' must be an array"})
        return errors

    seen: Dict[str, int] = {}
    for idx, ctrl in enumerate(controls):
        prefix = f"controls[{idx}]"
        if not isinstance(ctrl, dict):
            errors.append({"path": prefix, "message": "control must be an object"})
            continue

        for err in sorted(_validator.iter_errors(ctrl), key=lambda e: list(e.path)):
            loc = ".".join(str(p) for p in err.path)
            errors.append({"path": f"{prefix}.{loc}" if loc else prefix, "message": err.message})

        cid = ctrl.get("id")
        if isinstance(cid, str) and cid:
            if cid in seen:
                errors.append(
                    {"path": f"{prefix}.id", "message": f"duplicate id '{cid}' (also used by controls[{seen[cid]}])"}
                )
            else:
                seen[cid] = idx

        ctype = ctrl.get("type")
        lo, hi, step = ctrl.get("min"), ctrl.get("max"), ctrl.get("step")
        if ctype == "slider":
            if _is_number(lo) and _is_number(hi) and lo > hi:
                errors.append({"path": f"{prefix}.min", "message": f"min {lo} is greater than max {hi}"})
            if _is_number(step) and step <= 0:
                errors.append({"path": f"{prefix}.step", "message": "step must be positive"})
        elif ctype == "select":
            options = ctrl.get("options")
            default = ctrl.get("defaultValue")
            if isinstance(options, list) and default is not None and default not in options:
                errors.append({"path": f"{prefix}.defaultValue", "message": f"defaultValue {default!r} is not one of the options"})
    return errors


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_controls(target: Union[GeneratedSimulation, Dict[str, Any], List[Any]]) -> List[ControlSpec]:
    """
    Raise ValueError if any control is malformed; otherwise return them as ControlSpec.
    The HTTP layer turns the ValueError into a 422 with the list from collect_errors().
    """
    errs = collect_errors(target)
    if errs:
        raise ValueError(f"{len(errs)} control error(s): {errs[0]['path']}: {errs[0]['message']}")
    return [ControlSpec.model_validate(c) for c in _controls_of(target)]
