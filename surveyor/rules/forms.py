"""Form actions — typed parameters and fill steps from discovered form fields.

Field descriptors come from the portal probe's per-form evidence:
``{name, type, required, selector, placeholder}``.
"""

from __future__ import annotations

from typing import Any

FIELD_TYPES = {
    "number": "number",
    "range": "number",
    "checkbox": "boolean",
}


def map_field_type(html_type: str | None) -> str:
    """Parameter type for an HTML input type; anything unknown is a string."""
    return FIELD_TYPES.get((html_type or "text").lower(), "string")


def form_parameters(fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
    params = []
    for field in fields:
        name = field.get("name")
        if not name:
            continue
        params.append({
            "name": name,
            "type": map_field_type(field.get("type")),
            "required": bool(field.get("required")),
            "description": field.get("placeholder") or f"Enter {name}",
        })
    return params


def form_steps(
    fields: list[dict[str, Any]],
    submit_selector: str | None,
    url: str | None = None,
) -> list[dict[str, Any]]:
    """Browser steps that fill every named field and submit the form.

    Field values are ``${name}`` references to the action parameters.
    """
    steps: list[dict[str, Any]] = []
    if url:
        steps.append({"type": "navigate", "value": url})
        steps.append({"type": "wait", "wait_for": "networkidle"})
    for field in fields:
        if not field.get("name") or not field.get("selector"):
            continue
        steps.append({
            "type": "select" if field.get("type") == "select" else "type",
            "selector": field["selector"],
            "value": f"${{{field['name']}}}",
        })
    if submit_selector:
        steps.append({"type": "click", "selector": submit_selector})
        steps.append({"type": "wait", "wait_for": "networkidle"})
    for order, step in enumerate(steps):
        step["order"] = order
    return steps


def form_params(evidence: dict[str, Any], fields_key: str) -> dict[str, Any]:
    """``parameters`` and ``steps`` for an action built over one form feature."""
    fields = evidence.get(fields_key) or []
    if not isinstance(fields, list):
        return {}
    fields = [f for f in fields if isinstance(f, dict)]
    return {
        "parameters": form_parameters(fields),
        "steps": form_steps(fields, evidence.get("submit_selector"), evidence.get("url")),
    }
