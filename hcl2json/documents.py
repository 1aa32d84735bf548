"""Loaders for the document formats an infrastructure-as-code scan runs into.

HCL goes through the native engine; JSON and YAML are handed to ``json`` and
PyYAML. A YAML stream holding several ``---`` separated documents loads as a
list with one entry per document. Terraform plan JSON can also be reduced
to the same ``resource`` / ``data`` shape an HCL projection has.
"""
import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .errors import DocumentError, ErrorKind
from .main import Document, decode_document, hcl2json


class DocumentFormat(Enum):
    HCL = 'hcl'
    JSON = 'json'
    YAML = 'yaml'

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'DocumentFormat':
        suffix = Path(path).suffix.lower()
        if suffix in ('.tf', '.tfvars', '.hcl'):
            return cls.HCL
        if suffix == '.json':
            return cls.JSON
        if suffix in ('.yaml', '.yml'):
            return cls.YAML
        raise ValueError(f"Unsupported document type: {path}")


def parse_json(data: Document) -> Any:
    try:
        return json.loads(decode_document(data))
    except json.JSONDecodeError as e:
        raise DocumentError(f"unmarshal json: {e}", ErrorKind.INVALID_JSON, errors=[e])


def parse_yaml(data: Document) -> Any:
    text = decode_document(data)
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise DocumentError(f"unmarshal yaml: {e}", ErrorKind.INVALID_YAML, errors=[e])

    if len(documents) > 1:
        return documents
    return documents[0] if documents else None


def parse_hcl2(data: Document) -> Any:
    return hcl2json(data)


def parse_document(data: Document, fmt: DocumentFormat) -> Any:
    loaders = {
        DocumentFormat.HCL: parse_hcl2,
        DocumentFormat.JSON: parse_json,
        DocumentFormat.YAML: parse_yaml,
    }
    return loaders[fmt](data)

# ------------------------------
# Terraform plans
# ------------------------------

DELTA_SCAN_ACTIONS = (['create'], ['update'], ['create', 'delete'], ['delete', 'create'])
FULL_SCAN_ACTIONS = DELTA_SCAN_ACTIONS + (['no-op'],)


def parse_terraform_plan(data: Document, full_scan: bool = True) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Turn ``terraform show -json`` plan output into ``resource`` / ``data`` scan input.

    Each planned resource contributes its ``after`` values under
    ``<mode>.<type>.<name>``. A full scan keeps unchanged (``no-op``)
    resources, a delta scan only created, updated and replaced ones. First
    level references from the root module configuration fill in attributes
    the plan does not know yet.
    """
    try:
        plan = parse_json(data)
    except DocumentError as e:
        raise DocumentError(f"failed to parse terraform-plan json payload: {e.message}",
                            ErrorKind.INVALID_JSON, errors=e.errors) from e
    if not isinstance(plan, dict):
        raise DocumentError("failed to parse terraform-plan json payload: expected an object",
                            ErrorKind.INVALID_JSON)

    valid_actions = FULL_SCAN_ACTIONS if full_scan else DELTA_SCAN_ACTIONS
    scan_input: Dict[str, Dict[str, Dict[str, Any]]] = {'resource': {}, 'data': {}}

    for change in _plan_list(plan.get('resource_changes'), 'resource_changes'):
        details = change.get('change') or {}
        if details.get('actions') not in valid_actions:
            continue
        mode = 'data' if change.get('mode') == 'data' else 'resource'
        resources = scan_input[mode].setdefault(change.get('type'), {})
        resources[resource_name(change)] = details.get('after')

    root_module = (plan.get('configuration') or {}).get('root_module') or {}
    for resource in _plan_list(root_module.get('resources'), 'configuration.root_module.resources'):
        # References in data sources are not followed
        if resource.get('mode') == 'data':
            continue
        resolved = scan_input['resource'].get(resource.get('type'), {}).get(resource_name(resource))
        if not isinstance(resolved, dict):
            continue
        for key, reference in _first_references(resource.get('expressions')).items():
            resolved.setdefault(key, reference)

    return scan_input


def resource_name(resource: Dict[str, Any]) -> str:
    """``name``, or ``name["index"]`` for one instance of a counted / for_each resource."""
    index = resource.get('index')
    if index is None:
        return resource.get('name')
    if isinstance(index, bool):
        key = json.dumps(index)
    elif isinstance(index, (int, float)):
        key = str(int(index))
    elif isinstance(index, str):
        key = index
    else:
        key = json.dumps(index, sort_keys=True)
    return f'{resource.get("name")}["{key}"]'


def _plan_list(value: Any, field: str) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise DocumentError(f"failed to parse terraform-plan json payload: '{field}' must be a list of objects",
                            ErrorKind.INVALID_JSON)
    return value


def _first_references(expressions: Any) -> Dict[str, Any]:
    # Only the top level, and only the first reference of each attribute
    if not isinstance(expressions, dict):
        return {}
    references = {}
    for key, expression in expressions.items():
        if isinstance(expression, dict) and isinstance(expression.get('references'), list) \
                and expression['references']:
            references[key] = expression['references'][0]
    return references
