"""Shared helpers for node handlers."""

from typing import Any, Dict

from pydantic import ValidationError

from nodeflow.constants import NodeType
from nodeflow.models import BaseNodeParams, validate_node_params
from nodeflow.services.execution.exceptions import NodeConfigurationError


def parse_node_params(node_type: NodeType, data: Dict[str, Any], node_id: str) -> BaseNodeParams:
    """Validate a node's data map against its type's schema.

    Raises:
        NodeConfigurationError: the data does not fit the schema
    """
    try:
        return validate_node_params(node_type.value, data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'data'}: {err['msg']}"
            for err in e.errors()
        )
        raise NodeConfigurationError(
            node_id, f"Invalid configuration for {node_type.value} node {node_id}: {problems}"
        ) from e
