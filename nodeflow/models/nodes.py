"""Pydantic models for node data validation with discriminated unions.

Each node type carries a free-form ``data`` map in the stored workflow. The
executors validate that map at their boundary through these models so a
misconfigured node fails before any step or network call runs.
"""

from typing import Any, Dict, List, Literal, Optional, Union, Annotated
from pydantic import BaseModel, Field, TypeAdapter, field_validator

from nodeflow.constants import HTTP_METHODS


# =============================================================================
# BASE MODELS
# =============================================================================

class BaseNodeParams(BaseModel):
    """Base class for all node parameters."""
    model_config = {"extra": "allow", "populate_by_name": True}


# =============================================================================
# TRIGGER NODE MODELS
# =============================================================================

class InitialParams(BaseNodeParams):
    """Placeholder node of a graph that has no trigger configured yet."""
    type: Literal["INITIAL"]


class ManualTriggerParams(BaseNodeParams):
    """Manual trigger carries no configuration."""
    type: Literal["MANUAL_TRIGGER"]


class GoogleFormTriggerParams(BaseNodeParams):
    """Parameters for the Google Form trigger node."""
    type: Literal["GOOGLE_FORM_TRIGGER"]
    variable_name: Optional[str] = Field(default=None, alias="variables")


class StripeTriggerParams(BaseNodeParams):
    """Stripe trigger carries no configuration; the event arrives in the context."""
    type: Literal["STRIPE_TRIGGER"]


# =============================================================================
# HTTP NODE MODELS
# =============================================================================

class HttpRequestParams(BaseNodeParams):
    """Parameters for HTTP request and webhook nodes."""
    type: Literal["HTTP_REQUEST", "WEBHOOK"]
    endpoint: Optional[str] = None
    method: str = "GET"
    body: Optional[Union[str, Dict[str, Any], List[Any]]] = None
    variable_name: Optional[str] = Field(default=None, alias="variables")

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        if v is None or v == "":
            return "GET"
        method = str(v).upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {v}")
        return method

    @field_validator("endpoint", "variable_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# DISCRIMINATED UNION
# =============================================================================

KnownNodeParams = Annotated[
    Union[
        InitialParams,
        ManualTriggerParams,
        GoogleFormTriggerParams,
        StripeTriggerParams,
        HttpRequestParams,
    ],
    Field(discriminator="type"),
]

_known_node_adapter = TypeAdapter(KnownNodeParams)


def validate_node_params(node_type: str, data: Dict[str, Any]) -> BaseNodeParams:
    """Validate node data using the model registered for its type.

    Args:
        node_type: The node type tag
        data: The node's data map

    Returns:
        Validated parameters model (specific subclass based on node_type)

    Raises:
        ValidationError: If the data does not satisfy the node type's schema
    """
    return _known_node_adapter.validate_python({**(data or {}), "type": node_type})
