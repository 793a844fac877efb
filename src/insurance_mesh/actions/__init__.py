"""Action descriptors and the per-service action registry.

This package provides the schema types services use to describe their
operations and the registry that binds those descriptors to handlers.
"""

from insurance_mesh.actions.registry import (
    ActionRegistry,
    bind_arguments,
    coerce_argument,
)
from insurance_mesh.actions.types import (
    ActionDescriptor,
    ParameterKind,
    ParameterSpec,
    qualify,
    split_qualified,
)

__all__ = [
    "ActionDescriptor",
    "ActionRegistry",
    "ParameterKind",
    "ParameterSpec",
    "bind_arguments",
    "coerce_argument",
    "qualify",
    "split_qualified",
]
