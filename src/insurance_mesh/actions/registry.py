"""Action registry mapping descriptors to invocable handlers.

Each domain service owns one ActionRegistry populated by explicit
``register()`` calls. The registry validates and coerces arguments against
the descriptor's parameter schema before calling the handler, and otherwise
has no side effects of its own.
"""

import logging
import math
from typing import Any, Callable

from insurance_mesh.actions.types import ActionDescriptor, ParameterKind, ParameterSpec
from insurance_mesh.errors import ArgumentError, DuplicateActionError, UnknownActionError

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]

_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0"}


def _clean_number(value: str) -> str:
    return value.strip().replace(",", "").replace("$", "").replace("_", "")


def _finite(text: str) -> float:
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {text!r}")
    return number


def coerce_argument(spec: ParameterSpec, value: Any) -> Any:
    """Coerce a raw value to the kind declared by a parameter spec.

    Args:
        spec: The parameter spec to coerce against
        value: The raw value (usually from JSON or text extraction)

    Returns:
        The typed value (str, int, float or bool)

    Raises:
        ValueError: If the value cannot be represented as the declared kind
    """
    if spec.kind == ParameterKind.STRING:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(f"expected a string, got {type(value).__name__}")
        text = str(value).strip()
        if not text:
            raise ValueError("expected a non-empty string")
        return text

    if spec.kind == ParameterKind.INTEGER:
        if isinstance(value, bool):
            raise ValueError("expected an integer, got a boolean")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"expected an integer, got {value}")
            return int(value)
        if isinstance(value, str):
            text = _clean_number(value)
            try:
                return int(text)
            except ValueError:
                pass
            number = _finite(text)
            if not number.is_integer():
                raise ValueError(f"expected an integer, got {value!r}")
            return int(number)
        raise ValueError(f"expected an integer, got {type(value).__name__}")

    if spec.kind == ParameterKind.DECIMAL:
        if isinstance(value, bool):
            raise ValueError("expected a decimal, got a boolean")
        if isinstance(value, int):
            return float(value)
        if isinstance(value, float):
            return _finite(str(value))
        if isinstance(value, str):
            return _finite(_clean_number(value))
        raise ValueError(f"expected a decimal, got {type(value).__name__}")

    if spec.kind == ParameterKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
        raise ValueError(f"expected a boolean, got {value!r}")

    raise ValueError(f"unsupported parameter kind: {spec.kind}")


def bind_arguments(descriptor: ActionDescriptor, arguments: dict[str, Any]) -> list[Any]:
    """Validate arguments against a descriptor and order them positionally.

    Optional parameters that are absent (or None) are bound as None.

    Raises:
        ArgumentError: On unexpected names, missing required values, or
                       coercion failures
    """
    known = {spec.name for spec in descriptor.parameters}
    unexpected = sorted(set(arguments) - known)
    if unexpected:
        raise ArgumentError(
            f"Unexpected parameters for '{descriptor.name}': {', '.join(unexpected)}",
            action=descriptor.name,
            parameter=unexpected[0],
        )

    bound: list[Any] = []
    for spec in descriptor.parameters:
        value = arguments.get(spec.name)
        if value is None:
            if spec.required:
                raise ArgumentError(
                    f"Missing required parameter '{spec.name}' for '{descriptor.name}'",
                    action=descriptor.name,
                    parameter=spec.name,
                )
            bound.append(None)
            continue
        try:
            bound.append(coerce_argument(spec, value))
        except ValueError as e:
            raise ArgumentError(
                f"Invalid value for '{spec.name}' ({spec.kind.value}): {e}",
                action=descriptor.name,
                parameter=spec.name,
            ) from e
    return bound


class ActionRegistry:
    """Per-service mapping from action descriptors to handlers.

    Iteration order is registration order, which keeps resolver tie-breaking
    and discovery output deterministic.
    """

    def __init__(self) -> None:
        self._actions: dict[str, tuple[ActionDescriptor, Handler]] = {}

    def register(self, descriptor: ActionDescriptor, handler: Handler) -> None:
        """Register a handler under the descriptor's name.

        Raises:
            DuplicateActionError: If the name is already registered
        """
        if descriptor.name in self._actions:
            raise DuplicateActionError(descriptor.name)
        self._actions[descriptor.name] = (descriptor, handler)
        logger.debug(f"Registered action {descriptor.name}")

    def get(self, name: str) -> ActionDescriptor:
        try:
            return self._actions[name][0]
        except KeyError:
            raise UnknownActionError(name) from None

    def describe(self) -> tuple[ActionDescriptor, ...]:
        """Return all descriptors in registration order."""
        return tuple(descriptor for descriptor, _ in self._actions.values())

    def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Invoke an action by name.

        Args:
            name: The action name
            arguments: Mapping from parameter name to raw value

        Returns:
            The handler's result, unmodified

        Raises:
            UnknownActionError: If the action is not registered
            ArgumentError: If arguments are missing, unexpected or mistyped
        """
        try:
            descriptor, handler = self._actions[name]
        except KeyError:
            raise UnknownActionError(name) from None

        bound = bind_arguments(descriptor, arguments or {})
        logger.debug(f"Invoking {name} with {len(bound)} arguments")
        return handler(*bound)

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)
