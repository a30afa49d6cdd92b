"""
Intent Resolver - turns free-form model text into a typed intent

The model is asked to embed at most one call such as
``findTrees({"treeType": "oak"})`` in its reply. Resolution never raises:
argument and coercion problems degrade to defaults, anything unexpected
yields an UNPARSABLE intent.
"""
import ast
import json
import math
import re
from typing import Any, Dict, Optional

from ..errors import ResolutionFailure, ValidationFailure
from ..event_stream import EventStream
from ..logging_config import get_logger
from ..schemas.capability import Capability, ParameterSpec
from ..schemas.events import EventKind
from ..schemas.intents import ResolvedIntent
from .registry import CapabilityRegistry

logger = get_logger(__name__)

CALL_PATTERN = re.compile(r"(\w+)\((.*?)\)", re.DOTALL)

# Always numeric whatever the declared type says
NUMERIC_FIELDS = ("distance", "maxCount", "count")

NULL_REFERENCE = "null"


def parse_arguments(argument_text: str) -> Dict[str, Any]:
    """Parse a call's argument text as an object literal

    JSON is tried first, then a Python literal so that single quotes and
    True/False are accepted.

    Raises:
        ResolutionFailure: if the text is not an object literal
    """
    argument_text = argument_text.strip()
    if not argument_text:
        return {}

    try:
        value = json.loads(argument_text)
    except json.JSONDecodeError:
        try:
            value = ast.literal_eval(argument_text)
        except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError) as e:
            raise ResolutionFailure(f"Arguments are not an object literal: {argument_text!r}") from e

    if not isinstance(value, dict):
        raise ResolutionFailure(f"Arguments must be an object, got {type(value).__name__}")
    return value


def to_number(field: str, value: Any) -> Any:
    """Coerce a value to int or float; integral values become int"""
    if isinstance(value, bool):
        raise ValidationFailure(field, value, "number")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError as e:
            raise ValidationFailure(field, value, "number") from e
    else:
        raise ValidationFailure(field, value, "number")

    if isinstance(number, float):
        if not math.isfinite(number):
            raise ValidationFailure(field, value, "finite number")
        if number.is_integer():
            return int(number)
    return number


def coerce_value(field: str, value: Any, spec: Optional[ParameterSpec]) -> Any:
    """Coerce one parameter value to its declared type

    Raises:
        ValidationFailure: if the value cannot be represented as that type
    """
    if spec is not None and spec.type == "integer":
        number = to_number(field, value)
        if not isinstance(number, int):
            raise ValidationFailure(field, value, "integer")
        return number
    if field in NUMERIC_FIELDS:
        return to_number(field, value)
    if spec is None or spec.type == "any":
        return value

    if spec.type == "string":
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise ValidationFailure(field, value, "string")

    if spec.type == "number":
        return to_number(field, value)

    if spec.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationFailure(field, value, "boolean")

    if spec.type == "array":
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            return [value]
        raise ValidationFailure(field, value, "array")

    if spec.type == "object":
        if isinstance(value, dict):
            return value
        raise ValidationFailure(field, value, "object")

    return value


class IntentResolver:
    """Resolves model output against the capability registry"""

    def __init__(self, registry: CapabilityRegistry, events: Optional[EventStream] = None):
        self.registry = registry
        self.events = events

    def resolve(self, model_text: Any, issuer: Optional[str] = None) -> ResolvedIntent:
        """Resolve model text into a conversational, command or unparsable intent"""
        if not isinstance(model_text, str) or not model_text.strip():
            self._report_failure("empty model text", model_text)
            return ResolvedIntent.unparsable(model_text if isinstance(model_text, str) else "", "empty")

        try:
            return self._resolve(model_text, issuer)
        except Exception as e:
            logger.exception("Intent resolution failed", text=model_text)
            self._report_failure(str(e), model_text)
            return ResolvedIntent.unparsable(model_text, str(e))

    def _resolve(self, model_text: str, issuer: Optional[str]) -> ResolvedIntent:
        match = CALL_PATTERN.search(model_text)
        if not match:
            return ResolvedIntent.conversational(model_text)

        name, argument_text = match.group(1), match.group(2)
        capability = self.registry.get(name)
        if capability is None:
            logger.debug("Call names no capability, treating as conversation", name=name)
            return ResolvedIntent.conversational(model_text)

        try:
            arguments = parse_arguments(argument_text)
        except ResolutionFailure as e:
            logger.warning("Could not parse parameters", capability=name, arguments=argument_text, error=str(e))
            self._report_failure(str(e), model_text, capability=name)
            arguments = {}

        parameters = self._complete(capability, self._coerce(capability, arguments))
        logger.info("Resolved command", capability=name, parameters=parameters, issuer=issuer)
        return ResolvedIntent.command(name, parameters, issuer=issuer, text=model_text)

    def _coerce(self, capability: Capability, arguments: Dict[str, Any]) -> Dict[str, Any]:
        coerced: Dict[str, Any] = {}
        for field, value in arguments.items():
            spec = capability.parameters.get(field)

            if spec is not None and spec.target_reference and isinstance(value, str) and value.strip().lower() == NULL_REFERENCE:
                coerced[field] = None
                continue
            if value is None:
                # Explicit nulls fall back to the declared default
                continue

            try:
                coerced[field] = coerce_value(field, value, spec)
            except ValidationFailure as e:
                logger.warning("Invalid parameter, using default", capability=capability.name, field=field, error=str(e))
                self._report_failure(str(e), value, capability=capability.name)
                if spec is not None:
                    coerced[field] = spec.default
        return coerced

    @staticmethod
    def _complete(capability: Capability, coerced: Dict[str, Any]) -> Dict[str, Any]:
        return {**capability.defaults(), **coerced}

    def _report_failure(self, reason: str, text: Any, capability: Optional[str] = None) -> None:
        if self.events is None:
            return
        self.events.emit(
            EventKind.RESOLUTION_FAILURE,
            "resolver",
            reason=reason,
            data={"text": str(text), "capability": capability},
        )
