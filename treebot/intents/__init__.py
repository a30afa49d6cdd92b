"""Intent resolution pipeline: capability registry, prompts and resolver."""

from .prompts import ResponseTemplates, build_function_call_prompt, response_params
from .registry import CapabilityRegistry, ResponseTemplateKind, load_registry, response_template_kind
from .resolver import IntentResolver

__all__ = [
    "CapabilityRegistry",
    "IntentResolver",
    "ResponseTemplateKind",
    "ResponseTemplates",
    "build_function_call_prompt",
    "load_registry",
    "response_params",
    "response_template_kind",
]
