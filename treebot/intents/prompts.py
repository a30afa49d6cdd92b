"""
Prompt construction and acknowledgement templates
"""
import json
import random
from typing import Any, Dict, Mapping, Optional

from ..logging_config import get_logger
from .registry import CapabilityRegistry, ResponseTemplateKind

logger = get_logger(__name__)

ERROR_CATEGORY = "error"

PROMPT_RULES = """If the user's request matches one of the available functions, respond with a natural message that includes the function call in this format: functionName({"param": "value"})
Otherwise, respond naturally without any function calls.

Remember:
0. IMPORTANT: use your context to respond
1. Include the complete function call with parameters if applicable
2. Keep responses short and friendly
3. Stay in character as a helpful Minecraft bot
4. Use the most specific function for the user's request"""


def _coordinate(position: Any, axis: str) -> float:
    if position is None:
        return 0
    if isinstance(position, Mapping):
        return position.get(axis) or 0
    return getattr(position, axis, 0) or 0


def build_function_call_prompt(
    registry: CapabilityRegistry, message: str, context: Optional[Dict[str, Any]] = None
) -> str:
    """Build the model prompt advertising every capability

    Args:
        registry: Capabilities and persona to advertise
        message: The chat message being answered
        context: Optional ``player_name``, ``bot_name``, ``position`` and ``health``
    """
    context = context or {}
    document = registry.document
    position = context.get("position")

    examples = "\n".join(
        f"{capability.name}({json.dumps(capability.defaults())}) - Example: \"{capability.examples[0] if capability.examples else ''}\""
        for capability in registry
    )

    prompt = f"""You are {document.name}, {document.description}.
Available functions:
{json.dumps(registry.function_definitions(), indent=2)}

Example function calls:
{examples}

Current context:
- Player speaking: {context.get("player_name") or "unknown"}
- Bot name: {context.get("bot_name") or ""}
- Bot position: {round(_coordinate(position, "x"))}, {round(_coordinate(position, "y"))}, {round(_coordinate(position, "z"))}
- Bot health: {round(context.get("health") or 0)}


User message: "{message}"

{PROMPT_RULES}"""

    logger.debug("Built function call prompt", length=len(prompt), player=context.get("player_name"))
    return prompt


class ResponseTemplates:
    """Random acknowledgement phrases with ``{key}`` slots"""

    def __init__(self, responses: Mapping[str, Any], rng: Optional[random.Random] = None):
        self._responses = responses
        self._rng = rng or random.Random()

    @classmethod
    def from_registry(cls, registry: CapabilityRegistry, rng: Optional[random.Random] = None) -> "ResponseTemplates":
        return cls(registry.responses, rng)

    def render(self, kind: Any, params: Optional[Dict[str, Any]] = None) -> str:
        """Pick a phrase for the category and fill its slots; unknown categories render empty"""
        category = kind.value if isinstance(kind, ResponseTemplateKind) else str(kind)
        templates = self._responses.get(category)
        if not templates:
            return ""

        response = self._rng.choice(list(templates))
        for key, value in (params or {}).items():
            if value is None:
                continue
            response = response.replace(f"{{{key}}}", str(value))
        return response

    def error(self) -> str:
        return self.render(ERROR_CATEGORY)


def response_params(parameters: Dict[str, Any], issuer: Optional[str] = None) -> Dict[str, Any]:
    """Slot values for an acknowledgement, with readable fallbacks"""
    distance = parameters.get("distance")
    return {
        "treeType": parameters.get("treeType") or "any",
        "woodType": parameters.get("woodType") or "any",
        "playerName": parameters.get("playerName") or issuer or "player",
        "distance": distance if distance else 2,
    }
