"""
Gemini model adapter for intent prompts
"""
from typing import Optional, Protocol

from google import genai
from google.genai import types

from ..config import AgentConfig, get_config, get_gemini_api_key
from ..logging_config import get_logger

logger = get_logger(__name__)


class LanguageModel(Protocol):
    """Anything that turns a prompt into free text"""

    async def generate(self, prompt: str) -> str: ...


class GeminiModel:
    """Calls Gemini through the google-genai async client"""

    def __init__(self, config: Optional[AgentConfig] = None, client: Optional[genai.Client] = None):
        self.config = config or get_config()
        self.model = self.config.default_model
        self.client = client or genai.Client(api_key=get_gemini_api_key(self.config))
        self.generation_config = types.GenerateContentConfig(
            temperature=self.config.agent_temperature,
            max_output_tokens=self.config.max_output_tokens,
        )
        logger.info("Gemini model ready", model=self.model)

    async def generate(self, prompt: str) -> str:
        content = types.Content(role="user", parts=[types.Part(text=prompt)])
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[content],
            config=self.generation_config,
        )
        text = (response.text or "").strip()
        logger.debug("Model response", model=self.model, length=len(text))
        return text
