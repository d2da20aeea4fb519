"""
LLM provider adapters.

The rest of the pipeline depends only on the LLMProvider capability
`generate(prompt) -> text`; vendor request/response shapes stay in here.
"""

from typing import Any, Optional, Protocol
import logging

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from techdeck.core.config import Settings, settings as default_settings
from techdeck.core.exceptions import TransientInvocationError

logger = logging.getLogger(__name__)


class LLMProvider(Protocol):
    """Anything that can turn a prompt into text."""

    async def generate(self, prompt: str) -> str:
        ...


def _content_to_text(content: Any) -> str:
    """Flatten an AIMessage content payload (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return ""


class GeminiProvider:
    """Google Gemini via langchain-google-genai."""

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_output_tokens: int = 4096
    ):
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY not configured. Set it in .env or environment variables."
            )

        self.model = model
        self.temperature = temperature
        self.llm = ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=temperature,
            max_output_tokens=max_output_tokens
        )

        logger.info(f"✅ GeminiProvider initialized with model: {model} (temperature={temperature})")

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> "GeminiProvider":
        config = config or default_settings
        return cls(
            api_key=config.GEMINI_API_KEY,
            model=model or config.GEMINI_MODEL,
            temperature=config.GEMINI_TEMPERATURE if temperature is None else temperature,
            max_output_tokens=config.GEMINI_MAX_OUTPUT_TOKENS
        )

    async def generate(self, prompt: str) -> str:
        """
        Send one prompt and return the reply text.

        Raises:
            TransientInvocationError: On any SDK/transport failure or an
                empty reply, so the invocation wrapper can retry it.
        """
        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            raise TransientInvocationError(f"Gemini call failed: {e}") from e

        if hasattr(response, 'usage_metadata') and response.usage_metadata:
            logger.debug(f"📊 Token usage: {response.usage_metadata}")

        text = _content_to_text(response.content).strip()
        if not text:
            raise TransientInvocationError("Gemini returned an empty response")

        return text
