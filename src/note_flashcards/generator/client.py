"""Text-generation clients used to produce flashcards."""

import logging
from typing import Optional, Protocol

import anthropic

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Anything that turns a system + user prompt into raw text."""

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        model: str,
    ) -> str: ...


class AnthropicTextGenerator:
    """Generate text with Claude through the async Anthropic client."""

    def __init__(self, api_key: Optional[str] = None, client=None):
        """
        Initialize the generator.

        Args:
            api_key: Anthropic API key (uses ANTHROPIC_API_KEY env var if not provided)
            client: Preconfigured ``anthropic.AsyncAnthropic`` instance
        """
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        model: str,
    ) -> str:
        response = await self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )

        # Safely extract response text
        parts = [block.text for block in response.content if hasattr(block, "text")]
        if not parts:
            logger.warning("Model %s returned no text content", model)
            return ""
        return "".join(parts)
