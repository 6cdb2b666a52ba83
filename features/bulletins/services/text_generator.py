"""
Bulletin text generation.

The composer only sees the TextGenerator protocol. The Anthropic
implementation forces a tool call whose input schema is BulletinText, so the
reply always parses into a (title, message) pair.
"""

import json
import logging
from typing import Optional, Protocol

import anthropic
from pydantic import ValidationError

from core.config import settings
from features.bulletins.models.bulletin_types import BulletinContext, BulletinText, BulletinTone

logger = logging.getLogger(__name__)

TOOL_NAME = "publish_bulletin"

class TextGenerationError(Exception):
    """Raised when the generator cannot produce a bulletin."""
    pass

class TextGenerator(Protocol):
    async def compose(self, context: BulletinContext, tone: BulletinTone) -> BulletinText: ...

def build_system_prompt(tone: BulletinTone) -> str:
    return (
        "You are a coastal city mayor who provides updates about tide conditions "
        f"and their impact on the city. Your tone is {tone.value}. The city's economy "
        "is based on fishing (boosted by high tides) and tourism (boosted by low tides). "
        "Respond with a brief title (under 40 chars) and a message (under 200 words)."
    )

def build_user_prompt(context: BulletinContext) -> str:
    return (
        f"Generate a mayoral bulletin for the citizens of {context.city_name} "
        f"based on this data:\n{json.dumps(context.model_dump(mode='json'), indent=2)}"
    )

class AnthropicTextGenerator:
    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None
    ):
        self.model = model or settings.anthropic_model
        self.max_tokens = max_tokens or settings.anthropic_max_tokens
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout or settings.anthropic_timeout,
            max_retries=1,
        )

    async def compose(self, context: BulletinContext, tone: BulletinTone) -> BulletinText:
        tool = {
            "name": TOOL_NAME,
            "description": "Publish the mayoral bulletin to the city's citizens",
            "input_schema": BulletinText.model_json_schema(),
        }
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=build_system_prompt(tone),
                messages=[{"role": "user", "content": build_user_prompt(context)}],
                tools=[tool],
                tool_choice={"type": "tool", "name": TOOL_NAME},
            )
        except anthropic.APIError as e:
            raise TextGenerationError(f"Anthropic API error: {e}") from e

        block = next(
            (b for b in response.content if b.type == "tool_use" and b.name == TOOL_NAME),
            None
        )
        if block is None:
            raise TextGenerationError("No tool use found in response")

        try:
            return BulletinText.model_validate(block.input)
        except ValidationError as e:
            raise TextGenerationError(f"Malformed bulletin: {e}") from e

    async def close(self) -> None:
        await self._client.close()

def build_text_generator() -> Optional[TextGenerator]:
    """Anthropic generator when an API key is configured, else None."""
    if not settings.anthropic_api_key:
        logger.info("No Anthropic API key configured, bulletins will use fallback text")
        return None
    return AnthropicTextGenerator(api_key=settings.anthropic_api_key)
