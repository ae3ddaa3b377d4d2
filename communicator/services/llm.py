"""Gemini text generation through LiteLLM.

GenerationClient.generate never raises: configuration problems and API
failures are logged and converted into a user-safe reply.
"""

import logging

from litellm import acompletion

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini/gemini-2.0-flash"
PLACEHOLDER_API_KEY = "YOUR_GEMINI_API_KEY_HERE"

NOT_CONFIGURED_REPLY = (
    "AI service is not configured. Please add your Gemini API key to config.yaml."
)
GENERATION_FAILED_REPLY = "Sorry, I had trouble generating a response."
EMPTY_REPLY = "I don't have a response for that."

FALLBACK_REPLIES = frozenset({NOT_CONFIGURED_REPLY, GENERATION_FAILED_REPLY, EMPTY_REPLY})


def is_fallback(text: str) -> bool:
    """Check whether text is one of the generation fallback replies."""
    return text in FALLBACK_REPLIES


class GenerationClient:
    """Async client for the text generation service.

    Usage:
        client = GenerationClient(api_key=settings.api_key, model=settings.gemini_model)
        reply = await client.generate("Say hello")
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the generation client.

        Args:
            api_key: Gemini API key. Empty or placeholder keys disable generation.
            model: LiteLLM model identifier.
            max_tokens: Optional cap on generated tokens.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    async def generate(self, prompt: str) -> str:
        """Generate a reply for a prompt.

        Args:
            prompt: Full prompt text.

        Returns:
            Generated text, or one of FALLBACK_REPLIES on failure.
        """
        if not self.is_configured:
            return NOT_CONFIGURED_REPLY

        logger.debug("Sending prompt to %s (%d chars)", self.model, len(prompt))

        kwargs = {}
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens

        try:
            response = await acompletion(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                api_key=self.api_key,
                timeout=self.timeout,
                **kwargs,
            )
        except Exception as e:
            logger.error("Failed to generate content: %s", e)
            return GENERATION_FAILED_REPLY

        try:
            text = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError):
            text = ""

        if not text.strip():
            logger.warning("Generation service returned no content")
            return EMPTY_REPLY

        logger.debug("Received response from %s (%d chars)", self.model, len(text))
        return text
