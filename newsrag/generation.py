"""Answer generation through Gemini's OpenAI-compatible endpoint."""

from openai import OpenAI, OpenAIError

from .config import config
from .errors import GenerationFailure

logger = config.get_logger(__name__)


class GenerationService:
    """Turns an assembled prompt into a single answer string."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the GenerationService.

        Args:
            api_key: Google API key. If None, reads GOOGLE_API_KEY.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            base_url: Provider endpoint. If None, uses config.GENERATION_BASE_URL.
            temperature: Sampling temperature. If None, uses
                config.CHAT_TEMPERATURE.
            timeout: Request timeout in seconds. If None, uses
                config.GENERATION_TIMEOUT.
        """
        default_headers = config.get_api_headers()
        # A failed generation is fatal to the request; no SDK retries.
        self.client = OpenAI(
            api_key=api_key or config.get_google_api_key(),
            base_url=base_url or config.GENERATION_BASE_URL,
            timeout=timeout if timeout is not None else config.GENERATION_TIMEOUT,
            max_retries=0,
            default_headers=default_headers or None,
        )
        self.model = model or config.CHAT_MODEL
        self.temperature = (
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        )

    def generate(self, prompt: str) -> str:
        """Generate an answer for ``prompt``.

        Returns:
            The stripped completion text.

        Raises:
            GenerationFailure: If the provider call fails or returns no text.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except OpenAIError as exc:
            msg = f"Generation request failed: {exc}"
            raise GenerationFailure(msg) from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            msg = "Generation returned an empty answer"
            raise GenerationFailure(msg)
        return content.strip()
