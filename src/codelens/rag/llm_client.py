"""LiteLLM client wrapper: async embeddings + streamed completions.

All embedding and generation calls route through this module.
LiteLLM's built-in retry is used (num_retries=3, exponential backoff).
Provider failures are re-raised as EmbeddingError / GenerationError.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

import litellm

from codelens.errors import EmbeddingError, GenerationError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


async def embed_texts(
    model: str,
    texts: list[str],
    num_retries: int = 3,
) -> list[list[float]]:
    """Embed *texts* in one request. Returns one vector per input, in order.

    Raises:
        EmbeddingError: On provider failure or a response of the wrong length.
    """
    try:
        response = await litellm.aembedding(
            model=model,
            input=texts,
            num_retries=num_retries,
        )
    except Exception as exc:
        raise EmbeddingError(f"Embedding request failed ({model}): {exc}") from exc

    items = list(response.data)
    if len(items) != len(texts):
        raise EmbeddingError(
            f"Embedding response has {len(items)} vectors for {len(texts)} inputs"
        )
    # Providers report an index per item; honour it rather than arrival order.
    if all(isinstance(item, dict) and "index" in item for item in items):
        items.sort(key=lambda item: item["index"])
    return [item["embedding"] for item in items]


async def embed_text(model: str, text: str, num_retries: int = 3) -> list[float]:
    """Embed a single string."""
    vectors = await embed_texts(model, [text], num_retries=num_retries)
    return vectors[0]


async def stream_completion(
    model: str,
    messages: list[dict],
    max_tokens: int = 4_096,
    temperature: float = 0.2,
    num_retries: int = 3,
) -> AsyncIterator[str]:
    """Yield text deltas from a streamed chat completion.

    Closing the generator (``aclose()``) stops consuming the provider stream.

    Raises:
        GenerationError: If the request fails or the stream breaks mid-way.
    """
    try:
        response = await litellm.acompletion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            num_retries=num_retries,
            stream=True,
        )
    except Exception as exc:
        raise GenerationError(f"Generation request failed ({model}): {exc}") from exc

    try:
        async for part in response:
            if not part.choices:
                continue
            delta = part.choices[0].delta.content
            if delta:
                yield delta
    except Exception as exc:
        logger.warning("Generation stream from %s broke: %s", model, exc)
        raise GenerationError(f"Generation stream interrupted: {exc}") from exc
