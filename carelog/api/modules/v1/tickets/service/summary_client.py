import asyncio
import logging
from typing import List, Optional

from google import genai
from google.genai import errors

from carelog.api.core.config import settings

logger = logging.getLogger("app")

_MODEL_UNAVAILABLE_HINTS = ("not found", "not supported", "does not exist", "unsupported")


def _is_model_unavailable(exc: Exception) -> bool:
    if getattr(exc, "code", None) == 404:
        return True
    message = str(exc).lower()
    return "model" in message and any(hint in message for hint in _MODEL_UNAVAILABLE_HINTS)


def _is_rate_limited(exc: Exception) -> bool:
    return getattr(exc, "code", None) == 429


class SummaryClient:
    """
    Gemini client that walks an ordered list of candidate models.

    - model unavailable (404 or "model ... not found"): try the next model
    - timeout or rate limit (429): give up immediately
    - any other provider error: try the next model
    """

    def __init__(self, api_key: Optional[str] = None, client: Optional[genai.Client] = None):
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.client = client
        if self.client is None and self.api_key:
            self.client = genai.Client(api_key=self.api_key)

    async def summarize(
        self,
        system_persona: str,
        user_content: str,
        models: Optional[List[str]] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """
        Ask the provider for a summary.

        Returns:
            The generated text, or None when no model produced one.
        """
        if self.client is None:
            logger.warning("Summary provider not configured (LLM_API_KEY missing)")
            return None

        models = models if models is not None else settings.SUMMARY_MODEL_LIST
        max_tokens = max_tokens if max_tokens is not None else settings.SUMMARY_MAX_TOKENS
        temperature = temperature if temperature is not None else settings.SUMMARY_TEMPERATURE
        timeout = timeout if timeout is not None else settings.SUMMARY_TIMEOUT_SECONDS

        for model in models:
            try:
                response = await asyncio.wait_for(
                    self.client.aio.models.generate_content(
                        model=model,
                        contents=[user_content],
                        config={
                            "system_instruction": system_persona,
                            "temperature": temperature,
                            "max_output_tokens": max_tokens,
                        },
                    ),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.error(f"Summary model {model} timed out after {timeout}s, aborting")
                return None
            except errors.APIError as e:
                if _is_rate_limited(e):
                    logger.error(f"Summary model {model} rate limited, aborting: {e}")
                    return None
                if _is_model_unavailable(e):
                    logger.warning(f"Summary model {model} unavailable, trying next: {e}")
                else:
                    logger.warning(f"Summary model {model} failed, trying next: {e}")
                continue
            except Exception as e:
                logger.warning(f"Summary model {model} failed, trying next: {e}")
                continue

            text = (getattr(response, "text", None) or "").strip()
            if text:
                logger.info(f"Summary generated with model {model}")
                return text

            logger.warning(f"Summary model {model} returned an empty response, trying next")

        logger.error("All summary models exhausted without a result")
        return None
