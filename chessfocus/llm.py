"""Chat-completion calls that must come back as a JSON object."""
import json
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from chessfocus import config
from chessfocus.errors import LLMCallFailure, LLMResponseInvalid

logger = logging.getLogger(__name__)


_client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    """Created on first use, so the app starts without an API key."""
    global _client
    if _client is None:
        if not config.OPENAI_API_KEY:
            raise LLMCallFailure(
                "OpenAI API key not configured. Please set OPENAI_API_KEY in environment variables.",
                reason=LLMCallFailure.MISSING_KEY,
            )
        _client = AsyncOpenAI(api_key=config.OPENAI_API_KEY, timeout=config.LLM_TIMEOUT)
    return _client


def _call_failure(error: openai.OpenAIError) -> LLMCallFailure:
    message = str(error)
    if isinstance(error, openai.AuthenticationError) or "invalid_api_key" in message:
        return LLMCallFailure("Invalid OpenAI API key. Check your configuration.",
                              reason=LLMCallFailure.INVALID_KEY)
    if isinstance(error, openai.RateLimitError) or "quota" in message.lower():
        return LLMCallFailure("OpenAI rate limit reached. Try again in a few moments.",
                              reason=LLMCallFailure.RATE_LIMITED)
    return LLMCallFailure("Error while analyzing with OpenAI.", reason=LLMCallFailure.GENERIC)


async def request_json_completion(system: str, prompt: str) -> dict:
    """Send one prompt and return the parsed JSON object of the reply."""
    client = get_client()
    logger.info("Requesting %s completion (prompt length: %d)", config.OPENAI_MODEL, len(prompt))

    try:
        completion = await client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
        )
    except openai.OpenAIError as e:
        logger.error("OpenAI API call failed: %s: %s", type(e).__name__, e)
        raise _call_failure(e) from e

    content = completion.choices[0].message.content if completion.choices else None
    if not content:
        raise LLMResponseInvalid("OpenAI returned no content.")

    try:
        payload = json.loads(content)
    except ValueError as e:
        logger.error("Failed to parse OpenAI response: %s", content[:200])
        raise LLMResponseInvalid("Invalid OpenAI response: malformed JSON.") from e

    logger.info("Completion parsed (content length: %d)", len(content))
    return payload
