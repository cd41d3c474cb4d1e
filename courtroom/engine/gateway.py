# engine/gateway.py
import logging
import time
from typing import Callable, Dict, Optional

import groq
from groq import AsyncGroq

from courtroom.engine.context_builder import PromptPayload
from courtroom.errors import (
    InvalidCredentialError,
    MissingCredentialError,
    ProviderError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)


class ChatCompletionGateway:
    """
    Thin wrapper around the Groq chat completion API.

    Exactly one attempt per call; provider failures come back as the typed
    errors from courtroom.errors and retrying is up to the caller.
    """

    def __init__(
        self,
        client_factory: Callable[..., AsyncGroq] = AsyncGroq,
        max_tokens: int = 300,
        temperature: float = 0.8,
    ):
        self._client_factory = client_factory
        self._clients: Dict[str, AsyncGroq] = {}
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _client(self, credential: str):
        client = self._clients.get(credential)
        if client is None:
            # one attempt per call, so SDK retries stay off
            client = self._client_factory(api_key=credential, max_retries=0)
            self._clients[credential] = client
        return client

    async def complete(self, payload: PromptPayload, model: str, credential: Optional[str]) -> str:
        if not credential:
            raise MissingCredentialError()

        client = self._client(credential)
        t0 = time.perf_counter()
        try:
            res = await client.chat.completions.create(
                model=model,
                messages=payload.to_messages(),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except (groq.AuthenticationError, groq.PermissionDeniedError) as e:
            self._clients.pop(credential, None)
            logger.warning(f"llm_call rejected credential | model={model} | {e}")
            raise InvalidCredentialError(str(e)) from e
        except groq.RateLimitError as e:
            logger.warning(f"llm_call rate limited | model={model}")
            raise RateLimitedError(str(e)) from e
        except groq.APIError as e:
            logger.error(f"llm_call failed | model={model} | {e}")
            raise ProviderError(str(e)) from e

        dt = time.perf_counter() - t0
        text = (res.choices[0].message.content or "").strip() if res.choices else ""
        logger.info(f"llm_call | model={model} dt={dt:.2f}s chars={len(text)}")
        if not text:
            raise ProviderError("The model returned an empty response.")
        return text
