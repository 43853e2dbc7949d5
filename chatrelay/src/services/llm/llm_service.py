"""Service module for interacting with large language models.

This module provides a high-level interface for the supported LLM providers:
- Gemini: Google's Gemini API
- DeepSeek: DeepSeek's API (via OpenAI SDK)
- Unconfigured: fixed advisory reply used when no API key is set

Every service offers a blocking ``complete`` call and a lazy ``stream`` call that
yields text fragments and stops early once its cancellation token is set.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional

import google.generativeai as genai
from google.generativeai.generative_models import GenerativeModel
from google.generativeai.types import GenerationConfig
from openai import OpenAI

from chatrelay.conf.config import Config
from chatrelay.conf.prompts import UNCONFIGURED_REPLY_TEMPLATE
from chatrelay.src.services.exceptions import StreamCancelledError, UpstreamFailure
from chatrelay.src.services.streaming.cancellation import CancellationToken

logger = logging.getLogger(__name__)

COMPLETE_FAILURE_MESSAGE = "Failed to get response from AI service"
STREAM_FAILURE_MESSAGE = "Failed to stream response from AI service"


@dataclass(frozen=True)
class ChatPrompt:
    """Prompt sent to a backend.

    Attributes:
        system_prompt: Instructions with the retrieved context filled in
        user_message: The user's question
    """

    system_prompt: str
    user_message: str


class BaseLLMService(ABC):
    """Base class for LLM services.

    This abstract class defines the interface that all LLM services must implement.
    """

    name: str = "base"

    @property
    def configured(self) -> bool:
        """Whether the service talks to a real backend."""
        return True

    @abstractmethod
    def complete(self, prompt: ChatPrompt) -> str:
        """Generate a full response for the prompt.

        Args:
            prompt: System prompt and user message

        Returns:
            str: Generated response text

        Raises:
            UpstreamFailure: If the backend call fails
        """

    @abstractmethod
    def stream(self, prompt: ChatPrompt, cancel_token: CancellationToken) -> Iterator[str]:
        """Stream the response for the prompt as text fragments.

        The returned iterator is lazy, finite and cannot be restarted. It stops
        pulling from the backend as soon as ``cancel_token`` is set.

        Args:
            prompt: System prompt and user message
            cancel_token: Set when the consumer has gone away

        Yields:
            Non-empty text fragments in order

        Raises:
            UpstreamFailure: If the backend fails mid-stream
            StreamCancelledError: If the failure was caused by the cancellation
        """


class UnconfiguredLLMService(BaseLLMService):
    """Stand-in used when no API key is available.

    Both paths degrade to a fixed advisory reply instead of failing the request.
    """

    name = "unconfigured"

    def __init__(self, env_var: Optional[str] = None):
        """Initialize the advisory service.

        Args:
            env_var: Environment variable named in the advisory text
        """
        self.env_var = env_var or Config.api_key_env_var()
        self.advisory = UNCONFIGURED_REPLY_TEMPLATE.format(env_var=self.env_var)

    @property
    def configured(self) -> bool:
        return False

    def complete(self, prompt: ChatPrompt) -> str:
        return self.advisory

    def stream(self, prompt: ChatPrompt, cancel_token: CancellationToken) -> Iterator[str]:
        yield self.advisory


class GeminiLLMService(BaseLLMService):
    """Service for interacting with Google's Gemini API."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        """Initialize the Gemini LLM service.

        Args:
            api_key: Gemini API key; defaults to Config.GEMINI_API_KEY
            model_name: Model to use; defaults to Config.GEMINI_MODEL_NAME

        Raises:
            ValueError: If no API key is available
        """
        api_key = api_key or Config.GEMINI_API_KEY
        if not api_key:
            raise ValueError(
                "Gemini API key not found. Please set the GEMINI_API_KEY environment variable."
            )
        self.model_name = model_name or Config.GEMINI_MODEL_NAME

        # Configure the API key first
        genai.configure(api_key=api_key)  # type: ignore

        generation_config = GenerationConfig(
            temperature=Config.GEMINI_TEMPERATURE,
            max_output_tokens=Config.GEMINI_MAX_TOKENS,
        )
        self.client = GenerativeModel(
            model_name=self.model_name,
            generation_config=generation_config,
        )
        logger.info(f"Initialized Gemini LLM service with model: {self.model_name}")

    @staticmethod
    def _to_contents(prompt: ChatPrompt) -> List[dict]:
        """Build Gemini-formatted contents with the system prompt folded in."""
        text = (
            f"{prompt.system_prompt}\n\n{prompt.user_message}"
            if prompt.system_prompt
            else prompt.user_message
        )
        return [{"role": "user", "parts": [{"text": text}]}]

    @staticmethod
    def _chunk_text(chunk: object) -> str:
        # .text raises ValueError when a candidate carries no text parts
        try:
            return getattr(chunk, "text", "") or ""
        except ValueError:
            return ""

    def complete(self, prompt: ChatPrompt) -> str:
        try:
            response = self.client.generate_content(self._to_contents(prompt))  # type: ignore
            if not response or not response.text:
                raise RuntimeError("Empty response from Gemini API")
            return response.text
        except Exception as e:
            logger.error(f"Error generating response from Gemini: {str(e)}")
            raise UpstreamFailure(COMPLETE_FAILURE_MESSAGE, provider=self.name) from e

    @staticmethod
    def _release_response(response: object) -> None:
        """Stop the gRPC call behind a streamed response so generation ends upstream."""
        call = getattr(response, "_iterator", response)
        for name in ("cancel", "close"):
            release = getattr(call, name, None)
            if callable(release):
                try:
                    release()
                except Exception as e:
                    logger.debug(f"Error while releasing Gemini stream: {str(e)}")
                return

    def stream(self, prompt: ChatPrompt, cancel_token: CancellationToken) -> Iterator[str]:
        response = None
        try:
            response = self.client.generate_content(  # type: ignore
                self._to_contents(prompt), stream=True
            )
            for chunk in response:
                if cancel_token.cancelled:
                    return
                text = self._chunk_text(chunk)
                if text:
                    yield text
        except Exception as e:
            if cancel_token.cancelled:
                # Expected when the client disconnects; not an error
                raise StreamCancelledError("Gemini stream aborted", provider=self.name) from e
            logger.error(f"Error streaming response from Gemini: {str(e)}")
            raise UpstreamFailure(STREAM_FAILURE_MESSAGE, provider=self.name) from e
        finally:
            if response is not None:
                self._release_response(response)


class DeepseekLLMService(BaseLLMService):
    """Service for interacting with DeepSeek's API."""

    name = "deepseek"

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the DeepSeek LLM service.

        Args:
            api_key: DeepSeek API key; defaults to Config.DEEPSEEK_API_KEY

        Raises:
            ValueError: If no API key is available
        """
        api_key = api_key or Config.DEEPSEEK_API_KEY
        if not api_key:
            raise ValueError(
                "DeepSeek API key not found. Please set the DEEPSEEK_API_KEY environment variable."
            )
        self.client = OpenAI(api_key=api_key, base_url=Config.DEEPSEEK_BASE_URL)
        logger.info(
            f"Initialized DeepSeek LLM service with model: {Config.DEEPSEEK_MODEL_NAME}"
        )

    @staticmethod
    def _to_messages(prompt: ChatPrompt) -> list:
        from openai.types.chat import ChatCompletionMessageParam

        messages: List[ChatCompletionMessageParam] = []
        if prompt.system_prompt:
            messages.append({"role": "system", "content": prompt.system_prompt})
        messages.append({"role": "user", "content": prompt.user_message})
        return messages

    def complete(self, prompt: ChatPrompt) -> str:
        try:
            response = self.client.chat.completions.create(
                model=Config.DEEPSEEK_MODEL_NAME,
                messages=self._to_messages(prompt),
                max_tokens=Config.DEEPSEEK_MAX_TOKENS,
                temperature=Config.DEEPSEEK_TEMPERATURE,
            )
            if not response.choices or not response.choices[0].message.content:
                raise RuntimeError("Empty response from DeepSeek API")
            return response.choices[0].message.content
        except Exception as e:
            logger.error(f"Error generating response from DeepSeek: {str(e)}")
            raise UpstreamFailure(COMPLETE_FAILURE_MESSAGE, provider=self.name) from e

    def stream(self, prompt: ChatPrompt, cancel_token: CancellationToken) -> Iterator[str]:
        stream = None
        try:
            stream = self.client.chat.completions.create(
                model=Config.DEEPSEEK_MODEL_NAME,
                messages=self._to_messages(prompt),
                max_tokens=Config.DEEPSEEK_MAX_TOKENS,
                temperature=Config.DEEPSEEK_TEMPERATURE,
                stream=True,
            )
            for chunk in stream:
                if cancel_token.cancelled:
                    return
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except Exception as e:
            if cancel_token.cancelled:
                raise StreamCancelledError("DeepSeek stream aborted", provider=self.name) from e
            logger.error(f"Error streaming response from DeepSeek: {str(e)}")
            raise UpstreamFailure(STREAM_FAILURE_MESSAGE, provider=self.name) from e
        finally:
            # Closing the HTTP stream stops generation on the server side
            if stream is not None:
                stream.close()
