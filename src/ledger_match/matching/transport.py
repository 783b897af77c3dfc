"""
Transport to the external match oracle.

The core only needs "prompt in, text out". Errors raised by the provider
SDK (network, authentication, rate limit) are not caught here.
"""

from typing import Optional, Protocol
import logging
import os

from openai import OpenAI

from ..config import OracleConfig
from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class OracleTransport(Protocol):
    """Anything that can turn a prompt into a completion string."""

    def complete(self, prompt: str) -> str:
        ...


class OpenAITransport:
    """OracleTransport backed by the OpenAI chat-completions API."""

    def __init__(self, config: OracleConfig, client: Optional[OpenAI] = None):
        """
        Initialize the transport.

        Args:
            config: Oracle settings (model, temperature, credentials)
            client: Pre-built client, mainly for tests

        Raises:
            ConfigurationError: If no client is given and the API key is not set
        """
        self.config = config
        self.client = client or self._build_client(config)

    @staticmethod
    def _build_client(config: OracleConfig) -> OpenAI:
        api_key = os.getenv(config.api_key_env)
        if not api_key:
            raise ConfigurationError(
                f"Environment variable {config.api_key_env} is not set; "
                "it must hold the API key for the match oracle"
            )

        kwargs = {"api_key": api_key}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        if config.request_timeout is not None:
            kwargs["timeout"] = config.request_timeout
        return OpenAI(**kwargs)

    def complete(self, prompt: str) -> str:
        request = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.config.max_tokens is not None:
            request["max_tokens"] = self.config.max_tokens

        logger.debug(f"Oracle request: model={self.config.model}, {len(prompt)} chars")
        response = self.client.chat.completions.create(**request)
        content = response.choices[0].message.content or ""
        logger.debug(f"Oracle response: {len(content)} chars")
        return content


def build_transport(config: OracleConfig) -> OracleTransport:
    """Build the default oracle transport from configuration."""
    return OpenAITransport(config)
