"""AWS Bedrock LLM provider implementation.

Sends Anthropic-format Messages requests to the Bedrock runtime, signed with
SigV4. Credentials are resolved once, when the client is built.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ...aws.credentials import AwsCredentials, resolve_credentials
from ...aws.sigv4 import encode_path_segment, sign_request
from ...transport.http import HttpSender
from ..models import LLMResponse, Message, Role
from ._http import MAX_TOKENS, HttpLLMClient, encode_body, role_messages, token_sum

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"
SERVICE = "bedrock"
MISSING_CREDENTIALS = (
    "AWS credentials not configured. Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY "
    "environment variables, or configure in settings."
)


class BedrockClient(HttpLLMClient):
    """AWS Bedrock provider implementation.

    Hidden design decisions:
    - Credential source (settings, environment or shared credentials file)
    - Endpoint layout per region and model
    - SigV4 signing of every request
    - System messages are lifted out of the history into a top-level field
    """

    def __init__(
        self,
        region: str = "us-east-1",
        model: str = "global.anthropic.claude-sonnet-4-5-20250929-v1:0",
        access_key: str | None = None,
        secret_key: str | None = None,
        session_token: str | None = None,
        credentials: AwsCredentials | None = None,
        http: HttpSender | None = None,
        logger: logging.Logger | None = None
    ):
        """Initialize Bedrock provider.

        Args:
            region: AWS region hosting the model
            model: Bedrock model or inference profile id
            access_key: Explicit access key (optional)
            secret_key: Explicit secret key (optional)
            session_token: Explicit session token (optional)
            credentials: Pre-resolved credentials, skipping resolution
            http: Outbound HTTP capability
            logger: Logging sink
        """
        super().__init__(model, http, logger)
        self.region = region
        self.credentials = credentials or resolve_credentials(access_key, secret_key, session_token)
        if self.credentials.is_valid:
            self._log.info("Using AWS credentials from %s", self.credentials.provenance)
        else:
            self._log.warning("No AWS credentials found for Bedrock")

    @property
    def provider_name(self) -> str:
        return "AWS Bedrock"

    @property
    def host(self) -> str:
        return f"bedrock-runtime.{self.region}.amazonaws.com"

    @property
    def path(self) -> str:
        return f"/model/{encode_path_segment(self._model)}/invoke"

    def _complete(self, prompt: str, system_prompt: str | None) -> LLMResponse:
        body: dict[str, Any] = {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return self._invoke(body)

    def _chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        system = "\n\n".join(m.full_content for m in history if m.role is Role.SYSTEM)
        body: dict[str, Any] = {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": MAX_TOKENS,
        }
        if system:
            body["system"] = system
        body["messages"] = role_messages(history, new_message, skip_system=True)
        return self._invoke(body)

    def _invoke(self, body: dict[str, Any]) -> LLMResponse:
        if not self.credentials.is_valid:
            return LLMResponse.error(MISSING_CREDENTIALS)

        payload = encode_body(body)
        signed = sign_request(
            "POST", self.host, self.path, payload, self.credentials, self.region, SERVICE
        )
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **signed.headers,
        }
        return self._post(f"https://{self.host}{self.path}", payload, headers)

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type") == "text"
        )
        tokens = token_sum(data.get("usage"), "input_tokens", "output_tokens")
        return LLMResponse.ok(text, tokens)
