"""OpenAI vision service for restaurant screenshot analysis."""

import base64
import json
import logging
from pathlib import Path

import openai
import pydantic
from openai import AsyncOpenAI

from snapbite.config import Config, get_config
from snapbite.errors import (
    IncompleteDataError,
    SchemaError,
    TransportError,
    VisionError,
)
from snapbite.models import Err, Ok, RestaurantData, Result
from snapbite.models.extraction import REQUIRED_FIELDS
from snapbite.prompts import load_prompt

logger = logging.getLogger(__name__)


def encode_image(source: bytes | str | Path) -> str:
    """Base64-encode an image for the vision request.

    Args:
        source: Raw image bytes or a path to an image file

    Returns:
        Base64 string without a data-URL prefix
    """
    data = source if isinstance(source, bytes) else Path(source).read_bytes()
    return base64.b64encode(data).decode("ascii")


class VisionExtractionClient:
    """Extracts restaurant details from screenshots with a multimodal model.

    ``analyze`` reports why an extraction failed; ``extract`` turns every
    failure into None so callers can fall back to manual entry.
    """

    def __init__(
        self, config: Config | None = None, client: AsyncOpenAI | None = None
    ) -> None:
        """Initialize the vision client.

        Args:
            config: Application configuration (global config if None)
            client: OpenAI client to use instead of building one from config
        """
        self.config = config or get_config()
        self._client = client
        self.system_prompt = load_prompt("vision_extraction")
        self.user_prompt = load_prompt("vision_user")

    @property
    def client(self) -> AsyncOpenAI:
        """OpenAI client, created on first use."""
        if self._client is None:
            # One attempt per call; the pipeline decides what to do on failure.
            self._client = AsyncOpenAI(
                api_key=self.config.openai_api_key,
                base_url=self.config.openai_base_url,
                timeout=self.config.request_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def is_configured(self) -> bool:
        """Check if an API key or client is available."""
        return self._client is not None or bool(self.config.openai_api_key)

    def build_messages(self, image_base64: str) -> list[dict]:
        """Build the system and user messages for one screenshot."""
        return [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self.user_prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{image_base64}"},
                    },
                ],
            },
        ]

    async def analyze(self, image_base64: str) -> Result[RestaurantData, VisionError]:
        """Send a screenshot to the model and validate its answer.

        Args:
            image_base64: Base64-encoded JPEG

        Returns:
            Ok with the extracted data, or Err with a TransportError,
            SchemaError or IncompleteDataError
        """
        if not self.is_configured():
            return Err(TransportError("OpenAI API key is not configured"))

        try:
            response = await self.client.chat.completions.create(
                model=self.config.vision_model,
                messages=self.build_messages(image_base64),
                max_tokens=self.config.vision_max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            return Err(TransportError(f"OpenAI API error: {e.status_code} {e.message}"))
        except openai.APIError as e:
            return Err(TransportError(f"OpenAI request failed: {e}"))

        choices = getattr(response, "choices", None)
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            return Err(SchemaError("Invalid response from OpenAI API"))

        return self.parse_content(content)

    @staticmethod
    def parse_content(content: str) -> Result[RestaurantData, VisionError]:
        """Validate the model's JSON answer against the extraction schema."""
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            return Err(SchemaError(f"Model returned invalid JSON: {e}"))

        if payload is None:
            return Err(IncompleteDataError("No restaurant found in image"))
        if not isinstance(payload, dict):
            return Err(SchemaError("Model returned JSON that is not an object"))

        # json_object mode may wrap a null answer, e.g. {"restaurant": null}
        if len(payload) == 1 and next(iter(payload.values())) is None:
            return Err(IncompleteDataError("No restaurant found in image"))

        missing = [
            field
            for field in REQUIRED_FIELDS
            if payload.get(field) is None
            or (isinstance(payload.get(field), str) and not payload[field].strip())
        ]
        if missing:
            return Err(
                IncompleteDataError(
                    f"Incomplete restaurant data extracted: missing {', '.join(missing)}"
                )
            )

        try:
            return Ok(RestaurantData.model_validate(payload))
        except pydantic.ValidationError as e:
            return Err(SchemaError(f"Extracted data does not match schema: {e}"))

    async def extract(self, image_base64: str) -> RestaurantData | None:
        """Extract restaurant data from a screenshot.

        Args:
            image_base64: Base64-encoded JPEG

        Returns:
            RestaurantData, or None if anything went wrong
        """
        result = await self.analyze(image_base64)
        if isinstance(result, Err):
            logger.warning(
                f"Screenshot analysis failed ({type(result.error).__name__}): "
                f"{result.error}"
            )
            return None

        logger.info(f"Extracted restaurant '{result.value.name}' from screenshot")
        return result.value

    async def test_connection(self) -> bool:
        """Check that the API key can reach OpenAI."""
        if not self.is_configured():
            return False

        try:
            await self.client.models.list()
        except openai.APIError:
            logger.exception("OpenAI connection test failed")
            return False
        return True
