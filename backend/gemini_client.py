import base64
import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config.settings import settings

from .errors import RemoteContractFailure, RemoteTransportFailure
from .model import ImageArtifact

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


class GeminiImageClient:
    """
    Generate and edit images through the google-genai SDK.
    Both calls return exactly one ImageArtifact or raise an ImageServiceError.
    """

    def __init__(
        self,
        api_key: Optional[str],
        generate_model: str = "imagen-4.0-generate-001",
        edit_model: str = "gemini-2.5-flash-image",
        timeout: Optional[float] = 300.0,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key
        self.generate_model = generate_model
        self.edit_model = edit_model
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls) -> "GeminiImageClient":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            generate_model=settings.GENERATE_MODEL,
            edit_model=settings.EDIT_MODEL,
            timeout=settings.REQUEST_TIMEOUT,
        )

    def _genai(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise RemoteTransportFailure("API_KEY environment variable not set.")
            http_options = None
            if self.timeout is not None:
                # the SDK takes milliseconds
                http_options = types.HttpOptions(timeout=int(self.timeout * 1000))
            self._client = genai.Client(api_key=self.api_key, http_options=http_options)
        return self._client

    async def generate(self, prompt: str) -> ImageArtifact:
        client = self._genai()
        logger.debug("[GeminiClient] generate_images model=%s", self.generate_model)
        try:
            response = await client.aio.models.generate_images(
                model=self.generate_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type=DEFAULT_MIME_TYPE,
                    aspect_ratio="1:1",
                ),
            )
        except genai_errors.APIError as e:
            raise RemoteTransportFailure(_api_error_message(e)) from e
        except httpx.HTTPError as e:
            raise RemoteTransportFailure(str(e) or "Request to the image service failed.") from e

        generated = getattr(response, "generated_images", None) or []
        if not generated or generated[0].image is None or not generated[0].image.image_bytes:
            raise RemoteContractFailure("Image generation failed: No images returned.")

        image = generated[0].image
        mime_type = image.mime_type or DEFAULT_MIME_TYPE
        logger.info("[GeminiClient] Generated image, mime_type=%s, %d bytes",
                    mime_type, len(image.image_bytes))
        return ImageArtifact(data=_b64(image.image_bytes), mime_type=mime_type)

    async def edit(self, prompt: str, source_data: str, source_mime_type: str) -> ImageArtifact:
        client = self._genai()
        logger.debug("[GeminiClient] generate_content model=%s", self.edit_model)
        try:
            response = await client.aio.models.generate_content(
                model=self.edit_model,
                contents=[
                    types.Part.from_bytes(
                        data=base64.b64decode(source_data), mime_type=source_mime_type
                    ),
                    prompt,
                ],
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except genai_errors.APIError as e:
            raise RemoteTransportFailure(_api_error_message(e)) from e
        except httpx.HTTPError as e:
            raise RemoteTransportFailure(str(e) or "Request to the image service failed.") from e

        candidates = getattr(response, "candidates", None) or []
        content = candidates[0].content if candidates else None
        parts = content.parts if content is not None else None
        if parts is None:
            raise RemoteContractFailure("Image editing failed: Invalid response structure.")

        for part in parts:
            if part.inline_data is not None and part.inline_data.data:
                mime_type = part.inline_data.mime_type or DEFAULT_MIME_TYPE
                logger.info("[GeminiClient] Edited image, mime_type=%s", mime_type)
                return ImageArtifact(data=_b64(part.inline_data.data), mime_type=mime_type)

        raise RemoteContractFailure("Image editing failed: No image returned in response.")


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("utf-8")


def _api_error_message(e: genai_errors.APIError) -> str:
    logger.error("[GeminiClient] API error %s: %s", e.code, e.message)
    return e.message or str(e)
