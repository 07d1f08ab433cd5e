"""
ElevenLabs Text-to-Speech Service

Generates headline voiceovers with ElevenLabs. API keys rotate through the
failover client; voice identifiers live in their own pool and rotate when
the service reports the current voice as missing.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

import httpx

from slidecast.config import Settings
from slidecast.models.schemas import SlideDeck, VoiceoverClip
from slidecast.services.credential_pool import CredentialPool
from slidecast.services.errors import ErrorKind, ServiceError
from slidecast.services.failover_client import FailoverClient, REJECTION_STATUS_CODES

logger = logging.getLogger(__name__)

# mp3_44100_128 responses are constant 128 kbps
OUTPUT_FORMAT = "mp3_44100_128"
BITRATE_BPS = 128000
LIMIT_SIGNALS = ("quota_exceeded", "limit reached", "limit_reached")


@dataclass
class VoiceoverResult:
    """Result from voiceover generation."""
    success: bool
    audio_data: Optional[bytes] = None  # Raw MP3 bytes
    file_size_bytes: int = 0
    duration_seconds: float = 0.0
    voice_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class NarrationResult:
    """Ordered voiceover clips for a deck; stops at the first failed slide."""
    clips: List[VoiceoverClip] = field(default_factory=list)
    failed_slide: Optional[int] = None
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.error is None


def estimate_duration(file_size_bytes: int, bitrate_bps: int = BITRATE_BPS) -> float:
    """duration = bytes / (bitrate / 8)"""
    if file_size_bytes <= 0:
        return 0.0
    return file_size_bytes / (bitrate_bps / 8)


def is_elevenlabs_rejection(response: httpx.Response) -> bool:
    if response.status_code in REJECTION_STATUS_CODES:
        return True
    body = (response.text or "").lower()
    return any(signal in body for signal in LIMIT_SIGNALS)


def read_audio_body(response: httpx.Response) -> bytes:
    audio = response.content
    if not audio:
        raise ValueError("empty audio body")
    return audio


class ElevenLabsService:
    """Service for generating voiceovers using ElevenLabs API."""

    BASE_URL = "https://api.elevenlabs.io/v1"
    SERVICE_NAME = "ElevenLabs"

    def __init__(
        self,
        api_keys: Iterable[str],
        voice_ids: Iterable[str],
        model_id: str = "eleven_multilingual_v2",
        timeout: float = 70.0,
        base_url: str = BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_seconds: float = 0.3,
    ):
        self.api_keys = list(api_keys)
        self.voice_ids = list(voice_ids)
        self.model_id = model_id
        self.timeout = timeout
        self.base_url = base_url
        self.transport = transport
        self.backoff_seconds = backoff_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "ElevenLabsService":
        return cls(
            api_keys=settings.elevenlabs_keys(),
            voice_ids=settings.elevenlabs_voices(),
            model_id=settings.ELEVENLABS_MODEL_ID,
            timeout=settings.ELEVENLABS_TIMEOUT,
        )

    def is_configured(self) -> bool:
        """Check if service is configured with API key and voice."""
        return bool(self.api_keys) and bool(self.voice_ids)

    async def _synthesize(self, text: str, voices: CredentialPool) -> VoiceoverResult:
        client = FailoverClient(
            CredentialPool(self.api_keys),
            self.base_url,
            service_name=self.SERVICE_NAME,
            auth_headers=lambda key: {"xi-api-key": key},
            is_credential_rejection=is_elevenlabs_rejection,
            timeout=self.timeout,
            backoff_seconds=self.backoff_seconds,
            transport=self.transport,
        )
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.45,
                "similarity_boost": 0.6,
                "style": 0.35,
                "use_speaker_boost": True
            }
        }

        while True:
            voice_id = voices.current()
            if voice_id is None:
                raise ServiceError(
                    f"{self.SERVICE_NAME}: no usable voice id configured",
                    kind=ErrorKind.FATAL,
                    service=self.SERVICE_NAME,
                )
            try:
                audio_data = await client.post(
                    f"/text-to-speech/{voice_id}",
                    payload,
                    parse=read_audio_body,
                    headers={"Accept": "audio/mpeg"},
                    params={"output_format": OUTPUT_FORMAT},
                )
            except ServiceError as e:
                if e.status_code == 404 and e.kind is ErrorKind.FATAL:
                    logger.warning(f"ElevenLabs voice {voice_id} not found; trying next voice")
                    voices.mark_invalid(voice_id)
                    continue
                raise

            file_size = len(audio_data)
            return VoiceoverResult(
                success=True,
                audio_data=audio_data,
                file_size_bytes=file_size,
                duration_seconds=estimate_duration(file_size),
                voice_id=voice_id,
            )

    async def generate_voiceover(self, text: str, voices: Optional[CredentialPool] = None) -> VoiceoverResult:
        """
        Generate voiceover audio from text.

        Args:
            text: The script text to convert to speech
            voices: Voice pool to draw from; a fresh pool is built when omitted

        Returns:
            VoiceoverResult with audio_data (MP3 bytes) and metadata
        """
        if not self.api_keys:
            return VoiceoverResult(success=False, error="ElevenLabs API key not configured")

        if not text or not text.strip():
            return VoiceoverResult(success=False, error="Empty text provided")

        logger.info(f"Generating voiceover for {len(text)} chars of text...")
        try:
            result = await self._synthesize(text, voices or CredentialPool(self.voice_ids))
        except ServiceError as e:
            logger.error(f"ElevenLabs synthesis failed: {e}")
            return VoiceoverResult(success=False, error=str(e))

        logger.info(
            f"Voiceover generated: {result.file_size_bytes} bytes, "
            f"~{result.duration_seconds:.1f}s estimated duration"
        )
        return result

    async def synthesize_slides(self, deck: SlideDeck, output_dir: Path) -> NarrationResult:
        """
        Voice each slide headline in slide order, writing headline-{n}.mp3.

        Stops at the first failure: stitching needs every clip in order.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        voices = CredentialPool(self.voice_ids)
        narration = NarrationResult()

        for index, slide in enumerate(deck.slides, start=1):
            speech_text = " ".join(slide.headline.split())
            result = await self.generate_voiceover(speech_text, voices=voices)
            if not result.success:
                logger.warning(f"Voiceover disabled after failure on slide {index}: {result.error}")
                narration.failed_slide = index
                narration.error = result.error
                break

            file_path = output_dir / f"headline-{index}.mp3"
            file_path.write_bytes(result.audio_data)
            narration.clips.append(VoiceoverClip(
                index=index,
                text=speech_text,
                file_path=str(file_path),
                duration_seconds=round(result.duration_seconds, 2),
            ))

        return narration
