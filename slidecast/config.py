import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic_settings import BaseSettings

# Built-in fallback pools, used only when nothing else is configured
DEFAULT_LONGCAT_KEYS: tuple = ()
DEFAULT_ELEVENLABS_VOICE_IDS: tuple = ("pqHfZKP75CvOlQylNhV4",)  # George


class Settings(BaseSettings):
    # LongCat completion service (OpenAI-compatible chat endpoint)
    LONGCAT_API_KEYS: str = ""
    LONGCAT_API_KEY: str = ""
    LONGCAT_API_BASE: str = "https://api.longcat.chat"
    LONGCAT_MODEL: str = "LongCat-Flash-Chat"
    LONGCAT_TIMEOUT: float = 90.0
    LONGCAT_CONNECT_TIMEOUT: float = 15.0
    LONGCAT_MAX_ATTEMPTS: int = 3
    LONGCAT_PROXY: str = ""

    # ElevenLabs TTS settings
    ELEVENLABS_API_KEYS: str = ""
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_VOICE_IDS: str = ""
    ELEVENLABS_VOICE_ID: str = ""
    ELEVENLABS_MODEL_ID: str = "eleven_multilingual_v2"
    ELEVENLABS_TIMEOUT: float = 70.0

    # Source text larger than this is clamped before summarization
    MAX_SOURCE_CHARS: int = 20000

    LOG_LEVEL: str = "INFO"

    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent
    UPLOADS_DIR: Path = BASE_DIR / "uploads"
    OUTPUTS_DIR: Path = BASE_DIR / "outputs"

    class Config:
        env_file = ".env"

    def longcat_keys(self, explicit: Union[str, Iterable[str], None] = None) -> List[str]:
        return resolve_credentials(
            explicit,
            env_list=self.LONGCAT_API_KEYS,
            env_single=self.LONGCAT_API_KEY,
            defaults=DEFAULT_LONGCAT_KEYS,
        )

    def elevenlabs_keys(self, explicit: Union[str, Iterable[str], None] = None) -> List[str]:
        return resolve_credentials(
            explicit,
            env_list=self.ELEVENLABS_API_KEYS,
            env_single=self.ELEVENLABS_API_KEY,
        )

    def elevenlabs_voices(self, explicit: Union[str, Iterable[str], None] = None) -> List[str]:
        return resolve_credentials(
            explicit,
            env_list=self.ELEVENLABS_VOICE_IDS,
            env_single=self.ELEVENLABS_VOICE_ID,
            defaults=DEFAULT_ELEVENLABS_VOICE_IDS,
        )


_ENUMERATION_PREFIX = re.compile(r"^[0-9]+\.")


def sanitize_credential(value: Optional[str]) -> str:
    """Trim a configured credential and drop a leading "1." style list marker."""
    if not value:
        return ""
    cleaned = str(value).strip()
    return _ENUMERATION_PREFIX.sub("", cleaned).strip()


def parse_credential_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    entries = re.split(r"[\s,;]+", str(value))
    return [c for c in (sanitize_credential(e) for e in entries) if c]


def resolve_credentials(
    explicit: Union[str, Iterable[str], None] = None,
    env_list: Optional[str] = None,
    env_single: Optional[str] = None,
    defaults: Iterable[str] = (),
) -> List[str]:
    """
    Merge every configured credential source into one ordered list.

    Priority order is explicit argument, environment list, environment
    single value, then the built-in defaults. Duplicates keep their first
    position so higher-priority sources are always tried first.
    """
    ordered: List[str] = []

    def add(value: Optional[str]) -> None:
        cleaned = sanitize_credential(value)
        if cleaned and cleaned not in ordered:
            ordered.append(cleaned)

    if isinstance(explicit, str):
        for entry in parse_credential_list(explicit):
            add(entry)
    elif explicit is not None:
        for entry in explicit:
            add(entry)

    for entry in parse_credential_list(env_list):
        add(entry)
    add(env_single)

    for entry in defaults:
        add(entry)

    return ordered


settings = Settings()
