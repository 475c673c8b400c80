"""Media capability: speech synthesis and media upload through a helper service."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, runtime_checkable

import aiohttp

from .config import MediaConfig

logger = logging.getLogger(__name__)


class MediaServiceError(Exception):
    """The media helper service failed or answered with an error."""


@runtime_checkable
class MediaService(Protocol):
    """What card builders need from a media backend."""

    async def upload(self, file_name: str) -> bool:
        ...

    async def synthesize(self, lang: str, text: str, sentences: Optional[Sequence[str]] = None) -> Optional[str]:
        ...


class HttpMediaService:
    """
    Client for the local media helper.

    ``POST {base_url}/anki/upload`` copies a vault file into the Anki media
    folder; ``POST {base_url}/audio/generate`` renders speech and answers with
    the generated ``file_name``. Both raise :class:`MediaServiceError` on
    transport errors and non-success responses.

    Use as an async context manager or call :meth:`close` when done.
    """

    def __init__(self, config: MediaConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpMediaService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _host_paths(self) -> Dict[str, str]:
        return {"anki_dir": self.config.anki_dir, "obsidian_dir": self.config.obsidian_dir}

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._get_session()
        url = f"{self.config.base_url}{path}"
        try:
            async with session.post(url, json=payload) as response:
                if response.status != 200:
                    error = await response.text()
                    raise MediaServiceError(f"{url} answered {response.status}: {error[:200]}")
                return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise MediaServiceError(f"{url} timed out") from e
        except aiohttp.ClientError as e:
            raise MediaServiceError(f"{url} unreachable: {e}") from e

    async def upload(self, file_name: str) -> bool:
        await self._post("/anki/upload", {"file_name": file_name, **self._host_paths()})
        logger.debug(f"Uploaded {file_name}")
        return True

    async def synthesize(self, lang: str, text: str, sentences: Optional[Sequence[str]] = None) -> Optional[str]:
        payload: Dict[str, Any] = {"lang": lang, "text": text, **self._host_paths()}
        if sentences:
            payload["sentences"] = list(sentences)
        data = await self._post("/audio/generate", payload)
        file_name = data.get("file_name") if isinstance(data, dict) else None
        if not file_name:
            raise MediaServiceError(f"speech response for '{text[:40]}' carried no file_name")
        return file_name


def default_front_audio(deck: str) -> bool:
    return "-PL" in deck or "Sent" in deck or "PL" not in deck or "Mati" in deck


def default_back_audio(deck: str) -> bool:
    return deck.startswith("PL-") or "Mati" in deck


@dataclass
class AudioPolicy:
    """Deck-name predicates deciding which sides of an inline card get speech."""
    front: Callable[[str], bool] = field(default=default_front_audio)
    back: Callable[[str], bool] = field(default=default_back_audio)
