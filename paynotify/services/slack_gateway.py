"""Messaging gateway: the only place that talks to the Slack Web API.

The controller and dispatcher depend on the ``MessagingGateway`` protocol so
tests can substitute a fake. ``SlackGateway`` implements it with
``slack_sdk``'s ``AsyncWebClient`` and downloads private files with
``aiohttp`` using the bot token as a bearer credential.

Error mapping:
 - chat.postMessage / chat.update failures -> ExternalSendError
 - files.info failures, non-2xx downloads, network errors -> ArtifactDownloadError
 - views.open failures propagate as ExternalSendError; callers log them.
 - transport errors (connection resets, timeouts) are mapped the same way.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from paynotify.config import JOB_SETTINGS
from paynotify.errors import ArtifactDownloadError, ExternalSendError
from paynotify.utils import get_logger

logger = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024

# Raised by the aiohttp transport under AsyncWebClient
_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)


@dataclass(slots=True)
class ArtifactInfo:
	file_id: str
	filetype: str
	name: Optional[str]
	download_url: Optional[str]


class MessagingGateway(Protocol):
	async def fetch_file_info(self, file_id: str) -> ArtifactInfo: ...
	async def download_file(self, url: str, dest: Path) -> None: ...
	async def post_message(self, channel: str, text: str, blocks: Optional[list[dict]] = None) -> str: ...
	async def update_message(self, channel: str, ts: str, text: str, blocks: Optional[list[dict]] = None) -> None: ...
	async def open_modal(self, trigger_id: str, view: dict) -> None: ...


def _slack_error_code(exc: SlackApiError) -> Any:
	return exc.response.get("error") if getattr(exc, "response", None) else str(exc)


class SlackGateway:
	def __init__(self, client: AsyncWebClient, *, bot_token: Optional[str] = None) -> None:
		self.client = client
		self._bot_token = bot_token or client.token
		self._download_timeout = float(JOB_SETTINGS.get("download_timeout_seconds", 30))  # type: ignore[arg-type]

	async def fetch_file_info(self, file_id: str) -> ArtifactInfo:
		try:
			response = await self.client.files_info(file=file_id)
		except SlackApiError as exc:
			raise ArtifactDownloadError(f"files.info failed: {_slack_error_code(exc)}") from exc
		file = response.get("file") or {}
		return ArtifactInfo(
			file_id=file_id,
			filetype=str(file.get("filetype") or "").lower(),
			name=file.get("name"),
			download_url=file.get("url_private_download") or file.get("url_private"),
		)

	async def download_file(self, url: str, dest: Path) -> None:
		"""Stream the file at ``url`` into ``dest``."""
		if not self._bot_token:
			raise ArtifactDownloadError("SLACK_BOT_TOKEN not configured")
		headers = {"Authorization": f"Bearer {self._bot_token}"}
		timeout = aiohttp.ClientTimeout(total=self._download_timeout)
		dest.parent.mkdir(parents=True, exist_ok=True)
		try:
			async with aiohttp.ClientSession(timeout=timeout) as session:
				async with session.get(url, headers=headers) as resp:
					if not 200 <= resp.status < 300:
						raise ArtifactDownloadError(f"Download failed with HTTP {resp.status}")
					with open(dest, "wb") as fh:
						async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
							fh.write(chunk)
		except _TRANSPORT_ERRORS as exc:
			raise ArtifactDownloadError(f"Download failed: {exc!r}") from exc
		logger.info("Artifact downloaded", dest=str(dest))

	async def post_message(self, channel: str, text: str, blocks: Optional[list[dict]] = None) -> str:
		try:
			response = await self.client.chat_postMessage(channel=channel, text=text, blocks=blocks)
		except SlackApiError as exc:
			raise ExternalSendError(f"chat.postMessage failed: {_slack_error_code(exc)}") from exc
		except _TRANSPORT_ERRORS as exc:
			raise ExternalSendError(f"chat.postMessage failed: {exc!r}") from exc
		return str(response["ts"])

	async def update_message(self, channel: str, ts: str, text: str, blocks: Optional[list[dict]] = None) -> None:
		try:
			await self.client.chat_update(channel=channel, ts=ts, text=text, blocks=blocks or [])
		except SlackApiError as exc:
			raise ExternalSendError(f"chat.update failed: {_slack_error_code(exc)}") from exc
		except _TRANSPORT_ERRORS as exc:
			raise ExternalSendError(f"chat.update failed: {exc!r}") from exc

	async def open_modal(self, trigger_id: str, view: dict) -> None:
		try:
			await self.client.views_open(trigger_id=trigger_id, view=view)
		except SlackApiError as exc:
			raise ExternalSendError(f"views.open failed: {_slack_error_code(exc)}") from exc
		except _TRANSPORT_ERRORS as exc:
			raise ExternalSendError(f"views.open failed: {exc!r}") from exc


__all__ = ["ArtifactInfo", "MessagingGateway", "SlackGateway"]
