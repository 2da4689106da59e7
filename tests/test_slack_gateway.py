import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from slack_sdk.errors import SlackApiError

from paynotify.errors import ArtifactDownloadError, ExternalSendError
from paynotify.services.slack_gateway import SlackGateway


def _client():
    client = MagicMock()
    client.token = "xoxb-test"
    client.chat_postMessage = AsyncMock(return_value={"ok": True, "ts": "1700000000.000001"})
    client.chat_update = AsyncMock(return_value={"ok": True})
    client.views_open = AsyncMock(return_value={"ok": True})
    client.files_info = AsyncMock(return_value={
        "ok": True,
        "file": {"filetype": "CSV", "name": "pay.csv", "url_private_download": "https://files/F1"},
    })
    return client


def _api_error(code):
    return SlackApiError("request failed", {"ok": False, "error": code})


def test_post_message_returns_ts():
    client = _client()
    ts = asyncio.run(SlackGateway(client).post_message("U1", "hi"))
    assert ts == "1700000000.000001"
    client.chat_postMessage.assert_awaited_once_with(channel="U1", text="hi", blocks=None)


def test_send_errors_mapped():
    client = _client()
    client.chat_postMessage.side_effect = _api_error("channel_not_found")
    client.chat_update.side_effect = _api_error("message_not_found")
    client.views_open.side_effect = _api_error("expired_trigger_id")
    gateway = SlackGateway(client)

    with pytest.raises(ExternalSendError, match="channel_not_found"):
        asyncio.run(gateway.post_message("U1", "hi"))
    with pytest.raises(ExternalSendError, match="message_not_found"):
        asyncio.run(gateway.update_message("C1", "1.0", "hi"))
    with pytest.raises(ExternalSendError, match="expired_trigger_id"):
        asyncio.run(gateway.open_modal("trigger", {"type": "modal"}))


def test_update_clears_blocks_by_default():
    client = _client()
    asyncio.run(SlackGateway(client).update_message("C1", "1.0", "done"))
    client.chat_update.assert_awaited_once_with(channel="C1", ts="1.0", text="done", blocks=[])


def test_file_info_normalised():
    info = asyncio.run(SlackGateway(_client()).fetch_file_info("F1"))
    assert info.filetype == "csv"
    assert info.name == "pay.csv"
    assert info.download_url == "https://files/F1"


def test_file_info_error_is_download_error():
    client = _client()
    client.files_info.side_effect = _api_error("file_not_found")
    with pytest.raises(ArtifactDownloadError, match="file_not_found"):
        asyncio.run(SlackGateway(client).fetch_file_info("F1"))


def test_download_requires_token(tmp_path):
    client = _client()
    client.token = None
    with pytest.raises(ArtifactDownloadError):
        asyncio.run(SlackGateway(client).download_file("https://files/F1", tmp_path / "F1.csv"))


@pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("reset"), asyncio.TimeoutError(), ConnectionResetError()])
def test_transport_errors_mapped(error):
    client = _client()
    client.chat_postMessage.side_effect = error
    client.chat_update.side_effect = error
    client.views_open.side_effect = error
    gateway = SlackGateway(client)

    with pytest.raises(ExternalSendError, match="chat.postMessage"):
        asyncio.run(gateway.post_message("U1", "hi"))
    with pytest.raises(ExternalSendError, match="chat.update"):
        asyncio.run(gateway.update_message("C1", "1.0", "hi"))
    with pytest.raises(ExternalSendError, match="views.open"):
        asyncio.run(gateway.open_modal("trigger", {"type": "modal"}))


def test_download_timeout_mid_stream_is_download_error(tmp_path):
    async def _chunks(size):
        yield b"Slack User,Name"
        raise asyncio.TimeoutError()

    resp = MagicMock()
    resp.status = 200
    resp.__aenter__.return_value = resp
    resp.content.iter_chunked = _chunks
    session = MagicMock()
    session.__aenter__.return_value = session
    session.get.return_value = resp

    with patch("aiohttp.ClientSession", return_value=session):
        with pytest.raises(ArtifactDownloadError, match="TimeoutError"):
            asyncio.run(SlackGateway(_client()).download_file("https://files/F1", tmp_path / "F1.csv"))
