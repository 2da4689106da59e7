import asyncio
import sys
from pathlib import Path
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'paynotify' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from paynotify.database import Base  # type: ignore
from paynotify.errors import ArtifactDownloadError, ExternalSendError  # type: ignore
from paynotify.jobs.expiring_store import InMemoryExpiringStore  # type: ignore
from paynotify.jobs.job_store import InMemoryJobStore, SqlJobStore  # type: ignore
from paynotify.models.db import StagedJobRecord  # type: ignore
from paynotify.services.ack_tracker import AckTracker  # type: ignore
from paynotify.services.dispatcher import NotificationDispatcher  # type: ignore
from paynotify.services.lifecycle import JobLifecycleController  # type: ignore
from paynotify.services.slack_gateway import ArtifactInfo  # type: ignore

HEADER = ["Slack User", "Name", "Salary", "Absences", "Holidays Worked"]
ADMIN_CHANNEL = "CADMIN"
UPLOAD_CHANNEL = "CUPLOADS"


def make_csv(rows: list[list[str]], header: Optional[list[str]] = None, delimiter: str = ",") -> bytes:
    lines = [delimiter.join(header or HEADER)] + [delimiter.join(r) for r in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


class FakeGateway:
    """In-memory stand-in for the Slack Web API.

    Recipient / channel ids listed in ``fail_channels`` raise ExternalSendError
    on post; ``send_delay`` yields to the event loop on every post so racing
    handlers interleave.
    """

    def __init__(self) -> None:
        self.files: dict[str, tuple[ArtifactInfo, bytes]] = {}
        self.posts: list[dict] = []
        self.updates: list[dict] = []
        self.modals: list[dict] = []
        self.fail_channels: set[str] = set()
        self.fail_updates = False
        self.download_error: Optional[Exception] = None
        self.send_delay = 0.0
        self._ts = 0

    def add_file(self, file_id: str, content: bytes, *, filetype: str = "csv", name: str = "payroll.csv") -> None:
        info = ArtifactInfo(
            file_id=file_id,
            filetype=filetype,
            name=name,
            download_url=f"https://files.example/{file_id}",
        )
        self.files[file_id] = (info, content)

    async def fetch_file_info(self, file_id: str) -> ArtifactInfo:
        if file_id not in self.files:
            raise ArtifactDownloadError("files.info failed: file_not_found")
        return self.files[file_id][0]

    async def download_file(self, url: str, dest: Path) -> None:
        if self.download_error is not None:
            raise self.download_error
        file_id = url.rsplit("/", 1)[-1]
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.files[file_id][1])

    async def post_message(self, channel: str, text: str, blocks=None) -> str:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if channel in self.fail_channels:
            raise ExternalSendError("chat.postMessage failed: channel_not_found")
        self._ts += 1
        ts = f"1700000000.{self._ts:06d}"
        self.posts.append({"channel": channel, "text": text, "blocks": blocks, "ts": ts})
        return ts

    async def update_message(self, channel: str, ts: str, text: str, blocks=None) -> None:
        if self.fail_updates:
            raise ExternalSendError("chat.update failed: message_not_found")
        self.updates.append({"channel": channel, "ts": ts, "text": text, "blocks": blocks})

    async def open_modal(self, trigger_id: str, view: dict) -> None:
        self.modals.append({"trigger_id": trigger_id, "view": view})

    # ---------- inspection helpers ----------
    def posts_to(self, channel: str) -> list[dict]:
        return [p for p in self.posts if p["channel"] == channel]

    def direct_messages(self) -> list[dict]:
        return [p for p in self.posts if p["channel"].startswith("U")]


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def ack_store():
    return InMemoryExpiringStore(default_ttl=3600)


@pytest.fixture()
def processed_store():
    return InMemoryExpiringStore(default_ttl=3600)


@pytest.fixture()
def job_store():
    return InMemoryJobStore()


@pytest.fixture()
def ack_tracker(ack_store):
    return AckTracker(ack_store)


@pytest.fixture()
def dispatcher(gateway, ack_tracker):
    return NotificationDispatcher(gateway, ack_tracker)


@pytest.fixture()
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture()
def controller(gateway, job_store, dispatcher, ack_tracker, processed_store, upload_dir):
    return JobLifecycleController(
        gateway,
        job_store,
        dispatcher,
        ack_tracker,
        processed_store,
        upload_dir=upload_dir,
        admin_channel_id=ADMIN_CHANNEL,
        staged_job_ttl_hours=24,
        preview_rows=2,
    )


@pytest.fixture()
def sql_job_store(tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'jobs.db'}")
    Base.metadata.create_all(bind=engine, tables=[StagedJobRecord.__table__])
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlJobStore(session_factory=session_factory)
    engine.dispose()
