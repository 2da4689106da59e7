"""Slack Bolt wiring: turns inbound Slack signals into controller calls.

Listeners registered on the ``AsyncApp``:
	file_shared            -> JobLifecycleController.handle_file_shared
	confirm_job (button)   -> handle_confirm
	cancel_job (button)    -> handle_cancel
	preview_job (button)   -> handle_preview
	reaction_added         -> handle_reaction
	message                -> no-op (file shares also arrive as messages)

Buttons are acknowledged before any work so Slack's 3 second deadline is met;
the controller then runs in the background task Bolt schedules. Payloads are
parsed with the pydantic schemas in ``paynotify.models.schemas``; a payload
that does not validate is logged and dropped.

Running the bot:
	Set SLACK_BOT_TOKEN and SLACK_SIGNING_SECRET; the FastAPI lifespan then
	builds the app and mounts it on POST /slack/events.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError
from slack_bolt.async_app import AsyncApp

from paynotify.config import SLACK_SETTINGS
from paynotify.models.enums import JobAction
from paynotify.models.schemas import FileSharedEvent, JobActionEvent, ReactionEvent
from paynotify.services.lifecycle import JobLifecycleController
from paynotify.utils import get_logger

logger = get_logger(__name__)


def slack_configured() -> bool:
	return bool(SLACK_SETTINGS.get("bot_token") and SLACK_SETTINGS.get("signing_secret"))


def build_slack_app(*, token: Optional[str] = None, signing_secret: Optional[str] = None) -> AsyncApp:
	return AsyncApp(
		token=token or SLACK_SETTINGS["bot_token"],
		signing_secret=signing_secret or SLACK_SETTINGS["signing_secret"],
	)


# ------------------------------- Listeners -------------------------------- #

async def on_file_shared(controller: JobLifecycleController, event: dict[str, Any]) -> None:
	try:
		signal = FileSharedEvent.from_slack(event)
	except ValidationError as e:
		logger.warning("Ignoring malformed file_shared event", errors=e.errors())
		return
	await controller.handle_file_shared(signal)


async def on_job_action(controller: JobLifecycleController, body: dict[str, Any]) -> None:
	try:
		action = JobActionEvent.from_slack(body)
	except (ValidationError, ValueError) as e:
		logger.warning("Ignoring malformed job action", error=str(e))
		return
	if action.action_id is JobAction.CONFIRM:
		await controller.handle_confirm(action)
	elif action.action_id is JobAction.CANCEL:
		await controller.handle_cancel(action)
	else:
		await controller.handle_preview(action)


async def on_reaction_added(controller: JobLifecycleController, event: dict[str, Any]) -> None:
	try:
		signal = ReactionEvent.from_slack(event)
	except ValidationError as e:
		logger.warning("Ignoring malformed reaction event", errors=e.errors())
		return
	await controller.handle_reaction(signal)


def register_handlers(app: AsyncApp, controller: JobLifecycleController) -> AsyncApp:
	@app.event("file_shared")
	async def handle_file_shared(event):  # pragma: no cover - exercised through Slack
		await on_file_shared(controller, event)

	async def handle_job_action(ack, body):  # pragma: no cover - exercised through Slack
		await ack()
		await on_job_action(controller, body)

	for action in JobAction:
		app.action(action.value)(handle_job_action)

	@app.event("reaction_added")
	async def handle_reaction_added(event):  # pragma: no cover - exercised through Slack
		await on_reaction_added(controller, event)

	@app.event("message")
	async def handle_message(event):  # pragma: no cover
		return None

	logger.info("Slack listeners registered", actions=[a.value for a in JobAction])
	return app


__all__ = [
	"slack_configured",
	"build_slack_app",
	"register_handlers",
	"on_file_shared",
	"on_job_action",
	"on_reaction_added",
]
