"""Calendar assistant route."""

from __future__ import annotations

import logging

from aiohttp import web
from pydantic import ValidationError

from studysync.api.routes.common import BadRequest, error_response, read_json_object
from studysync.domain.assistant import AssistantAction, CalendarAssistant
from studysync.exceptions import AssistantActionError, EventValidationError

logger = logging.getLogger(__name__)


def register_assistant_routes(app: web.Application, assistant: CalendarAssistant) -> None:
    """Register the assistant action endpoint."""

    async def run_assistant(request: web.Request) -> web.Response:
        """Execute ``{"action": {...}}`` or a model reply ``{"message": "..."}``.

        An optional ``choice`` (proceed, reschedule, cancel) settles an
        ``add_event`` that previously came back as a conflict.
        """
        try:
            data = await read_json_object(request)
        except BadRequest as e:
            return error_response(str(e))

        raw_action = data.get("action")
        message = data.get("message")
        choice = data.get("choice")

        try:
            if isinstance(raw_action, dict):
                action = AssistantAction.model_validate(raw_action)
                if choice:
                    outcome = assistant.resolve(action, choice)
                else:
                    outcome = assistant.execute(action)
            elif isinstance(message, str) and message.strip():
                outcome = assistant.handle_reply(message)
            else:
                return error_response("provide an action object or a message")
        except ValidationError as e:
            return error_response(f"invalid action: {e.error_count()} error(s)")
        except (AssistantActionError, EventValidationError) as e:
            return error_response(str(e))

        logger.debug("Assistant outcome: %s", outcome.status.value)
        return web.json_response(outcome.to_api_dict())

    app.router.add_post("/api/assistant", run_assistant)

    logger.debug("Assistant routes registered")
