"""
api/dialogflow_es.py

Turn transport for Dialogflow ES fulfillment webhooks.

The adapter reads the detected action, payload and input contexts from a
validated WebhookRequest, collects everything the engine writes during the
turn, and renders it back as a WebhookResponse. Contexts are addressed by
their short name inside the engine and by their full resource name
(`<session path>/contexts/<name>`) on the wire.
"""

import re
from typing import Any, Dict, List, Optional

from core.contexts import Context
from core.transport import TurnTransport
from shared.models import (
    EventInput,
    FulfillmentMessage,
    OutputContext,
    TextMessage,
    WebhookRequest,
    WebhookResponse,
)

CONTEXTS_SEGMENT = '/contexts/'

_LOCATION_SEGMENT = re.compile(r'/locations/[^/]+')


def clean_up_session_path(session_path: str) -> str:
    """
    Normalize a session resource path.

    Regional agents send `projects/p/locations/<region>/agent/sessions/s`; output
    contexts must be addressed without the location segment.
    """
    return _LOCATION_SEGMENT.sub('', session_path or '')


def context_short_name(full_name: str) -> str:
    """`projects/p/agent/sessions/s/contexts/name` -> `name`."""
    if CONTEXTS_SEGMENT in full_name:
        return full_name.rsplit(CONTEXTS_SEGMENT, 1)[-1]
    return full_name


class DialogflowEsTransport(TurnTransport):
    """Request-scoped transport over one Dialogflow ES fulfillment request."""

    def __init__(self, request: WebhookRequest):
        self.request = request
        self.session_path = clean_up_session_path(request.session)
        self._session_id = self.session_path.rstrip('/').rsplit('/', 1)[-1]

        self._contexts: Dict[str, Context] = {}
        for output_context in request.queryResult.outputContexts:
            name = context_short_name(output_context.name)
            self._contexts[name] = Context(
                name=name,
                lifespan=output_context.lifespanCount,
                parameters=dict(output_context.parameters),
            )

        self._written: Dict[str, Context] = {}
        self._deleted: List[str] = []
        self._messages: List[str] = []
        self._followup_event: Optional[str] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    def get_detected_action(self) -> str:
        return self.request.queryResult.action

    def get_payload(self) -> Dict[str, Any]:
        return self.request.originalDetectIntentRequest.payload

    def get_default_response_text(self) -> str:
        query_result = self.request.queryResult
        if query_result.fulfillmentText:
            return query_result.fulfillmentText
        for message in query_result.fulfillmentMessages:
            if message.text and message.text.text:
                return message.text.text[0]
        return ''

    def get_query_parameters(self) -> Dict[str, Any]:
        return self.request.queryResult.parameters

    def get_query_text(self) -> str:
        return self.request.queryResult.queryText

    def add_response_text(self, text: str) -> None:
        self._messages.append(text)

    def raise_followup_event(self, name: str) -> None:
        self._followup_event = name

    def get_context(self, name: str) -> Optional[Context]:
        if name in self._deleted:
            return None
        return self._written.get(name) or self._contexts.get(name)

    def set_context(self, context: Context) -> None:
        if context.name in self._deleted:
            self._deleted.remove(context.name)
        self._written[context.name] = context

    def delete_context(self, name: str) -> None:
        self._written.pop(name, None)
        if name not in self._deleted:
            self._deleted.append(name)

    @property
    def followup_event(self) -> Optional[str]:
        return self._followup_event

    @property
    def messages(self) -> List[str]:
        return list(self._messages)

    def full_context_name(self, name: str) -> str:
        return f"{self.session_path}{CONTEXTS_SEGMENT}{name}"

    def build_response(self) -> WebhookResponse:
        """Render the contexts, utterances and follow-up event produced during the turn."""
        output_contexts = [
            OutputContext(
                name=self.full_context_name(context.name),
                lifespanCount=context.lifespan,
                parameters=dict(context.parameters),
            )
            for context in self._written.values()
        ]
        output_contexts.extend(
            OutputContext(name=self.full_context_name(name), lifespanCount=0)
            for name in self._deleted
        )

        followup = None
        if self._followup_event:
            followup = EventInput(
                name=self._followup_event,
                languageCode=self.request.queryResult.languageCode,
            )

        texts = [text for text in self._messages if text]
        return WebhookResponse(
            fulfillmentText=' '.join(texts),
            fulfillmentMessages=[FulfillmentMessage(text=TextMessage(text=[text])) for text in texts],
            outputContexts=output_contexts,
            followupEventInput=followup,
        )
