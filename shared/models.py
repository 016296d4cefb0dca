"""
shared/models.py

Common data models and type definitions used across the engine and the API layer.

This module contains two groups of structures:
- EngineSettings: the names and constants the orchestrator needs (session context
  name, canonical sequence names, follow-up event names), resolved once from
  configuration and injected into the engine.
- Dialogflow ES fulfillment models: pydantic schemas for the webhook request the
  intent-detection service posts to us and for the response we send back.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field

@dataclass(frozen=True)
class EngineSettings:
    """
    Names and constants that shape orchestration behaviour.

    The engine never reads the global configuration directly; an EngineSettings
    instance is built once (normally with `from_config`) and handed to the
    orchestrator, which shares it with every turn.
    """
    session_context_name: str = 'sessionprops'
    context_lifespan: int = 99
    welcome_sequence: str = 'welcome'
    root_sequence: str = 'reasonforcontact'
    auth_sequence: str = 'authentication'
    offer_agent_event: str = 'OfferSpeakToAgent'
    escalate_agent_event: str = 'EscalateToAgent'
    voice_channel: str = 'phone'

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'EngineSettings':
        """
        Build settings from the loaded configuration dictionary.

        Missing keys fall back to the dataclass defaults so partial test
        configurations stay usable.

        Args:
            config (Dict[str, Any]): The application CONFIG dictionary.

        Returns:
            EngineSettings: The resolved settings.
        """
        contexts = config.get('contexts', {})
        sequences = config.get('sequences', {})
        events = config.get('events', {})
        channels = config.get('channels', {})
        return cls(
            session_context_name=contexts.get('session_context_name', cls.session_context_name),
            context_lifespan=int(contexts.get('default_lifespan', cls.context_lifespan)),
            welcome_sequence=sequences.get('welcome', cls.welcome_sequence),
            root_sequence=sequences.get('root', cls.root_sequence),
            auth_sequence=sequences.get('authentication', cls.auth_sequence),
            offer_agent_event=events.get('offer_agent', cls.offer_agent_event),
            escalate_agent_event=events.get('escalate_agent', cls.escalate_agent_event),
            voice_channel=channels.get('voice', cls.voice_channel),
        )

# --- Dialogflow ES fulfillment request ---

class TextMessage(BaseModel):
    text: List[str] = Field(default_factory=list)

class FulfillmentMessage(BaseModel):
    text: Optional[TextMessage] = None

class OutputContext(BaseModel):
    """A context as it travels on the wire: full resource name, lifespan and parameters."""
    name: str
    lifespanCount: int = 0
    parameters: Dict[str, Any] = Field(default_factory=dict)

class MatchedIntent(BaseModel):
    name: Optional[str] = None
    displayName: Optional[str] = None

class QueryResult(BaseModel):
    queryText: str = ""
    action: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)
    fulfillmentText: str = ""
    fulfillmentMessages: List[FulfillmentMessage] = Field(default_factory=list)
    outputContexts: List[OutputContext] = Field(default_factory=list)
    intent: Optional[MatchedIntent] = None
    languageCode: str = "en"

class OriginalDetectIntentRequest(BaseModel):
    source: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

class WebhookRequest(BaseModel):
    """
    Validate the fulfillment request posted by Dialogflow ES (or a compatible client).

    Only the fields the engine consumes are modelled; unknown fields are ignored
    so newer agent versions do not break parsing.
    """
    responseId: Optional[str] = None
    session: str = Field(..., description="Session resource path, e.g. projects/p/agent/sessions/abc")
    queryResult: QueryResult = Field(default_factory=QueryResult)
    originalDetectIntentRequest: OriginalDetectIntentRequest = Field(default_factory=OriginalDetectIntentRequest)

# --- Dialogflow ES fulfillment response ---

class EventInput(BaseModel):
    name: str
    languageCode: str = "en"
    parameters: Dict[str, Any] = Field(default_factory=dict)

class WebhookResponse(BaseModel):
    """
    Fulfillment response returned to Dialogflow ES.

    `fulfillmentText` carries the joined response text, `fulfillmentMessages`
    the individual utterances, `outputContexts` every context written this turn
    (deleted contexts travel with lifespanCount 0), and `followupEventInput`
    the follow-up event when one was raised.
    """
    fulfillmentText: str = ""
    fulfillmentMessages: List[FulfillmentMessage] = Field(default_factory=list)
    outputContexts: List[OutputContext] = Field(default_factory=list)
    followupEventInput: Optional[EventInput] = None
