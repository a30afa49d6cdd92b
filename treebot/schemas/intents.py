"""Resolved intent schema - the output of intent resolution."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


class IntentKind(str, Enum):
    CONVERSATIONAL = "conversational"
    COMMAND = "command"
    UNPARSABLE = "unparsable"


class ResolvedIntent(BaseModel):
    """Either a dispatchable command or plain conversation."""

    kind: IntentKind
    text: str = Field("", description="Original model text")
    capability_name: Optional[str] = Field(None, description="Registered capability for commands")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Coerced parameters with defaults")
    issuer: Optional[str] = Field(None, description="Who asked for the command")
    reason: Optional[str] = Field(None, description="Why resolution was unparsable")

    @model_validator(mode="after")
    def check_command_has_capability(self) -> "ResolvedIntent":
        if self.kind is IntentKind.COMMAND and not self.capability_name:
            raise ValueError("Command intents need a capability_name")
        return self

    @property
    def is_command(self) -> bool:
        return self.kind is IntentKind.COMMAND

    @classmethod
    def conversational(cls, text: str) -> "ResolvedIntent":
        return cls(kind=IntentKind.CONVERSATIONAL, text=text)

    @classmethod
    def unparsable(cls, text: str, reason: str) -> "ResolvedIntent":
        return cls(kind=IntentKind.UNPARSABLE, text=text, reason=reason)

    @classmethod
    def command(
        cls, capability_name: str, parameters: Dict[str, Any], issuer: Optional[str] = None, text: str = ""
    ) -> "ResolvedIntent":
        return cls(
            kind=IntentKind.COMMAND,
            text=text,
            capability_name=capability_name,
            parameters=parameters,
            issuer=issuer,
        )
