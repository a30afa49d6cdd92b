"""Capability schemas - the functions advertised to the model."""

from typing import Any, Dict, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

ParameterType = Literal["string", "number", "integer", "boolean", "array", "object", "any"]


class ParameterSpec(BaseModel):
    """Declared type and default for one capability parameter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: ParameterType = Field("any", description="Declared value type")
    required: bool = Field(False, description="Whether the model must supply the value")
    default: Any = Field(None, description="Value used when the model omits the field")
    description: str = Field("", description="Shown to the model in the prompt")
    target_reference: bool = Field(
        False, alias="targetReference", description="Field names a player or entity; 'null' means no target"
    )


class Capability(BaseModel):
    """A named, schema-described action the agent can perform."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique capability key, also the function name")
    description: str = Field("", description="What the capability does")
    command: str = Field("", description="Human readable command phrase")
    parameters: Dict[str, ParameterSpec] = Field(default_factory=dict)
    examples: Tuple[str, ...] = Field(default_factory=tuple, description="Example phrasings for prompts")

    def defaults(self) -> Dict[str, Any]:
        """Default value of every declared parameter"""
        return {name: spec.default for name, spec in self.parameters.items()}

    def to_function_definition(self) -> Dict[str, Any]:
        """Function definition in the shape the prompt advertises"""
        properties = {}
        for name, spec in self.parameters.items():
            prop: Dict[str, Any] = {"type": spec.type}
            if spec.description:
                prop["description"] = spec.description
            if spec.default is not None:
                prop["default"] = spec.default
            properties[name] = prop
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": [name for name, spec in self.parameters.items() if spec.required],
            },
        }


class CapabilityDocument(BaseModel):
    """The externally loaded document describing the bot."""

    model_config = ConfigDict(frozen=True)

    name: str = Field("TreeBot", description="Bot persona name used in prompts")
    description: str = Field("", description="Bot persona description used in prompts")
    capabilities: Dict[str, Capability] = Field(default_factory=dict)
    responses: Dict[str, List[str]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def fill_capability_names(cls, data: Any) -> Any:
        """Allow capabilities keyed by name without repeating the name"""
        if isinstance(data, dict) and isinstance(data.get("capabilities"), dict):
            capabilities = {}
            for key, value in data["capabilities"].items():
                if isinstance(value, dict):
                    value = {"name": key, **value}
                    if value["name"] != key:
                        raise ValueError(f"Capability key '{key}' does not match its name '{value['name']}'")
                capabilities[key] = value
            data = {**data, "capabilities": capabilities}
        return data
