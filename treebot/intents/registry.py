"""
Capability Registry - the fixed table of intents the agent understands
"""
import json
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..config import DEFAULT_CAPABILITY_DOCUMENT
from ..errors import ConfigurationError
from ..logging_config import get_logger
from ..schemas.capability import Capability, CapabilityDocument

logger = get_logger(__name__)


class ResponseTemplateKind(str, Enum):
    """Template category used to acknowledge a command"""

    HARVESTING_START = "harvesting-start"
    GIVING_WOOD = "giving-wood"
    FOLLOWING = "following"
    ENGAGING = "engaging"
    STOPPING = "stopping"
    INVENTORY_REPORT = "inventory-report"
    UNRECOGNIZED = "unrecognized"


_TEMPLATE_KINDS: Dict[str, ResponseTemplateKind] = {
    "findTrees": ResponseTemplateKind.HARVESTING_START,
    "giveWood": ResponseTemplateKind.GIVING_WOOD,
    "followPlayer": ResponseTemplateKind.FOLLOWING,
    "engage": ResponseTemplateKind.ENGAGING,
    "stopAction": ResponseTemplateKind.STOPPING,
    "checkInventory": ResponseTemplateKind.INVENTORY_REPORT,
}


def response_template_kind(capability_name: Optional[str]) -> ResponseTemplateKind:
    """Map a capability name to its acknowledgement template category"""
    return _TEMPLATE_KINDS.get(capability_name or "", ResponseTemplateKind.UNRECOGNIZED)


class CapabilityRegistry:
    """Read-only lookup of capabilities by name, keeping document order for prompts"""

    def __init__(self, document: CapabilityDocument):
        self.document = document
        self._capabilities: Mapping[str, Capability] = MappingProxyType(dict(document.capabilities))
        self._ordered: Tuple[Capability, ...] = tuple(document.capabilities.values())
        logger.debug("Capability registry ready", capabilities=list(self._capabilities))

    def get(self, name: str) -> Optional[Capability]:
        return self._capabilities.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    @property
    def names(self) -> List[str]:
        return [capability.name for capability in self._ordered]

    @property
    def capabilities(self) -> Tuple[Capability, ...]:
        """Capabilities in the order they appear in the document"""
        return self._ordered

    @property
    def responses(self) -> Mapping[str, List[str]]:
        return self.document.responses

    def function_definitions(self) -> List[Dict[str, Any]]:
        return [capability.to_function_definition() for capability in self._ordered]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapabilityRegistry":
        try:
            return cls(CapabilityDocument.model_validate(data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid capability document: {e}") from e


def load_registry(path: Optional[Union[str, Path]] = None) -> CapabilityRegistry:
    """Load the capability document from disk

    Args:
        path: JSON document location; the packaged document when omitted

    Raises:
        ConfigurationError: if the file is missing, unreadable or invalid
    """
    document_path = Path(path) if path else DEFAULT_CAPABILITY_DOCUMENT
    try:
        with open(document_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read capability document {document_path}: {e}") from e

    registry = CapabilityRegistry.from_dict(data)
    logger.info("Loaded capability document", path=str(document_path), capabilities=registry.names)
    return registry
