"""
Execution context handed to every directive for every batch.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .store import TransientStore


IS_LAST_PROPERTY = "isLast"


class Environment(Enum):
    """Where the pipeline is running."""
    SERVICE = "service"
    TRANSFORM = "transform"
    MICROSERVICE = "microservice"
    TESTING = "testing"

    @classmethod
    def parse(cls, value: str) -> "Environment":
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(e.value for e in cls)
            raise ValueError(f"Unknown environment '{value}'. Valid values: {valid}") from None


@dataclass
class ExecutorContext:
    """Execution context for one batch."""
    environment: Environment = Environment.TRANSFORM
    store: TransientStore = field(default_factory=TransientStore)
    properties: Dict[str, str] = field(default_factory=dict)
    name: str = "default"

    @property
    def is_last(self) -> bool:
        """
        True for the final batch of the input stream.

        In the TESTING environment every invocation counts as the last one.
        """
        if self.environment is Environment.TESTING:
            return True
        flag: Optional[str] = self.properties.get(IS_LAST_PROPERTY)
        return flag is not None and str(flag).lower() == "true"

    def get_property(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.properties.get(name, default)
