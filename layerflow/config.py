"""Configuration classes for layerflow components."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class MaxFlowConfig:
    """Configuration for the layered preflow max-flow loop."""

    # Upper bound on maximize/balance rounds. None leaves termination to the
    # flow snapshot comparison alone.
    max_rounds: Optional[int] = None

    def exceeded(self, rounds: int) -> bool:
        """Return True when ``rounds`` completed rounds go past the cap."""
        return self.max_rounds is not None and rounds > self.max_rounds


# Global configuration instance
MAXFLOW_CONFIG = MaxFlowConfig()
