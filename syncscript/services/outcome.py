from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class WriteOutcome(Generic[T]):
    """
    Result of a mutation: the committed record plus the best-effort side
    effects (``audit``, ``cache``, ``broadcast``, ``metadata``) that degraded.
    """
    record: T
    degraded: List[str] = field(default_factory=list)
    
    def note(self, side_effect: str, succeeded: bool) -> bool:
        if not succeeded and side_effect not in self.degraded:
            self.degraded.append(side_effect)
        return succeeded
    
    @property
    def fully_applied(self) -> bool:
        return not self.degraded
    
    def log_degraded(self, operation: str) -> None:
        if self.degraded:
            logger.warning(f"{operation} committed with degraded side effects: {', '.join(self.degraded)}")
