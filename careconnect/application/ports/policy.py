from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str  # patient | doctor | admin


class PolicyEngine(Protocol):
    def authorize(self, actor: Actor, action: str, resource: Any) -> bool:
        ...
