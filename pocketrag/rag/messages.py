"""
Chat message type passed between the orchestrator and generative models.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Union

ROLES = ("user", "assistant", "system")


@dataclass
class Message:
    """One chat turn."""
    role: str  # "user", "assistant", or "system"
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


MessageInput = Union[str, Sequence[Union[Message, Dict[str, Any]]]]


def normalize_messages(input: MessageInput) -> List[Message]:
    """Turn a bare string or a list of messages/dicts into a list of Message."""
    if isinstance(input, str):
        return [Message(role="user", content=input)]
    return [m if isinstance(m, Message) else Message(role=m["role"], content=m.get("content") or "") for m in input]
