"""Trace context passed explicitly through reconciliation calls."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Any

__all__ = ["TraceContext", "generate_trace_id"]


def generate_trace_id() -> str:
    """Generate a 32-character hex trace identifier."""
    return secrets.token_hex(16)


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Read-only trace metadata for one tool invocation.

    Attributes
    ----------
    trace_id : str
        Correlation identifier shared by logs, reports and errors.
    tool : str | None
        Name of the active tool or command.
    policy_decision_id : str | None
        Identifier of the policy decision that admitted the call.
    masked_fields : tuple[str, ...]
        Field names whose values must not appear in outputs.
    """

    trace_id: str
    tool: str | None = None
    policy_decision_id: str | None = None
    masked_fields: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def new(
        cls,
        tool: str | None = None,
        *,
        policy_decision_id: str | None = None,
        masked_fields: tuple[str, ...] = (),
    ) -> TraceContext:
        """Create a context with a freshly generated trace id."""
        return cls(
            trace_id=generate_trace_id(),
            tool=tool,
            policy_decision_id=policy_decision_id,
            masked_fields=tuple(masked_fields),
        )

    def is_masked(self, field_name: str) -> bool:
        """Return True when *field_name* must be hidden from outputs."""
        return field_name in self.masked_fields

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "trace_id": self.trace_id,
            "tool": self.tool,
            "policy_decision_id": self.policy_decision_id,
            "masked_fields": list(self.masked_fields),
        }
