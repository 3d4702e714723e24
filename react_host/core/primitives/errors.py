"""
Exceptions raised inside the ReAct loop.

Every failure the orchestrator knows how to render derives from
:class:`ReActError`, so callers can catch the whole family at once.
"""

from __future__ import annotations


class ReActError(RuntimeError):
    """Base class for failures surfaced by the host agent loop."""


class ParseFailure(ReActError):
    """The model output lacked a usable action or final answer."""


class CapabilityNotFound(ReActError):
    """No enabled remote agent matches the requested agent name."""


class SkillNotFound(ReActError):
    """The remote agent exists but does not advertise the requested skill."""


class RemoteCallFailed(ReActError):
    """The remote agent call failed or answered with an error object."""


class SubscriptionError(ReActError):
    """The completion stream reported a transport-level failure."""


class SubscriptionTimeout(SubscriptionError):
    """The completion stream did not terminate within its time budget."""
