# skill_engine/errors.py


class SkillGraphError(Exception):
    """Base class for every failure the skill graph engine reports."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class NotFound(SkillGraphError):
    """A referenced graph, node, center or starting label does not exist.

    Carries diagnostic context (for example the label the oracle asked for
    and every label that was available) so callers can surface it as-is.
    """


class BadOracleResponse(SkillGraphError):
    """The oracle output was not parseable or did not match the expected shape."""


class LockedNode(SkillGraphError):
    """EXP was requested for a node that is still locked."""


class UpstreamUnavailable(SkillGraphError):
    """The oracle is rate-limited or overloaded; the caller may retry later."""


class StoreError(SkillGraphError):
    """A single graph store read or write failed."""
