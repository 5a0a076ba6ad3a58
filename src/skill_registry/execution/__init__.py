"""Execution helpers: bounded link validation and its retry policy."""

from skill_registry.execution.link_validator import HttpLinkChecker, LinkChecker, LinkValidator
from skill_registry.execution.retry import ConstantBackoff, RetryStrategy

__all__ = [
    "ConstantBackoff",
    "HttpLinkChecker",
    "LinkChecker",
    "LinkValidator",
    "RetryStrategy",
]
