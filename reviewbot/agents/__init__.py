from reviewbot.agents.retry import BoundedRetry, MAX_ATTEMPTS
from reviewbot.agents.reviewer import RequestContext, ReviewClient, parse_review_message

__all__ = [
    "BoundedRetry",
    "MAX_ATTEMPTS",
    "RequestContext",
    "ReviewClient",
    "parse_review_message",
]
