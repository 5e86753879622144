"""Read-only status queries."""

from decider.queries.status import StatusQueries

__all__ = ["StatusQueries"]
