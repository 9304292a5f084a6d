"""
Concurrent fan-out/fan-in for report sub-queries.

Every sub-query settles into an Outcome (a value or an error). Nothing is
used until all of them have settled; the caller then decides per outcome
whether to fall back or to abort the report.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional


@dataclass(frozen=True)
class Outcome:
    """Result of one sub-query."""
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value or re-raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value

    def value_or(self, default: Any) -> Any:
        return self.value if self.error is None else default


async def gather_outcomes(*aws: Awaitable[Any]) -> List[Outcome]:
    """Run awaitables concurrently and wait for all of them to settle.

    Exceptions are captured per awaitable. Cancellation is not: it
    propagates as usual.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    outcomes = []
    for result in results:
        if isinstance(result, Exception):
            outcomes.append(Outcome(error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(Outcome(value=result))
    return outcomes
