"""Lazily evaluated, awaitable pipeline tasks."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


class Arity(StrEnum):
    """Whether a chain works on every detected face or only the best one."""

    ALL = "all"
    SINGLE = "single"


class ComposableTask(Generic[T]):
    """A pipeline stage that runs when awaited.

    Building a chain only links tasks together; no work happens until the
    last task is awaited (or its ``run()`` is awaited explicitly).
    """

    async def run(self) -> T:
        raise NotImplementedError(f"{type(self).__name__}.run is not implemented")

    def __await__(self) -> Generator[Any, None, T]:
        return self.run().__await__()
