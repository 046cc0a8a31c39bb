"""Shared machinery for the per-face stages of a chain.

Every stage computes on a list of parent results. For ``Arity.SINGLE``
chains the parent's optional result is wrapped into a list of zero or one
element on the way in and unwrapped on the way out, so one stage class
serves both arities. An empty parent short-circuits: no extraction and no
backend call happen.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar, cast

from facechain.tasks.composable import Arity, ComposableTask
from facechain.tasks.compute import extract_all_faces_and_compute_results

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from facechain.faces import FaceResult
    from facechain.ml.extraction import FaceCrop
    from facechain.ml.media import MediaInput
    from facechain.tasks.context import PipelineContext

logger = logging.getLogger(__name__)

TResults = TypeVar("TResults")


async def resolve_parent(parent: object) -> Any:
    """Await ``parent`` if it is a task or other awaitable, otherwise return it as-is."""
    if inspect.isawaitable(parent):
        return await parent
    return parent


class FaceTask(ComposableTask[TResults], Generic[TResults]):
    """A stage that crops every parent face, runs one backend on it and extends the result.

    Subclasses name the stage, the ``Nets`` slot and backend method they use,
    the settings field holding the backend's input size, and how a backend
    prediction extends a ``FaceResult``. They also define the chaining
    methods that are valid after them.
    """

    stage: ClassVar[str]
    net_slot: ClassVar[str]
    predict_method: ClassVar[str]
    size_setting: ClassVar[str]

    def __init__(
        self,
        parent: ComposableTask[Any] | Awaitable[Any] | Sequence[FaceResult] | FaceResult | None,
        media: MediaInput,
        context: PipelineContext,
        arity: Arity,
        extracted_faces: Sequence[FaceCrop] | None = None,
        *,
        net_slot: str | None = None,
    ) -> None:
        self._parent = parent
        self._media = media
        self._context = context
        self._arity = arity
        self._extracted_faces = extracted_faces
        self._net = context.nets.require(net_slot or self.net_slot)

    @property
    def arity(self) -> Arity:
        return self._arity

    async def run(self) -> TResults:
        parent_results = await self._parent_results()
        if not parent_results:
            logger.debug("%s - no faces from parent, skipping", self.stage)
            return self._unwrap([])
        logger.debug("%s - processing %d face(s)", self.stage, len(parent_results))
        return self._unwrap(await self.compute(parent_results))

    async def compute(self, parent_results: list[FaceResult]) -> list[FaceResult]:
        predict = getattr(self._net, self.predict_method)
        predictions = await extract_all_faces_and_compute_results(
            parent_results,
            self._media,
            lambda faces: self._context.pool.map(predict, faces, stage=self.stage),
            self._extracted_faces,
            size=getattr(self._context.settings, self.size_setting),
            extract=self._context.extract,
            stage=self.stage,
        )
        return [self.extend(result, prediction) for result, prediction in zip(parent_results, predictions, strict=True)]

    def extend(self, parent_result: FaceResult, prediction: Any) -> FaceResult:
        raise NotImplementedError

    async def _parent_results(self) -> list[FaceResult]:
        value = await resolve_parent(self._parent)
        if self._arity is Arity.SINGLE:
            return [] if value is None else [value]
        return list(value)

    def _unwrap(self, results: list[FaceResult]) -> TResults:
        if self._arity is Arity.SINGLE:
            return cast("TResults", results[0] if results else None)
        return cast("TResults", results)
