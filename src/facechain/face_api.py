"""Entry point for building face pipelines.

Example::

    api = FaceApi(nets)
    results = await api.detect_all_faces(image).with_face_landmarks().with_face_descriptors()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Self

from facechain.config import get_settings
from facechain.matching import FaceMatcher
from facechain.ml.extraction import extract_faces
from facechain.ml.inference import InferencePool
from facechain.ml.media import to_media
from facechain.tasks import Arity, DetectFacesTask, PipelineContext

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from facechain.config import Settings
    from facechain.faces import FaceDetection, FaceResult
    from facechain.geometry import Box
    from facechain.ml.extraction import Extractor, FaceCrop
    from facechain.ml.nets import Nets

logger = logging.getLogger(__name__)


class FaceApi:
    """Binds a set of backends to an inference pool and starts task chains.

    Args:
        nets: Backends to use. Stages whose slot is empty cannot be chained.
        settings: Defaults for confidence, crop sizes and concurrency
            (``get_settings()`` if omitted).
        pool: Inference pool to share. When omitted the API creates one and
            shuts it down in ``shutdown()``.
        extract: Crop extractor used by every stage.
    """

    def __init__(
        self,
        nets: Nets,
        settings: Settings | None = None,
        pool: InferencePool | None = None,
        extract: Extractor = extract_faces,
    ) -> None:
        self._settings = settings or get_settings()
        self._owns_pool = pool is None
        self._pool = pool or InferencePool(self._settings)
        self._context = PipelineContext(nets=nets, pool=self._pool, settings=self._settings, extract=extract)

    @property
    def context(self) -> PipelineContext:
        return self._context

    @property
    def nets(self) -> Nets:
        return self._context.nets

    def detect_all_faces(
        self,
        source: object,
        min_confidence: float | None = None,
    ) -> DetectFacesTask[list[FaceDetection], list[FaceResult]]:
        """Start a chain over every face in ``source`` (array, PIL image or media object)."""
        return DetectFacesTask(to_media(source), self._context, Arity.ALL, min_confidence)

    def detect_single_face(
        self,
        source: object,
        min_confidence: float | None = None,
    ) -> DetectFacesTask[FaceDetection | None, FaceResult | None]:
        """Start a chain over the highest-scoring face in ``source``."""
        return DetectFacesTask(to_media(source), self._context, Arity.SINGLE, min_confidence)

    async def extract_faces(
        self,
        source: object,
        regions: Sequence[Box | FaceDetection],
        size: int | None = None,
    ) -> list[FaceCrop]:
        """Crop ``regions`` out of ``source``. The caller must dispose the crops."""
        return await self._context.extract(to_media(source), regions, size)

    def create_face_matcher(self, reference: object, distance_threshold: float | None = None) -> FaceMatcher:
        """Build a ``FaceMatcher`` over ``reference``, defaulting to ``face_match_threshold``."""
        threshold = self._settings.face_match_threshold if distance_threshold is None else distance_threshold
        return FaceMatcher(reference, threshold)

    def shutdown(self) -> None:
        if self._owns_pool:
            self._pool.shutdown()
            logger.debug("FaceApi inference pool shut down")

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()
