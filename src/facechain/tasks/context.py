"""Dependencies shared by every task in a chain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from facechain.ml.extraction import extract_faces

if TYPE_CHECKING:
    from facechain.config import Settings
    from facechain.ml.extraction import Extractor
    from facechain.ml.inference import InferencePool
    from facechain.ml.nets import Nets


@dataclass(frozen=True)
class PipelineContext:
    """Backends, scheduling and extraction passed down a task chain."""

    nets: Nets
    pool: InferencePool
    settings: Settings
    extract: Extractor = extract_faces
