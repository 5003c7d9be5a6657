from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from labwise.normalization.models import AnalysisResult
from labwise.normalization.prompt_builder import Prompt
from labwise.processor.classifier import ExtractionStrategy
from labwise.processor.models import (
    ExtractedText,
    ExtractionMethod,
    TruncatedText,
    UploadedDocument,
)


class PipelineStage(str, Enum):
    CLASSIFYING = "classifying"
    EXTRACTING = "extracting"
    TRUNCATING = "truncating"
    PROMPTING = "prompting"
    COMPLETING = "completing"
    NORMALIZING = "normalizing"
    DONE = "done"


@dataclass(slots=True)
class PipelineContext:
    document: UploadedDocument
    stage: PipelineStage = PipelineStage.CLASSIFYING
    strategy: ExtractionStrategy | None = None
    analyze_image_directly: bool = False
    extraction_method: ExtractionMethod | None = None
    extracted: ExtractedText | None = None
    truncated: TruncatedText | None = None
    prompt: Prompt | None = None
    raw_response: str = ""
    result: AnalysisResult | None = None


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
