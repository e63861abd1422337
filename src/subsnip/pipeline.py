"""Snip pipeline: one still image through OCR and translation.

Also wires the backends, dispatchers and the live loop controller together.
"""

from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from . import log
from .backends.base import OCRBackend, TranslationBackend
from .capture import CaptureAdapter, wait_for_frame
from .capture.convert import decode_image, encode_png
from .config import Config
from .dispatch import OCRDispatcher, TranslationDispatcher, is_noise
from .history import ResultSink
from .live import LiveLoopController
from .models import CaptureError, CropRegion, Mode, NoticeKind, PipelineResult
from .preprocess import crop

logger = log.get_logger()


class Pipeline:
    """Capture → OCR → translation for snips, plus the live controller.

    Only one capture session exists at a time: starting a snip stops live
    mode and releases its source first.
    """

    def __init__(
        self,
        config: Config,
        capture: CaptureAdapter,
        network_ocr: OCRBackend,
        local_ocr: OCRBackend,
        ai_translator: TranslationBackend,
        free_translator: TranslationBackend,
        sink: ResultSink,
    ):
        self.config = config
        self.capture = capture
        self.sink = sink
        self.ocr = OCRDispatcher(
            network_ocr,
            local_ocr,
            on_quota=lambda message: sink.on_notice(NoticeKind.QUOTA, message),
        )
        self.translation = TranslationDispatcher(ai_translator, free_translator)
        self.live = LiveLoopController(self)

    @classmethod
    def create(cls, config: Config, sink: ResultSink, capture: CaptureAdapter | None = None) -> "Pipeline":
        """Build a pipeline with the default engines."""
        from .backends.ocr import GeminiOCRBackend, TesseractOCRBackend
        from .backends.translation import GeminiTranslationBackend, GoogleFreeTranslationBackend
        from .capture import ScreenCaptureAdapter

        network_ocr = GeminiOCRBackend(api_key=config.api_key)
        local_ocr = TesseractOCRBackend(languages=config.local_ocr_languages)
        ai_translator = GeminiTranslationBackend(api_key=config.api_key)
        free_translator = GoogleFreeTranslationBackend()

        logger.info(
            "engines",
            ocr=f"{network_ocr.get_info().name} -> {local_ocr.get_info().name}",
            translation=f"{ai_translator.get_info().name} / {free_translator.get_info().name}",
            model=config.ai_model,
        )
        if not config.api_key:
            logger.warning("no API key, snips will use local OCR")

        return cls(
            config=config,
            capture=capture or ScreenCaptureAdapter(),
            network_ocr=network_ocr,
            local_ocr=local_ocr,
            ai_translator=ai_translator,
            free_translator=free_translator,
            sink=sink,
        )

    async def snip(self, source_id: str, region: CropRegion | None = None) -> PipelineResult | None:
        """Grab a still from a source, crop it and process it.

        Args:
            source_id: Capture source to grab from.
            region: Part of the still to keep; whole frame when None.

        Returns:
            The result, or None if nothing was published.

        Raises:
            CaptureError: If the source cannot be captured.
        """
        self.live.stop()

        try:
            handle = self.capture.open_source(source_id)
            try:
                still = await wait_for_frame(
                    self.capture,
                    handle,
                    timeout=self.config.capture_timeout,
                    settle=self.config.capture_settle,
                )
            finally:
                self.capture.close(handle)
        except CaptureError as e:
            logger.error("snip capture failed", source=source_id, err=str(e))
            self.sink.on_notice(NoticeKind.CAPTURE, str(e))
            raise

        image = crop(still, region) if region is not None else still
        if image is None:
            logger.warning("snip region is empty", source=source_id)
            return None
        return await self.process_image(image)

    async def snip_file(self, path: str | Path) -> PipelineResult | None:
        """Process an image file as a snip."""
        data = Path(path).read_bytes()
        return await self.process_image(decode_image(data))

    async def process_image(
        self, image: NDArray[np.uint8], history_worthy: bool = True
    ) -> PipelineResult | None:
        """Run one still image through OCR and (optionally) translation.

        Args:
            image: BGRA image.
            history_worthy: Whether the result goes to history.

        Returns:
            The published result, or None if the text was discarded as noise.
        """
        settings = self.config.settings()
        self.sink.on_frame(image)

        extraction = await self.ocr.extract(encode_png(image), Mode.SNIP, settings.ai_model)
        text = extraction.text.strip()
        if is_noise(text, history_worthy, self.config.min_text_length):
            logger.debug("snip text discarded", chars=len(text))
            return None

        translated = ""
        if text and settings.auto_translate:
            translated = await self.translation.translate(
                text,
                settings.target_language,
                Mode.SNIP,
                extraction.used_fallback,
                settings.ai_model,
            )

        result = PipelineResult(
            image=image,
            extracted_text=text,
            translated_text=translated,
            used_local_ocr=extraction.used_fallback,
        )
        self.sink.on_result(result, history_worthy)
        return result

    async def retranslate(self, result: PipelineResult) -> str:
        """Translate a result's text again with the current settings.

        The translator follows the OCR path that produced the text.
        """
        settings = self.config.settings()
        translated = await self.translation.translate(
            result.extracted_text,
            settings.target_language,
            Mode.SNIP,
            result.used_local_ocr,
            settings.ai_model,
        )
        result.translated_text = translated
        return translated

    def close(self) -> None:
        """Stop live mode and release the capture source."""
        self.live.stop()
