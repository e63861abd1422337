"""Live loop controller: timer-driven sampling of a screen region.

State machine:

    IDLE --begin_setup()--> SETTING_UP --start()--> LIVE --stop()--> IDLE

Capture failures in SETTING_UP or LIVE return the controller to IDLE.
"""

import asyncio
import time
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from . import log
from .capture import FrameHandle, wait_for_frame
from .capture.convert import encode_png
from .dispatch import is_noise
from .models import CaptureError, CropRegion, Mode, NoticeKind, PipelineResult
from .preprocess import preprocess

if TYPE_CHECKING:
    from .pipeline import Pipeline

logger = log.get_logger()

# Never sleep less than this between ticks, even after a slow one (seconds)
MIN_TICK_SLEEP = 0.05


class LoopState(Enum):
    IDLE = "idle"
    SETTING_UP = "setting_up"
    LIVE = "live"


class PipelineSession:
    """Everything owned by the active capture session.

    Only the controller mutates it. ``generation`` changes on every reset,
    so work started under an older generation can tell it is stale.
    """

    def __init__(self):
        self.source_id: str | None = None
        self.handle: FrameHandle | None = None
        self.region: CropRegion | None = None
        # Dedup cache: last recognized live text
        self.last_text: str = ""
        self.generation = 0

    def reset(self) -> None:
        self.source_id = None
        self.handle = None
        self.region = None
        self.last_text = ""
        self.generation += 1


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class LiveLoopController:
    """Samples the selected region on a fixed cadence and publishes results.

    Ticks never overlap: the sampling task awaits each tick, then sleeps
    for whatever is left of the interval.
    """

    def __init__(self, pipeline: "Pipeline"):
        self._pipeline = pipeline
        self._session = PipelineSession()
        self._state = LoopState.IDLE
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.LIVE

    @property
    def session(self) -> PipelineSession:
        return self._session

    async def begin_setup(self, source_id: str) -> NDArray[np.uint8]:
        """Open a capture source and grab the still used for region selection.

        Any previous session is released first.

        Returns:
            Still frame (BGRA).

        Raises:
            CaptureError: If the source cannot be opened or yields no frames.
        """
        self.stop()
        config = self._pipeline.config
        capture = self._pipeline.capture

        self._state = LoopState.SETTING_UP
        generation = self._session.generation
        try:
            handle = capture.open_source(source_id)
            self._session.source_id = source_id
            self._session.handle = handle
            still = await wait_for_frame(
                capture,
                handle,
                timeout=config.capture_timeout,
                settle=config.capture_settle,
            )
        except CaptureError as e:
            if self._session.generation == generation:
                self._fail(e)
            raise

        logger.info("live setup ready", source=source_id, size=f"{still.shape[1]}x{still.shape[0]}")
        return still

    def confirm_region(self, region: CropRegion) -> None:
        """Set the region to sample.

        Raises:
            RuntimeError: If no source is being set up.
            ValueError: If the region has no area.
        """
        if self._state is not LoopState.SETTING_UP:
            raise RuntimeError(f"Cannot confirm a region while {self._state.value}")
        if region.is_empty:
            raise ValueError(f"Region has no area: {region}")
        self._session.region = region

    def start(self) -> None:
        """Enter live mode and schedule the sampling task.

        Must be called from inside a running event loop.

        Raises:
            RuntimeError: If the source or region is missing.
        """
        if self._state is LoopState.LIVE:
            return
        session = self._session
        if self._state is not LoopState.SETTING_UP or session.handle is None or session.region is None:
            raise RuntimeError("Live mode needs a capture source and a confirmed region")

        self._state = LoopState.LIVE
        self._task = asyncio.get_running_loop().create_task(
            self._run(session.generation), name="live-loop"
        )
        logger.info(
            "live mode started",
            source=session.source_id,
            interval=self._pipeline.config.live_interval,
        )

    def stop(self) -> None:
        """Leave live mode and release the capture source.

        Idempotent and synchronous; safe to call from teardown code. Any
        in-flight tick is cancelled and can no longer publish.
        """
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        session = self._session
        handle = session.handle
        was_active = self._state is not LoopState.IDLE
        session.reset()
        self._state = LoopState.IDLE

        if handle is not None:
            try:
                self._pipeline.capture.close(handle)
            except Exception as e:
                logger.warning("failed to release capture source", err=str(e))

        if was_active:
            logger.info("live mode stopped")

    async def aclose(self) -> None:
        """Stop and wait for the sampling task to finish."""
        task = self._task
        self.stop()
        if task is not None and task is not _current_task():
            await asyncio.gather(task, return_exceptions=True)

    async def tick(self) -> PipelineResult | None:
        """Run one sample: crop, OCR, dedup, translate, publish.

        Returns:
            The published result, or None if the tick was skipped or the
            text was unchanged.

        Raises:
            CaptureError: If the capture source has failed.
        """
        if self._state is not LoopState.LIVE:
            return None

        session = self._session
        generation = session.generation
        handle = session.handle
        config = self._pipeline.config
        sink = self._pipeline.sink

        if handle.failed:
            raise CaptureError(f"Capture source {session.source_id} stopped producing frames")
        if not handle.is_ready():
            logger.debug("frame source not ready, skipping tick")
            return None
        frame = handle.get_frame()
        if frame is None or frame.size == 0:
            return None

        image = preprocess(
            frame,
            session.region,
            upscale_factor=config.upscale_factor,
            isolate=config.isolate_subtitles,
            limit=config.isolation_limit,
        )
        if image is None:
            logger.debug("empty crop, skipping tick")
            return None

        settings = self._pipeline.config.settings()
        ocr_start = time.perf_counter()
        extraction = await self._pipeline.ocr.extract(encode_png(image), Mode.LIVE)
        ocr_ms = int((time.perf_counter() - ocr_start) * 1000)
        if session.generation != generation:
            return None

        text = extraction.text.strip()
        if is_noise(text, history_worthy=False, min_length=config.min_text_length) or text == session.last_text:
            logger.debug("text unchanged or too short, skipping translation", ocr_ms=ocr_ms)
            sink.on_frame(image)
            return None

        translate_start = time.perf_counter()
        translated = await self._pipeline.translation.translate(
            text,
            settings.target_language,
            Mode.LIVE,
            extraction.used_fallback,
            settings.ai_model,
        )
        translate_ms = int((time.perf_counter() - translate_start) * 1000)
        if session.generation != generation:
            return None

        session.last_text = text
        result = PipelineResult(
            image=image,
            extracted_text=text,
            translated_text=translated,
            used_local_ocr=True,
        )
        sink.on_frame(image)
        sink.on_result(result, history_worthy=False)
        logger.debug("tick complete", ocr_ms=ocr_ms, translate_ms=translate_ms)
        return result

    async def _run(self, generation: int) -> None:
        """Sampling task: tick, then sleep out the rest of the interval."""
        logger.debug("live loop running")
        while self._session.generation == generation and self._state is LoopState.LIVE:
            t0 = time.monotonic()
            try:
                await self.tick()
            except CaptureError as e:
                self._fail(e)
                break
            except Exception as e:
                logger.error("live tick failed", err=str(e))

            elapsed = time.monotonic() - t0
            await asyncio.sleep(max(MIN_TICK_SLEEP, self._pipeline.config.live_interval - elapsed))
        logger.debug("live loop exited")

    def _fail(self, error: CaptureError) -> None:
        logger.error("capture failed", source=self._session.source_id, err=str(error))
        self._pipeline.sink.on_notice(NoticeKind.CAPTURE, str(error))
        self.stop()
