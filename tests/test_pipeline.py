"""Tests for the snip pipeline and the live loop controller."""

import asyncio
import itertools
from unittest.mock import MagicMock

import numpy as np
import pytest

from subsnip.capture.convert import encode_png
from subsnip.dispatch import QUOTA_NOTICE
from subsnip.live import LoopState
from subsnip.models import CaptureError, CropRegion, NoticeKind, OCRError

from conftest import FakeCapture, make_frame

SUBTITLE_REGION = CropRegion(0.1, 0.7, 0.8, 0.2)


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def _spy(sink):
    sink.on_frame = MagicMock(wraps=sink.on_frame)
    sink.on_result = MagicMock(wraps=sink.on_result)
    return sink


class TestSnip:
    """Tests for one-shot snips."""

    def test_network_ocr_pairs_with_ai_translation(self, pipeline, engines, sink, capture):
        """A successful network OCR is translated by the AI backend and recorded."""
        network, local, ai, free = engines

        result = asyncio.run(pipeline.snip("screen:1", SUBTITLE_REGION))

        assert result.extracted_text == "Hello world"
        assert result.translated_text == "Xin chào thế giới"
        assert result.used_local_ocr is False
        ai.translate.assert_awaited_once_with("Hello world", "Vietnamese", "gemini-2.5-flash")
        free.translate.assert_not_awaited()
        local.recognize.assert_not_awaited()
        assert sink.history.items == [result]
        assert capture.closed == capture.handles

    def test_quota_error_falls_back_to_local_and_free(self, pipeline, engines, sink):
        """A quota failure switches to local OCR, free translation and a notice."""
        network, local, ai, free = engines
        network.recognize.side_effect = OCRError("429 RESOURCE_EXHAUSTED: quota exceeded")

        result = asyncio.run(pipeline.snip("screen:1", SUBTITLE_REGION))

        assert result.used_local_ocr is True
        assert result.translated_text == "Xin chào thế giới"
        free.translate.assert_awaited_once_with("Hello world", "vi")
        ai.translate.assert_not_awaited()
        assert sink.notices == [(NoticeKind.QUOTA, QUOTA_NOTICE)]

    def test_other_network_failure_falls_back_without_notice(self, pipeline, engines, sink):
        """Non-quota failures still fall back but raise no notice."""
        network, local, ai, free = engines
        network.recognize.side_effect = OCRError("connection reset")

        result = asyncio.run(pipeline.snip("screen:1"))

        assert result.used_local_ocr is True
        free.translate.assert_awaited_once()
        assert sink.notices == []

    def test_empty_text_is_still_recorded(self, pipeline, engines, sink):
        """A snip with no text publishes an empty result without translating."""
        network, local, ai, free = engines
        network.recognize.return_value = ""

        result = asyncio.run(pipeline.snip("screen:1"))

        assert result.extracted_text == ""
        assert result.translated_text == ""
        ai.translate.assert_not_awaited()
        assert len(sink.history) == 1

    def test_auto_translate_off_skips_translation(self, pipeline, engines, config):
        """With auto_translate disabled only OCR runs."""
        network, local, ai, free = engines
        config.auto_translate = False

        result = asyncio.run(pipeline.snip("screen:1"))

        assert result.extracted_text == "Hello world"
        assert result.translated_text == ""
        ai.translate.assert_not_awaited()

    def test_translation_failure_yields_empty_translation(self, pipeline, engines):
        """A failing translator leaves the OCR result intact."""
        network, local, ai, free = engines
        ai.translate.side_effect = RuntimeError("boom")

        result = asyncio.run(pipeline.snip("screen:1"))

        assert result.extracted_text == "Hello world"
        assert result.translated_text == ""

    def test_crop_is_applied_before_ocr(self, pipeline, sink):
        """The displayed image is the cropped region."""
        asyncio.run(pipeline.snip("screen:1", CropRegion(0.0, 0.5, 0.5, 0.5)))

        assert sink.current_image.shape == (180, 320, 4)

    def test_capture_error_raises_notice(self, config, engines, sink):
        """A source that cannot be opened surfaces a capture notice."""
        from subsnip.pipeline import Pipeline

        network, local, ai, free = engines
        pipeline = Pipeline(config, FakeCapture(open_error="Monitor 3 not found"), network, local, ai, free, sink)

        with pytest.raises(CaptureError):
            asyncio.run(pipeline.snip("screen:3"))

        assert sink.notices == [(NoticeKind.CAPTURE, "Monitor 3 not found")]
        network.recognize.assert_not_awaited()

    def test_source_without_frames_times_out(self, config, engines, sink):
        """A source that never becomes ready fails and is released."""
        from subsnip.pipeline import Pipeline

        network, local, ai, free = engines
        capture = FakeCapture(frame=np.zeros((0, 0, 4), dtype=np.uint8))
        pipeline = Pipeline(config, capture, network, local, ai, free, sink)

        with pytest.raises(CaptureError, match="Timed out"):
            asyncio.run(pipeline.snip("screen:1"))

        assert capture.closed == capture.handles

    def test_snip_file(self, pipeline, sink, tmp_path):
        """An image file runs through the same snip path."""
        path = tmp_path / "shot.png"
        path.write_bytes(encode_png(make_frame(200, 100)))

        result = asyncio.run(pipeline.snip_file(path))

        assert result.extracted_text == "Hello world"
        assert result.image.shape == (100, 200, 4)
        assert len(sink.history) == 1

    def test_retranslate_follows_ocr_path(self, pipeline, engines, config):
        """Re-translating uses the free backend for locally recognized text."""
        network, local, ai, free = engines
        network.recognize.side_effect = OCRError("quota")
        result = asyncio.run(pipeline.snip("screen:1"))
        config.target_language = "English"
        free.translate.return_value = "Hello world"

        translated = asyncio.run(pipeline.retranslate(result))

        assert translated == "Hello world"
        assert result.translated_text == "Hello world"
        free.translate.assert_awaited_with("Hello world", "en")


class TestLiveSetup:
    """Tests for the live controller state machine."""

    def test_setup_confirm_start_stop(self, pipeline, capture):
        """The controller walks IDLE -> SETTING_UP -> LIVE -> IDLE."""
        controller = pipeline.live

        async def scenario():
            assert controller.state is LoopState.IDLE
            still = await controller.begin_setup("screen:1")
            assert still.shape == (360, 640, 4)
            assert controller.state is LoopState.SETTING_UP

            controller.confirm_region(SUBTITLE_REGION)
            controller.start()
            assert controller.state is LoopState.LIVE

            await controller.aclose()

        asyncio.run(scenario())

        assert controller.state is LoopState.IDLE
        assert controller.session.region is None
        assert controller.session.source_id is None
        assert capture.closed == capture.handles

    def test_start_requires_region(self, pipeline):
        """Starting without a confirmed region is rejected."""
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            with pytest.raises(RuntimeError):
                controller.start()
            controller.stop()

        asyncio.run(scenario())

    def test_confirm_rejects_empty_region(self, pipeline):
        """A region with no area cannot be confirmed."""
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            with pytest.raises(ValueError):
                controller.confirm_region(CropRegion(0.2, 0.2, 0.0, 0.5))
            controller.stop()

        asyncio.run(scenario())

    def test_setup_capture_error_returns_to_idle(self, config, engines, sink):
        """A failing source during setup leaves the controller idle."""
        from subsnip.pipeline import Pipeline

        network, local, ai, free = engines
        pipeline = Pipeline(config, FakeCapture(open_error="Screen capture unavailable"), network, local, ai, free, sink)

        with pytest.raises(CaptureError):
            asyncio.run(pipeline.live.begin_setup("screen:1"))

        assert pipeline.live.state is LoopState.IDLE
        assert sink.notices == [(NoticeKind.CAPTURE, "Screen capture unavailable")]

    def test_stop_is_idempotent(self, pipeline, capture):
        """Stopping twice releases the source once."""
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.stop()
            controller.stop()

        asyncio.run(scenario())
        controller.stop()

        assert len(capture.closed) == 1
        assert controller.state is LoopState.IDLE

    def test_tick_outside_live_does_nothing(self, pipeline, engines):
        """tick() is a no-op unless live mode is running."""
        network, local, ai, free = engines

        assert asyncio.run(pipeline.live.tick()) is None
        local.recognize.assert_not_awaited()


class TestLiveLoop:
    """Tests for live sampling ticks."""

    def _run_live(self, pipeline, region, until):
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.confirm_region(region)
            controller.start()
            try:
                await _wait_for(until)
            finally:
                await controller.aclose()

        asyncio.run(scenario())

    def test_unchanged_text_is_translated_once(self, pipeline, engines, sink):
        """Repeated identical text skips translation but keeps the image fresh."""
        network, local, ai, free = engines
        _spy(sink)

        self._run_live(pipeline, SUBTITLE_REGION, lambda: local.recognize.await_count >= 4)

        free.translate.assert_awaited_once_with("Hello world", "vi")
        ai.translate.assert_not_awaited()
        network.recognize.assert_not_awaited()
        assert sink.on_result.call_count == 1
        assert sink.on_frame.call_count >= 4
        assert len(sink.history) == 0
        assert sink.current_result.used_local_ocr is True

    def test_changed_text_is_translated_again(self, pipeline, engines, sink):
        """Each new line of text gets its own translation."""
        network, local, ai, free = engines
        texts = itertools.chain(["First line", "First line"], itertools.repeat("Second line"))
        local.recognize.side_effect = lambda image, model=None: next(texts)
        free.translate.side_effect = lambda text, code: f"vi:{text}"

        self._run_live(pipeline, SUBTITLE_REGION, lambda: local.recognize.await_count >= 5)

        translated = [call.args[0] for call in free.translate.await_args_list]
        assert translated == ["First line", "Second line"]
        assert sink.current_result.translated_text == "vi:Second line"

    def test_short_text_is_noise(self, pipeline, engines, sink):
        """Single characters in live mode are dropped before translation."""
        network, local, ai, free = engines
        local.recognize.return_value = "a"
        _spy(sink)

        self._run_live(pipeline, SUBTITLE_REGION, lambda: local.recognize.await_count >= 2)

        free.translate.assert_not_awaited()
        sink.on_result.assert_not_called()

    def test_empty_crop_skips_tick(self, pipeline, engines, sink):
        """A region narrower than a pixel never reaches OCR."""
        network, local, ai, free = engines
        _spy(sink)
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.confirm_region(CropRegion(0.5, 0.0, 0.0001, 1.0))
            controller.start()
            await asyncio.sleep(0.1)
            assert controller.state is LoopState.LIVE
            await controller.aclose()

        asyncio.run(scenario())

        local.recognize.assert_not_awaited()
        sink.on_frame.assert_not_called()
        sink.on_result.assert_not_called()

    def test_failed_source_stops_loop(self, pipeline, capture, sink):
        """A capture failure mid-loop returns to idle with a notice."""
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.confirm_region(SUBTITLE_REGION)
            controller.start()
            capture.handles[0].failed = True
            await _wait_for(lambda: controller.state is LoopState.IDLE)

        asyncio.run(scenario())

        assert [kind for kind, _ in sink.notices] == [NoticeKind.CAPTURE]
        assert capture.closed == capture.handles

    def test_ocr_failure_does_not_stop_loop(self, pipeline, engines, sink):
        """Local OCR errors yield empty text and the loop keeps sampling."""
        network, local, ai, free = engines
        local.recognize.side_effect = OCRError("tesseract crashed")

        self._run_live(pipeline, SUBTITLE_REGION, lambda: local.recognize.await_count >= 3)

        free.translate.assert_not_awaited()
        assert sink.notices == []

    def test_stop_while_ocr_pending_publishes_nothing(self, pipeline, engines, sink):
        """Stopping during an in-flight tick discards its result."""
        network, local, ai, free = engines
        entered = asyncio.Event()
        gate = asyncio.Event()

        async def slow_recognize(image, model=None):
            entered.set()
            await gate.wait()
            return "Hello world"

        local.recognize.side_effect = slow_recognize
        _spy(sink)
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.confirm_region(SUBTITLE_REGION)
            controller.start()
            await asyncio.wait_for(entered.wait(), 1.0)
            controller.stop()
            gate.set()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())

        sink.on_result.assert_not_called()
        free.translate.assert_not_awaited()
        assert controller.state is LoopState.IDLE
        assert controller.session.last_text == ""

    def test_stale_tick_cannot_publish(self, pipeline, engines, sink, config):
        """A tick resumed after stop() writes neither cache nor sink."""
        network, local, ai, free = engines
        config.live_interval = 10.0
        entered = asyncio.Event()
        gate = asyncio.Event()
        calls = []

        async def recognize(image, model=None):
            if calls:
                entered.set()
                await gate.wait()
                return "Later text"
            calls.append(1)
            return "First text"

        local.recognize.side_effect = recognize
        _spy(sink)
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.confirm_region(SUBTITLE_REGION)
            controller.start()
            await _wait_for(lambda: sink.on_result.call_count == 1)

            pending = asyncio.create_task(controller.tick())
            await asyncio.wait_for(entered.wait(), 1.0)
            controller.stop()
            gate.set()
            return await pending

        assert asyncio.run(scenario()) is None
        assert sink.on_result.call_count == 1
        assert free.translate.await_count == 1
        assert controller.session.last_text == ""

    def test_snip_stops_live_mode(self, pipeline, capture):
        """Taking a snip releases the live session first."""
        controller = pipeline.live

        async def scenario():
            await controller.begin_setup("screen:1")
            controller.confirm_region(SUBTITLE_REGION)
            controller.start()
            await pipeline.snip("screen:1")

        asyncio.run(scenario())

        assert controller.state is LoopState.IDLE
        assert len(capture.closed) == 2
