"""Integration tests for the generation lifecycle with a fake image service."""

import asyncio
from dataclasses import replace
from io import BytesIO

import pytest
from PIL import Image

from streetgen.errors import ErrorKind, GenerationBusyError, QuotaExceededError
from streetgen.models.generation import (
    Error,
    FantasyLocation,
    GenerationRequest,
    Idle,
    Loading,
    RealWorldLocation,
    Success,
)
from streetgen.models.geo import FantasyPoint, GeoPoint
from streetgen.models.settings import AspectRatio, GenerationStyle, ImageSize
from streetgen.services.generation_service import GenerationOrchestrator


@pytest.fixture
def request_(sample_png):
    return GenerationRequest(
        location=RealWorldLocation(GeoPoint(latitude=48.8584, longitude=2.2945)),
        direction=45,
        source_image=sample_png,
        style=GenerationStyle.VINTAGE,
        aspect_ratio=AspectRatio.RATIO_4_3,
        image_size=ImageSize.SIZE_1K,
    )


def _states(orchestrator):
    seen = []
    orchestrator.state.subscribe(lambda state: seen.append(state))
    return seen


class TestGenerate:

    def test_success(self, orchestrator, fake_gemini, request_):
        seen = _states(orchestrator)

        state = asyncio.run(orchestrator.generate(request_, "key"))

        assert isinstance(state, Success)
        assert state.image_bytes == fake_gemini.image_bytes
        assert state.model == "fake-image-model"
        assert orchestrator.current_image == fake_gemini.image_bytes
        assert [type(s) for s in seen] == [Loading, Success]

        call = fake_gemini.calls[0]
        assert call["api_key"] == "key"
        assert call["aspect_ratio"] == AspectRatio.RATIO_4_3
        assert call["image_size"] == ImageSize.SIZE_1K
        assert "48.858400, 2.294500" in call["prompt"]
        assert call["reference_png"].startswith(b"\x89PNG")

    def test_reference_is_downscaled(self, fake_gemini, wide_png, request_):
        orchestrator = GenerationOrchestrator(fake_gemini, max_source_size=1024)
        asyncio.run(orchestrator.generate(replace(request_, source_image=wide_png), "key"))

        with Image.open(BytesIO(fake_gemini.calls[0]["reference_png"])) as img:
            assert img.size == (1024, 512)

    def test_fantasy_request(self, orchestrator, fake_gemini, sample_png):
        request = GenerationRequest(
            location=FantasyLocation("Narnia", "Talking lions", FantasyPoint(x_percent=0.2, y_percent=0.8)),
            direction=270,
            source_image=sample_png,
        )
        state = asyncio.run(orchestrator.generate(request, "key"))
        assert isinstance(state, Success)
        assert "Narnia" in fake_gemini.calls[0]["prompt"]
        assert "Talking lions" in fake_gemini.calls[0]["prompt"]

    @pytest.mark.parametrize("api_key", [None, "", "   "])
    def test_missing_key(self, orchestrator, fake_gemini, request_, api_key):
        state = asyncio.run(orchestrator.generate(request_, api_key))
        assert state == Error(ErrorKind.MISSING_CREDENTIAL, "Please set your API key in Settings")
        assert fake_gemini.calls == []

    def test_service_error_mapped(self, fake_gemini, request_):
        fake_gemini.error = QuotaExceededError()
        orchestrator = GenerationOrchestrator(fake_gemini)

        state = asyncio.run(orchestrator.generate(request_, "key"))

        assert isinstance(state, Error)
        assert state.kind == ErrorKind.QUOTA_EXCEEDED
        assert orchestrator.current_image is None

    def test_unexpected_error(self, fake_gemini, request_):
        fake_gemini.error = RuntimeError("boom")
        state = asyncio.run(GenerationOrchestrator(fake_gemini).generate(request_, "key"))
        assert state == Error(ErrorKind.UNKNOWN, "boom")

    def test_undecodable_source(self, orchestrator, fake_gemini, request_):
        state = asyncio.run(orchestrator.generate(replace(request_, source_image=b"junk"), "key"))
        assert isinstance(state, Error)
        assert state.kind == ErrorKind.UNKNOWN
        assert fake_gemini.calls == []


class TestConcurrency:
    """Test single-flight, cancellation and stale results."""

    def test_busy(self, orchestrator, fake_gemini, request_):
        async def run():
            fake_gemini.gate = asyncio.Event()
            job_id = orchestrator.start(request_, "key")
            with pytest.raises(GenerationBusyError) as exc_info:
                orchestrator.start(request_, "key")
            assert exc_info.value.job_id == job_id
            fake_gemini.gate.set()
            return await orchestrator.wait()

        state = asyncio.run(run())
        assert isinstance(state, Success)
        assert len(fake_gemini.calls) == 1

    def test_cancel_drops_late_result(self, orchestrator, fake_gemini, request_):
        async def run():
            fake_gemini.gate = asyncio.Event()
            orchestrator.start(request_, "key")
            await asyncio.sleep(0.05)  # let the request reach the service
            assert orchestrator.is_busy

            assert orchestrator.cancel()
            fake_gemini.gate.set()
            await asyncio.sleep(0.01)
            return orchestrator.state.value

        state = asyncio.run(run())
        assert state == Idle()
        assert orchestrator.current_image is None

    def test_stale_finish_ignored(self, orchestrator, request_, sample_png):
        async def run():
            orchestrator.gemini.gate = asyncio.Event()
            first = orchestrator.start(request_, "key")
            orchestrator.cancel()
            orchestrator.gemini.gate = None
            second = orchestrator.start(request_, "key")
            # A result for the cancelled job must not replace the current one
            orchestrator._finish(first, Success(sample_png, "p", "m", 0.1))
            assert orchestrator.state.value == Loading(second)
            return await orchestrator.wait()

        assert isinstance(asyncio.run(run()), Success)

    def test_cancel_when_idle(self, orchestrator):
        assert not orchestrator.cancel()
        assert orchestrator.state.value == Idle()

    def test_reset_forgets_image(self, orchestrator, request_):
        asyncio.run(orchestrator.generate(request_, "key"))
        assert orchestrator.current_image is not None

        orchestrator.reset()

        assert orchestrator.current_image is None
        assert orchestrator.state.value == Idle()

    def test_new_request_after_error(self, fake_gemini, request_):
        fake_gemini.error = RuntimeError("first fails")
        orchestrator = GenerationOrchestrator(fake_gemini)
        assert isinstance(asyncio.run(orchestrator.generate(request_, "key")), Error)

        fake_gemini.error = None
        assert isinstance(asyncio.run(orchestrator.generate(request_, "key")), Success)

    def test_aclose_closes_service(self, orchestrator, fake_gemini):
        asyncio.run(orchestrator.aclose())
        assert fake_gemini.closed
