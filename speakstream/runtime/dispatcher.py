"""
Synthesis Dispatcher - concurrent synthesis, ordered release.

Sentences are synthesized concurrently on a private asyncio event loop,
but their results are handed to playback strictly in submission order.

Threads:
    caller                submit() appends to the reorder queue
    speakstream-synthesis asyncio loop running the synthesis coroutines
    speakstream-release   release walk: waits on the front job, then
                          releases every consecutive completed job

The reorder queue is bounded. While ``queue_capacity`` jobs await
release, submit() blocks the caller, which in turn throttles the text
producer.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import threading
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from speakstream.backends.base import SpeechBackend
from speakstream.config import SpeakStreamConfig, validate_speed
from speakstream.errors import SynthesisError, TranscodeError
from speakstream.formats.transcoder import adjust_speed
from speakstream.runtime.jobs import SynthesisJob, SynthesisResult
from speakstream.state import PipelineState

logger = logging.getLogger(__name__)

TEMP_PREFIX = "speakstream-segment-"
SHUTDOWN_TIMEOUT = 5.0
# Margin over transcode_timeout; ffmpeg's own timeout fires first
TRANSCODE_GRACE = 1.0


@dataclass
class _Pending:
    job: SynthesisJob
    future: Future


class SynthesisDispatcher:
    """
    Runs synthesis jobs concurrently and releases results in order.

    Example:
        dispatcher = SynthesisDispatcher(backend, state, config, sequencer.enqueue)
        dispatcher.submit("Hello there.", state.epoch)
        ...
        dispatcher.close()

    Args:
        backend: Speech backend used for every job.
        state: Shared pipeline state (epoch + activity).
        config: Session configuration.
        on_release: Called from the release thread with each result, in
            submission order. Takes ownership of the result's audio file.
    """

    def __init__(
        self,
        backend: SpeechBackend,
        state: PipelineState,
        config: SpeakStreamConfig,
        on_release: Callable[[SynthesisResult], None],
    ):
        self._backend = backend
        self._state = state
        self._config = config
        self._on_release = on_release

        self._voice = config.voice
        self._speed = config.speed

        self._cond = threading.Condition()
        self._queue: deque[_Pending] = deque()
        self._next_index = 0
        self._closed = False

        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._run_loop,
            name="speakstream-synthesis",
            daemon=True,
        )
        self._release_thread = threading.Thread(
            target=self._release_walk,
            name="speakstream-release",
            daemon=True,
        )
        self._loop_thread.start()
        self._release_thread.start()

    # =========================================================================
    # Session parameters
    # =========================================================================

    @property
    def speed(self) -> float:
        with self._cond:
            return self._speed

    def set_speed(self, speed: float) -> None:
        """Set the speed for jobs submitted from now on."""
        speed = validate_speed(speed)
        with self._cond:
            self._speed = speed
        logger.info("Speech speed set to %s", speed)

    @property
    def voice(self) -> str:
        with self._cond:
            return self._voice

    def set_voice(self, voice: str) -> None:
        """Set the voice for jobs submitted from now on."""
        if not voice or not voice.strip():
            raise ValueError("voice must be a non-empty string")
        with self._cond:
            self._voice = voice
        logger.info("Speech voice set to %s", voice)

    @property
    def pending(self) -> int:
        """Jobs submitted and not yet released or discarded."""
        with self._cond:
            return len(self._queue)

    @property
    def is_closed(self) -> bool:
        with self._cond:
            return self._closed

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(self, text: str, epoch: int) -> SynthesisJob | None:
        """
        Schedule synthesis of one sentence.

        Blocks while the reorder queue is full.

        Args:
            text: Sentence to synthesize.
            epoch: Epoch current when the sentence was emitted.

        Returns:
            The scheduled job, or None if the epoch went stale while
            waiting for room or the dispatcher is closed.
        """
        capacity = self._config.queue_capacity
        with self._cond:
            while (
                not self._closed
                and len(self._queue) >= capacity
                and self._state.is_current(epoch)
            ):
                self._cond.wait(timeout=self._config.release_poll_interval)

            if self._closed or not self._state.is_current(epoch):
                logger.debug("Dropping sentence from stale epoch %d", epoch)
                return None

            job = SynthesisJob(
                index=self._next_index,
                text=text,
                voice=self._voice,
                speed=self._speed,
                epoch=epoch,
            )
            self._next_index += 1
            self._state.job_submitted(epoch)

            future = asyncio.run_coroutine_threadsafe(self._run_job(job), self._loop)
            self._queue.append(_Pending(job, future))
            future.add_done_callback(self._wake)

        logger.debug("Submitted segment %d (%d chars)", job.index, len(text))
        return job

    def cancel_pending(self) -> int:
        """
        Drop every job awaiting release.

        In-flight requests are cancelled, finished but unreleased audio
        is deleted, and blocked submitters are woken.

        Returns:
            Number of jobs dropped.
        """
        with self._cond:
            dropped = list(self._queue)
            self._queue.clear()
            self._cond.notify_all()

        for pending in dropped:
            if not pending.future.cancel():
                self._discard_future(pending.future)
            self._state.job_finished(pending.job.epoch)

        if dropped:
            logger.debug("Cancelled %d pending segments", len(dropped))
        return len(dropped)

    def close(self) -> None:
        """Cancel everything and stop the worker threads."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()

        self.cancel_pending()
        self._release_thread.join(timeout=SHUTDOWN_TIMEOUT)

        shutdown = asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop)
        try:
            shutdown.result(timeout=SHUTDOWN_TIMEOUT)
        except Exception as e:
            logger.warning("Synthesis loop did not shut down cleanly: %s", e)

        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=SHUTDOWN_TIMEOUT)

    # =========================================================================
    # Release walk
    # =========================================================================

    def _wake(self, _future: Future) -> None:
        with self._cond:
            self._cond.notify_all()

    def _front_ready(self) -> bool:
        return bool(self._queue) and self._queue[0].future.done()

    def _release_walk(self) -> None:
        """Release completed jobs from the front of the queue, in order."""
        while True:
            with self._cond:
                while not self._closed and not self._front_ready():
                    self._cond.wait(timeout=self._config.release_poll_interval)
                if self._closed:
                    return

                ready = []
                while self._front_ready():
                    ready.append(self._queue.popleft())
                # Freed slots unblock submitters
                self._cond.notify_all()

            for pending in ready:
                try:
                    self._release(pending)
                except Exception:
                    logger.exception("Failed to release segment %d", pending.job.index)

    def _release(self, pending: _Pending) -> None:
        job = pending.job
        future = pending.future

        if future.cancelled():
            self._state.job_finished(job.epoch)
            return

        try:
            result = future.result()
        except Exception as e:
            logger.exception("Synthesis task for segment %d crashed", job.index)
            result = SynthesisResult.failure(job, f"Synthesis task crashed: {e}")

        if not self._state.is_current(job.epoch):
            logger.debug("Discarding stale segment %d", job.index)
            result.discard()
            self._state.job_finished(job.epoch)
            return

        try:
            self._on_release(result)
        except Exception:
            result.discard()
            self._state.job_finished(job.epoch)
            raise

    def _discard_future(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        future.result().discard()

    # =========================================================================
    # Synthesis loop
    # =========================================================================

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            self._loop.run_until_complete(self._loop.shutdown_default_executor())
            self._loop.close()

    async def _shutdown(self) -> None:
        tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        aclose = getattr(self._backend, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _run_job(self, job: SynthesisJob) -> SynthesisResult:
        """Synthesize one job. Never raises except on cancellation."""
        try:
            path = await self._synthesize_to_file(job)
        except (SynthesisError, TranscodeError) as e:
            logger.error(
                "Synthesis failed for segment %d (%r): %s", job.index, job.text, e,
                extra={"event": "synthesis_error", "segment": job.index},
            )
            return SynthesisResult.failure(job, str(e))
        except Exception as e:
            logger.exception("Unexpected synthesis failure for segment %d", job.index)
            return SynthesisResult.failure(job, f"Unexpected synthesis failure: {e}")

        result = SynthesisResult.success(job, path)
        if not self._state.is_current(job.epoch):
            # Interrupted while the request was finishing
            result.discard()
            return SynthesisResult.failure(job, "Discarded by interrupt")
        return result

    async def _synthesize_to_file(self, job: SynthesisJob) -> Path:
        config = self._config
        transcode = config.transcode_speed and job.speed != 1.0
        request_speed = 1.0 if transcode else job.speed

        try:
            audio = await asyncio.wait_for(
                self._backend.synthesize(job.text, voice=job.voice, speed=request_speed),
                timeout=config.request_timeout,
            )
        except asyncio.TimeoutError:
            raise SynthesisError(
                job.text,
                f"Speech request timed out after {config.request_timeout}s",
            )
        except SynthesisError:
            raise
        except Exception as e:
            raise SynthesisError(job.text, f"Speech request failed: {e}") from e

        suffix = "." + self._backend.audio_format
        try:
            path = await asyncio.wait_for(
                asyncio.to_thread(self._save, audio, suffix),
                timeout=config.save_timeout,
            )
        except asyncio.TimeoutError:
            raise SynthesisError(
                job.text,
                f"Saving synthesized audio timed out after {config.save_timeout}s",
            )
        except OSError as e:
            raise SynthesisError(job.text, f"Could not save synthesized audio: {e}") from e

        if transcode:
            try:
                path = await asyncio.wait_for(
                    asyncio.to_thread(self._transcode, path, job.speed),
                    timeout=config.transcode_timeout + TRANSCODE_GRACE,
                )
            except asyncio.TimeoutError:
                raise TranscodeError(
                    f"Speed change timed out after {config.transcode_timeout}s",
                    details={"segment": job.index, "speed": job.speed},
                )

        logger.debug("Segment %d ready: %s", job.index, path.name)
        return path

    def _temp_file(self, suffix: str):
        return tempfile.NamedTemporaryFile(
            prefix=TEMP_PREFIX,
            suffix=suffix,
            dir=self._config.temp_dir,
            delete=False,
        )

    def _save(self, audio: bytes, suffix: str) -> Path:
        with self._temp_file(suffix) as f:
            f.write(audio)
        return Path(f.name)

    def _transcode(self, path: Path, speed: float) -> Path:
        """Replace path by a sped-up copy. The original is removed either way."""
        with self._temp_file(path.suffix) as f:
            output = Path(f.name)
        try:
            adjust_speed(
                path,
                output,
                speed,
                ffmpeg=self._config.ffmpeg_path,
                timeout=self._config.transcode_timeout,
            )
        except BaseException:
            output.unlink(missing_ok=True)
            raise
        finally:
            path.unlink(missing_ok=True)
        return output
