"""
Tests for the playback sequencer: ordering, fallback cue, interruption
and device hot-swap.
"""

import time

import pytest

from speakstream.playback.cues import FALLBACK_LABEL
from speakstream.playback.sequencer import PlaybackSequencer
from speakstream.state import PipelineState, SpeechState
from speakstream.testing import FakeOutputDevice

from conftest import make_result, wait_until


@pytest.fixture
def state():
    return PipelineState()


@pytest.fixture
def device():
    return FakeOutputDevice(default_device="Speakers")


@pytest.fixture
def sequencer(device, state, fast_config):
    seq = PlaybackSequencer(device, state, fast_config)
    yield seq
    seq.close()


def _enqueue(sequencer, state, result):
    state.job_submitted(result.epoch)
    sequencer.enqueue(result)
    return result


class TestOrderedPlayback:
    """Tests for in-order playback."""

    def test_plays_in_order(self, sequencer, state, device, tmp_path):
        for i, text in enumerate(["First.", "Second.", "Third."]):
            _enqueue(sequencer, state, make_result(tmp_path, i, text))

        assert state.wait_until_idle(timeout=5.0)
        assert device.labels == ["First.", "Second.", "Third."]

    def test_files_deleted_after_playback(self, sequencer, state, tmp_path):
        result = _enqueue(sequencer, state, make_result(tmp_path, 0, "Hello."))

        assert state.wait_until_idle(timeout=5.0)
        assert not result.audio_path.exists()

    def test_playing_state(self, sequencer, state, device, tmp_path):
        _enqueue(sequencer, state, make_result(tmp_path, 0, "Long one.", duration=0.5))

        assert wait_until(lambda: sequencer.is_playing)
        assert state.state == SpeechState.PLAYING

        assert state.wait_until_idle(timeout=5.0)
        assert not sequencer.is_playing


class TestFallbackCue:
    """Failed segments play the fallback cue in their slot."""

    def test_failed_synthesis_plays_cue(self, sequencer, state, device, tmp_path):
        _enqueue(sequencer, state, make_result(tmp_path, 0, "First."))
        _enqueue(sequencer, state, make_result(tmp_path, 1, "Broken.", error="timed out"))
        _enqueue(sequencer, state, make_result(tmp_path, 2, "Third."))

        assert state.wait_until_idle(timeout=5.0)
        assert device.labels == ["First.", FALLBACK_LABEL, "Third."]

    def test_undecodable_audio_plays_cue(self, sequencer, state, device, tmp_path):
        result = make_result(tmp_path, 0, "Garbage.")
        result.audio_path.write_bytes(b"this is not audio")
        _enqueue(sequencer, state, result)

        assert state.wait_until_idle(timeout=5.0)
        assert device.labels == [FALLBACK_LABEL]
        assert not result.audio_path.exists()

    def test_configured_cue_file(self, device, state, fast_config, tmp_path):
        from conftest import write_wav
        from dataclasses import replace

        cue_path = write_wav(tmp_path / "cue.wav", duration=0.02)
        config = replace(fast_config, fallback_cue=cue_path)
        seq = PlaybackSequencer(device, state, config)
        try:
            _enqueue(seq, state, make_result(tmp_path, 0, "Broken.", error="boom"))
            assert state.wait_until_idle(timeout=5.0)
        finally:
            seq.close()

        assert device.labels == [FALLBACK_LABEL]
        assert device.played[0].clip.duration == pytest.approx(0.02, abs=0.001)


class TestInterruption:
    """Tests for interrupt(), drain() and stale epochs."""

    def test_stale_epoch_skipped(self, sequencer, state, device, tmp_path):
        result = make_result(tmp_path, 0, "Old news.", epoch=0)
        state.advance_epoch()
        _enqueue(sequencer, state, result)
        _enqueue(sequencer, state, make_result(tmp_path, 1, "Current.", epoch=1))

        assert state.wait_until_idle(timeout=5.0)
        assert device.labels == ["Current."]
        assert not result.audio_path.exists()

    def test_interrupt_stops_playback(self, sequencer, state, device, tmp_path):
        _enqueue(sequencer, state, make_result(tmp_path, 0, "Very long.", duration=3.0))
        assert wait_until(lambda: device.labels == ["Very long."])

        start = time.monotonic()
        state.advance_epoch()
        sequencer.drain()
        sequencer.interrupt()

        assert state.wait_until_idle(timeout=2.0)
        assert time.monotonic() - start < 1.0
        assert device.stop_count >= 1
        assert device.is_empty()

    def test_drain_discards_queued(self, sequencer, state, device, tmp_path):
        _enqueue(sequencer, state, make_result(tmp_path, 0, "Playing.", duration=2.0))
        assert wait_until(lambda: device.labels == ["Playing."])

        queued = [
            _enqueue(sequencer, state, make_result(tmp_path, i, f"Queued {i}."))
            for i in (1, 2)
        ]
        assert sequencer.queued == 2

        assert sequencer.drain() == 2
        assert sequencer.queued == 0
        assert all(not r.audio_path.exists() for r in queued)

        state.advance_epoch()
        sequencer.interrupt()
        assert state.wait_until_idle(timeout=2.0)
        assert device.labels == ["Playing."]

    def test_stale_signal_does_not_stop_new_audio(self, sequencer, state, device, tmp_path):
        # Left over from an interrupt with nothing playing
        sequencer.interrupt()
        _enqueue(sequencer, state, make_result(tmp_path, 0, "Fresh.", duration=0.2))

        assert state.wait_until_idle(timeout=5.0)
        assert device.labels == ["Fresh."]
        assert device.stop_count == 0


class TestDevice:
    """Tests for device hot-swap, errors and volume."""

    def test_hot_swap_between_segments(self, sequencer, state, device, tmp_path):
        _enqueue(sequencer, state, make_result(tmp_path, 0, "On speakers."))
        assert state.wait_until_idle(timeout=5.0)

        device.set_default_device("Headphones")
        _enqueue(sequencer, state, make_result(tmp_path, 1, "On headphones."))
        assert state.wait_until_idle(timeout=5.0)

        assert [p.device for p in device.played] == ["Speakers", "Headphones"]
        assert device.switches == [("Speakers", "Headphones")]

    def test_select_device(self, sequencer, state, device, tmp_path):
        sequencer.select_device("USB Headset")
        _enqueue(sequencer, state, make_result(tmp_path, 0, "Selected."))

        assert state.wait_until_idle(timeout=5.0)
        assert device.played[0].device == "USB Headset"

    def test_device_error_skips_item(self, sequencer, state, device, tmp_path):
        device.fail_next_appends(1)
        _enqueue(sequencer, state, make_result(tmp_path, 0, "Lost."))
        _enqueue(sequencer, state, make_result(tmp_path, 1, "Played."))

        assert state.wait_until_idle(timeout=5.0)
        assert device.labels == ["Played."]

    def test_mute_and_unmute(self, sequencer, device):
        sequencer.set_volume(0.8)
        assert device.volume == 0.8

        sequencer.mute()
        assert sequencer.is_muted
        assert device.volume == 0.0

        # Volume changes while muted apply on unmute
        sequencer.set_volume(0.5)
        assert device.volume == 0.0

        sequencer.unmute()
        assert not sequencer.is_muted
        assert device.volume == 0.5

    def test_negative_volume(self, sequencer):
        with pytest.raises(ValueError):
            sequencer.set_volume(-0.1)


class TestClose:
    """Tests for shutdown."""

    def test_close_closes_device(self, device, state, fast_config):
        seq = PlaybackSequencer(device, state, fast_config)
        seq.close()
        assert device.closed

    def test_enqueue_after_close_discards(self, device, state, fast_config, tmp_path):
        seq = PlaybackSequencer(device, state, fast_config)
        seq.close()

        result = _enqueue(seq, state, make_result(tmp_path, 0, "Too late."))
        assert not result.audio_path.exists()
        assert state.in_flight == 0
        assert device.labels == []
