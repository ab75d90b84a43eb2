import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock
import builtins
import io
import sys
import tempfile
import wave

import numpy as np


# Allow top-level module imports from the repo root.
_ROOT_DIR = Path(__file__).resolve().parents[1]
if str(_ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(_ROOT_DIR))

from chords import ChordManager
from RiserGenerator import SAMPLE_RATE, RiserConfig, RiserEngine
from RiserManager import RiserPlayer, write_wav


class _FakePortAudioError(Exception):
    pass


class TestWriteWav(unittest.TestCase):
    def test_writes_mono_16_bit_pcm(self) -> None:
        samples = np.array([0, 1, -1, 32767, -32767, 1234], dtype=np.int16)
        buffer = io.BytesIO()

        write_wav(buffer, samples)

        buffer.seek(0)
        with wave.open(buffer, 'rb') as wf:
            self.assertEqual(wf.getnchannels(), 1)
            self.assertEqual(wf.getsampwidth(), 2)
            self.assertEqual(wf.getframerate(), SAMPLE_RATE)
            self.assertEqual(wf.getnframes(), len(samples))
            frames = wf.readframes(wf.getnframes())
        np.testing.assert_array_equal(np.frombuffer(frames, dtype='<i2'), samples)

    def test_empty_buffer_writes_valid_file(self) -> None:
        buffer = io.BytesIO()

        write_wav(buffer, np.zeros(0, dtype=np.int16))

        buffer.seek(0)
        with wave.open(buffer, 'rb') as wf:
            self.assertEqual(wf.getnframes(), 0)


class TestRiserPlayer(unittest.TestCase):
    def _player(self, duration: float = 0.5) -> RiserPlayer:
        chord = ChordManager().get_chord("min")
        return RiserPlayer(RiserEngine(RiserConfig(duration=duration, gain=0.2), chord))

    def test_save_to_wav_round_trips_samples(self) -> None:
        statuses = []
        with tempfile.TemporaryDirectory() as tmp:
            filename = str(Path(tmp) / "riser.wav")

            samples = self._player().save_to_wav(filename, update_status=statuses.append)

            self.assertIsNotNone(samples)
            with wave.open(filename, 'rb') as wf:
                self.assertEqual(wf.getnframes(), SAMPLE_RATE // 2)
                frames = wf.readframes(wf.getnframes())
        np.testing.assert_array_equal(np.frombuffer(frames, dtype='<i2'), samples)
        self.assertEqual(statuses[-1], f"Riser saved as {filename}.")

    def test_save_to_missing_directory_reports_error(self) -> None:
        statuses = []
        with tempfile.TemporaryDirectory() as tmp:
            filename = str(Path(tmp) / "missing" / "riser.wav")

            with self.assertLogs(level="ERROR"):
                samples = self._player(0.1).save_to_wav(filename, update_status=statuses.append)

        self.assertIsNone(samples)
        self.assertTrue(statuses[-1].startswith("Error saving file"))

    def test_play_hands_samples_to_sound_device(self) -> None:
        fake_sd = SimpleNamespace(play=mock.Mock(), PortAudioError=_FakePortAudioError)
        samples = np.zeros(10, dtype=np.int16)

        with mock.patch.dict(sys.modules, {"sounddevice": fake_sd}):
            self.assertTrue(self._player().play(samples))

        fake_sd.play.assert_called_once_with(samples, samplerate=SAMPLE_RATE, blocking=True)

    def test_play_reports_portaudio_errors(self) -> None:
        fake_sd = SimpleNamespace(play=mock.Mock(side_effect=_FakePortAudioError("no device")),
                                  PortAudioError=_FakePortAudioError)
        statuses = []

        with mock.patch.dict(sys.modules, {"sounddevice": fake_sd}):
            with self.assertLogs(level="ERROR"):
                ok = self._player().play(np.zeros(10, dtype=np.int16), update_status=statuses.append)

        self.assertFalse(ok)
        self.assertEqual(statuses[-1], "Playback error: no device")

    def test_play_reports_missing_portaudio_library(self) -> None:
        real_import = builtins.__import__

        def import_without_portaudio(name, *args, **kwargs):
            if name == "sounddevice":
                raise OSError("PortAudio library not found")
            return real_import(name, *args, **kwargs)

        statuses = []
        with mock.patch("builtins.__import__", side_effect=import_without_portaudio):
            with self.assertLogs(level="ERROR"):
                ok = self._player().play(np.zeros(10, dtype=np.int16), update_status=statuses.append)

        self.assertFalse(ok)
        self.assertEqual(statuses[-1], "Playback error: PortAudio library not found")


if __name__ == "__main__":
    unittest.main()
