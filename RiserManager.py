import numpy as np
import wave
from typing import BinaryIO, Callable, Optional, Union
import logging

from RiserGenerator import SAMPLE_RATE, RiserEngine


def write_wav(target: Union[str, BinaryIO], samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> None:
    """Write mono signed 16-bit samples as a PCM WAV file (path or binary file object)."""
    pcm = np.asarray(samples, dtype='<i2')
    with wave.open(target, 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(sample_rate)

        chunk_size = sample_rate * 10  # 10 seconds at a time
        for start in range(0, len(pcm), chunk_size):
            wf.writeframes(pcm[start:start + chunk_size].tobytes())


class RiserPlayer:
    """
    Renders a riser engine and hands the samples to a WAV file or the sound device.
    """
    def __init__(self, engine: RiserEngine) -> None:
        self.engine = engine

    def save_to_wav(self, filename: str,
                    update_status: Optional[Callable[[str], None]] = None,
                    update_progress: Optional[Callable[[float], None]] = None) -> Optional[np.ndarray]:
        """Generate the riser and save it. Returns the samples, or None if writing failed."""
        if update_status:
            update_status("Generating riser...")
        samples = self.engine.generate(update_progress=update_progress)
        try:
            if update_status:
                update_status("Saving to WAV file...")
            write_wav(filename, samples)
        except OSError as e:
            logging.error(f"File saving failed: {e}")
            if update_status:
                update_status(f"Error saving file: {e}")
            return None
        logging.info(f"Wrote {len(samples)} samples to {filename}")
        if update_status:
            update_status(f"Riser saved as {filename}.")
        return samples

    def play(self, samples: np.ndarray,
             update_status: Optional[Callable[[str], None]] = None) -> bool:
        """Play samples on the default output device, blocking until done."""
        # PortAudio is loaded on import, so only preview runs need it.
        try:
            import sounddevice as sd
        except OSError as e:
            logging.error(f"Playback unavailable: {e}")
            if update_status:
                update_status(f"Playback error: {e}")
            return False

        try:
            if update_status:
                update_status("Playing riser...")
            sd.play(samples, samplerate=SAMPLE_RATE, blocking=True)
        except sd.PortAudioError as e:
            logging.error(f"Playback failed: {e}")
            if update_status:
                update_status(f"Playback error: {e}")
            return False
        if update_status:
            update_status("Playback finished.")
        return True
