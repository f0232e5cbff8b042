# voice/audio_io.py
from __future__ import annotations
import asyncio
import queue
from typing import Awaitable, Callable, Optional

import sounddevice as sd

from livecontext.core.constants import AUDIO_CHUNK_FRAMES, INPUT_SAMPLE_RATE, OUTPUT_SAMPLE_RATE
from livecontext.core.logging import get_logger

logger = get_logger("livecontext.voice.audio")


class MicrophoneCapture:
    """16-bit mono PCM capture; frames are handed to the event loop that called ``start``."""

    def __init__(self, sample_rate: int = INPUT_SAMPLE_RATE, blocksize: int = AUDIO_CHUNK_FRAMES):
        self.sample_rate = sample_rate
        self.blocksize = blocksize
        self._stream: Optional[sd.RawInputStream] = None

    def start(self, on_frame: Callable[[bytes], Awaitable[None]]) -> None:
        if self._stream is not None:
            return
        loop = asyncio.get_running_loop()

        def _callback(indata, frames, time_info, status) -> None:
            if status:
                logger.warning("MIC_STATUS status=%s", status)
            data = bytes(indata)
            loop.call_soon_threadsafe(lambda: asyncio.ensure_future(on_frame(data)))

        self._stream = sd.RawInputStream(
            samplerate=self.sample_rate,
            blocksize=self.blocksize,
            channels=1,
            dtype="int16",
            callback=_callback,
        )
        self._stream.start()
        logger.info("MIC_START sample_rate=%s blocksize=%s", self.sample_rate, self.blocksize)

    def stop(self) -> None:
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        logger.info("MIC_STOP")


class SpeakerPlayback:
    """Plays model audio chunks; ``interrupt`` drops whatever is still queued."""

    def __init__(self, sample_rate: int = OUTPUT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self._pending: "queue.Queue[bytes]" = queue.Queue()
        self._buffer = b""
        self._stream: Optional[sd.RawOutputStream] = None

    def _ensure_stream(self) -> None:
        if self._stream is not None:
            return

        def _callback(outdata, frames, time_info, status) -> None:
            need = len(outdata)
            while len(self._buffer) < need:
                try:
                    self._buffer += self._pending.get_nowait()
                except queue.Empty:
                    break
            out, self._buffer = self._buffer[:need], self._buffer[need:]
            outdata[: len(out)] = out
            outdata[len(out) :] = b"\x00" * (need - len(out))

        self._stream = sd.RawOutputStream(samplerate=self.sample_rate, channels=1, dtype="int16", callback=_callback)
        self._stream.start()

    def play(self, chunk: bytes) -> None:
        self._ensure_stream()
        self._pending.put(chunk)

    def interrupt(self) -> None:
        while True:
            try:
                self._pending.get_nowait()
            except queue.Empty:
                break
        self._buffer = b""
        logger.info("PLAYBACK_INTERRUPTED")

    def close(self) -> None:
        self.interrupt()
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
