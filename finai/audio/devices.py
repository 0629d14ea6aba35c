"""
Audio Device Interfaces

DESIGN DECISION: Microphones and speakers are platform plumbing. The
controller only depends on these abstract handles, so the state machines
can be driven by a real backend or by in-memory fakes.

Ownership rules the controller relies on:
1. A RecordingHandle is used for exactly one recording, then dropped
2. An AudioSourceHandle plays exactly one clip; once released it is dead
3. suspend()/resume() act on the whole output clock, pausing every source
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from finai.models.finance import AudioClip, EncodedClip


class AudioDeviceError(Exception):
    """Base exception for audio device failures."""
    pass


class PermissionDeniedError(AudioDeviceError):
    """The user (or the platform) refused microphone access."""
    pass


class RecordingHandle(ABC):
    """One open microphone stream."""

    @abstractmethod
    def start(self) -> None:
        """Begin buffering samples."""
        pass

    @abstractmethod
    async def finish(self) -> EncodedClip:
        """
        Stop the stream and flush everything captured into one clip.

        Releases the microphone.
        """
        pass

    @abstractmethod
    def discard(self) -> None:
        """Stop the stream, drop the samples, release the microphone."""
        pass


class MicrophoneInterface(ABC):

    @abstractmethod
    async def open(self, mime_type: str) -> RecordingHandle:
        """
        Request microphone access for a recording encoded as mime_type.

        Raises:
            PermissionDeniedError: If access is refused
            AudioDeviceError: If no usable input device exists
        """
        pass


class AudioSourceHandle(ABC):
    """
    A single-use playback source bound to one clip.

    Implementations call _notify_ended() when the clip plays to the end or
    the source is stopped.
    """

    def __init__(self):
        self._ended_callback: Optional[Callable[[], None]] = None

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._ended_callback = callback

    def _notify_ended(self) -> None:
        if self._ended_callback is not None:
            self._ended_callback()

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def release(self) -> None:
        """Disconnect from the output; the handle cannot be started again."""
        pass


class AudioOutputInterface(ABC):
    """The shared output graph."""

    @abstractmethod
    def create_source(
        self,
        clip: AudioClip,
        playback_rate: float,
    ) -> AudioSourceHandle:
        pass

    @abstractmethod
    async def suspend(self) -> None:
        """Freeze the output clock, keeping every source's position."""
        pass

    @abstractmethod
    async def resume(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Tear down the output; no sources may be created afterwards."""
        pass
