"""Voice capture and spoken playback."""

from finai.audio.controller import (
    MICROPHONE_ERROR_ALERT,
    PLAYBACK_RATE,
    AudioIOController,
    CaptureMachine,
    CaptureState,
    PlaybackMachine,
    PlaybackState,
)
from finai.audio.devices import (
    AudioDeviceError,
    AudioOutputInterface,
    AudioSourceHandle,
    MicrophoneInterface,
    PermissionDeniedError,
    RecordingHandle,
)

__all__ = [
    # Controller
    "AudioIOController",
    "CaptureMachine",
    "CaptureState",
    "MICROPHONE_ERROR_ALERT",
    "PLAYBACK_RATE",
    "PlaybackMachine",
    "PlaybackState",
    # Devices
    "AudioDeviceError",
    "AudioOutputInterface",
    "AudioSourceHandle",
    "MicrophoneInterface",
    "PermissionDeniedError",
    "RecordingHandle",
]
