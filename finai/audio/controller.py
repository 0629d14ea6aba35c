"""
Audio I/O Controller

Two explicit state machines behind one controller:

1. CAPTURE:  IDLE → RECORDING → TRANSCRIBING → IDLE
2. PLAYBACK: IDLE → PLAYING ⇄ PAUSED → IDLE (keyed per message)

DESIGN DECISION: The controller, not the caller, enforces the rules:
- Chat submission and a new recording are refused while capturing
- At most ONE playback source exists at any time; the previous source is
  stopped and released BEFORE a new one is created
- A released source is never reused; every play re-synthesizes

Failures never escape: a refused microphone leaves capture IDLE with an
alert, and a failed or empty synthesis leaves playback IDLE.
"""

from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from finai.agents.interface import SpeechSynthesizer, Transcriber
from finai.audio.devices import (
    AudioDeviceError,
    AudioOutputInterface,
    AudioSourceHandle,
    MicrophoneInterface,
    RecordingHandle,
)
from finai.audit import AuditLogger, get_logger
from finai.config import get_settings
from finai.models.audit import AuditEvent, AuditEventBuilder


logger = get_logger(__name__)

T = TypeVar("T")

PLAYBACK_RATE = 1.25
MICROPHONE_ERROR_ALERT = "Não foi possível acessar o microfone."


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class _Audited:
    """Shared audit plumbing for the two machines."""

    _audit_logger: Optional[AuditLogger]

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)


class CaptureMachine(_Audited):
    """
    Microphone → transcription.

    Transcribed text is left in pending_input for the caller to submit;
    nothing is sent to the conversation automatically.
    """

    def __init__(
        self,
        microphone: MicrophoneInterface,
        transcriber: Transcriber,
        audit_logger: Optional[AuditLogger] = None,
        on_alert: Optional[Callable[[str], None]] = None,
        mime_type: Optional[str] = None,
    ):
        self._microphone = microphone
        self._mime_type = mime_type or get_settings().audio.capture_mime_type
        self._transcriber = transcriber
        self._audit_logger = audit_logger
        self._on_alert = on_alert
        self._handle: Optional[RecordingHandle] = None
        self._opening = False
        self.state = CaptureState.IDLE
        self.pending_input: Optional[str] = None
        self.last_error: Optional[str] = None

    @property
    def allows_submission(self) -> bool:
        return self.state == CaptureState.IDLE

    def take_pending_input(self) -> Optional[str]:
        """Hand over the last transcription (once)."""
        text, self.pending_input = self.pending_input, None
        return text

    async def start(self) -> bool:
        """
        IDLE → RECORDING.

        Returns True if recording started. A no-op outside IDLE, and while a
        permission request is already outstanding.
        """
        if self.state != CaptureState.IDLE or self._opening:
            return False

        self._opening = True
        try:
            handle = await self._microphone.open(self._mime_type)
        except AudioDeviceError as e:
            logger.warning("microphone_unavailable", error=str(e))
            self.last_error = MICROPHONE_ERROR_ALERT
            if self._on_alert:
                self._on_alert(MICROPHONE_ERROR_ALERT)
            await self._audit(AuditEventBuilder.microphone_denied(str(e)))
            return False
        finally:
            self._opening = False

        handle.start()
        self._handle = handle
        self.last_error = None
        self.state = CaptureState.RECORDING
        await self._audit(AuditEventBuilder.recording_started())
        return True

    async def stop(self) -> Optional[str]:
        """
        RECORDING → TRANSCRIBING → IDLE.

        Returns the transcription (also stored in pending_input), or None.
        A no-op outside RECORDING.
        """
        if self.state != CaptureState.RECORDING or self._handle is None:
            return None

        handle, self._handle = self._handle, None
        self.state = CaptureState.TRANSCRIBING
        text: Optional[str] = None
        clip_size = 0
        try:
            clip = await handle.finish()
            clip_size = len(clip.data)
            if not clip.is_empty:
                text = await self._transcriber.transcribe(clip.data, clip.mime_type)
        except Exception as e:
            logger.error("transcription_failed", error=str(e))
            text = None
        finally:
            self.state = CaptureState.IDLE

        text = text or None
        if text is not None:
            self.pending_input = text
        await self._audit(
            AuditEventBuilder.transcription_completed(
                clip_bytes=clip_size,
                produced_text=text is not None,
            )
        )
        return text

    def cancel(self) -> None:
        """Abandon an active recording without transcribing it."""
        if self._handle is not None:
            self._handle.discard()
            self._handle = None
        if self.state == CaptureState.RECORDING:
            self.state = CaptureState.IDLE


class PlaybackMachine(_Audited):
    """
    Spoken playback of chat messages.

    Only one message is ever active. Each play request bumps a generation
    counter, so a synthesis that finishes after a newer request (or a stop)
    is dropped instead of starting a second stream.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        output: AudioOutputInterface,
        audit_logger: Optional[AuditLogger] = None,
        playback_rate: float = PLAYBACK_RATE,
    ):
        self._synthesizer = synthesizer
        self._output = output
        self._audit_logger = audit_logger
        self._playback_rate = playback_rate
        self._source: Optional[AudioSourceHandle] = None
        self._suspended = False
        self._generation = 0
        self._pending_id: Optional[str] = None
        self.state = PlaybackState.IDLE
        self.active_message_id: Optional[str] = None

    @property
    def playback_rate(self) -> float:
        return self._playback_rate

    @property
    def is_synthesizing(self) -> bool:
        return self._pending_id is not None

    def state_of(self, message_id: str) -> PlaybackState:
        """Playback state as seen from one message's play button."""
        if message_id == self.active_message_id:
            return self.state
        return PlaybackState.IDLE

    def _release_active(self) -> Optional[str]:
        """Stop and release the active source. Returns the message it played."""
        source, self._source = self._source, None
        message_id, self.active_message_id = self.active_message_id, None
        self.state = PlaybackState.IDLE
        if source is not None:
            # Cleared first so the ended notification from stop() is stale
            source.stop()
            source.release()
        return message_id

    def _handle_ended(self, source: AudioSourceHandle) -> None:
        if source is not self._source:
            return
        message_id = self._release_active()
        logger.info("playback_ended", message_id=message_id)

    async def _toggle(self) -> PlaybackState:
        source = self._source
        if self.state == PlaybackState.PLAYING:
            await self._output.suspend()
            self._suspended = True
            target = PlaybackState.PAUSED
        else:
            await self._output.resume()
            self._suspended = False
            target = PlaybackState.PLAYING
        # The source may have ended or been superseded while the clock moved
        if self._source is source:
            self.state = target
        return self.state

    async def play(self, message_id: str, text: str) -> PlaybackState:
        """
        Play, pause or resume a message.

        - Same message as the active one: PLAYING ⇄ PAUSED
        - Any other message: release the active one, synthesize, play
        - No audio from the synthesizer: stays IDLE
        """
        if message_id == self.active_message_id and self.state != PlaybackState.IDLE:
            return await self._toggle()
        if message_id == self._pending_id:
            return self.state

        previous = self._release_active()
        if previous is not None:
            await self._audit(
                AuditEventBuilder.playback_stopped(previous, reason="superseded")
            )

        self._generation += 1
        generation = self._generation
        self._pending_id = message_id
        try:
            clip = await self._synthesizer.synthesize(text)
        except Exception as e:
            logger.error("synthesis_failed", error=str(e), message_id=message_id)
            clip = None
        finally:
            if generation == self._generation:
                self._pending_id = None

        if generation != self._generation:
            return self.state_of(message_id)

        if clip is None:
            await self._audit(AuditEventBuilder.synthesis_unavailable(message_id))
            return PlaybackState.IDLE

        if self._suspended:
            await self._output.resume()
            self._suspended = False
            if generation != self._generation:
                return self.state_of(message_id)

        source = self._output.create_source(clip, self._playback_rate)
        source.on_ended(lambda: self._handle_ended(source))
        self._source = source
        self.active_message_id = message_id
        self.state = PlaybackState.PLAYING
        source.start()

        await self._audit(
            AuditEventBuilder.playback_started(message_id, clip.duration_seconds)
        )
        return self.state

    async def stop(self) -> None:
        """Any state → IDLE. Also drops a synthesis still in flight."""
        self._generation += 1
        self._pending_id = None
        message_id = self._release_active()
        if message_id is not None:
            await self._audit(
                AuditEventBuilder.playback_stopped(message_id, reason="stopped")
            )

    async def close(self) -> None:
        await self.stop()
        await self._output.close()


class AudioIOController:
    """
    Composition of capture and playback.

    Gatekeeper for chat submission: while the microphone is recording or
    its clip is being transcribed, submissions are refused.
    """

    def __init__(self, capture: CaptureMachine, playback: PlaybackMachine):
        self.capture = capture
        self.playback = playback
        self._output_closed = False

    @property
    def allows_submission(self) -> bool:
        return self.capture.allows_submission

    async def submit(
        self,
        text: str,
        handler: Callable[[str], Awaitable[T]],
    ) -> Optional[T]:
        """Pass text to the handler, unless capture forbids it or it's blank."""
        if not self.allows_submission or not text.strip():
            return None
        return await handler(text)

    async def start_recording(self) -> bool:
        return await self.capture.start()

    async def stop_recording(self) -> Optional[str]:
        return await self.capture.stop()

    async def play(self, message_id: str, text: str) -> PlaybackState:
        return await self.playback.play(message_id, text)

    async def stop_playback(self) -> None:
        await self.playback.stop()

    async def close(self) -> None:
        """Discard any recording, stop playback and tear down the output."""
        self.capture.cancel()
        if self._output_closed:
            await self.playback.stop()
            return
        self._output_closed = True
        await self.playback.close()
