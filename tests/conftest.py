"""
Shared fixtures and in-memory fakes.

No real API calls and no real audio devices in tests: every collaborator
and device is replaced by a scripted fake that records how it was used.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio

from finai.agents.interface import (
    Advisor,
    SpeechSynthesizer,
    TransactionParser,
    Transcriber,
)
from finai.audio import (
    AudioIOController,
    AudioOutputInterface,
    AudioSourceHandle,
    CaptureMachine,
    MicrophoneInterface,
    PermissionDeniedError,
    PlaybackMachine,
    RecordingHandle,
)
from finai.audit import AuditLogger
from finai.models import (
    AudioClip,
    EncodedClip,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    Transaction,
    TransactionCandidate,
    TransactionType,
)
from finai.orchestrator import ConversationFlow, LedgerFlow
from finai.services.storage import InMemoryAuditStorage, InMemoryRecordStore


# =============================================================================
# COLLABORATORS
# =============================================================================

def candidate(
    amount: str = "25",
    category: str = "Alimentação",
    kind: TransactionType = TransactionType.EXPENSE,
    description: str = "Café",
    when: Optional[datetime] = None,
) -> TransactionCandidate:
    return TransactionCandidate(
        type=kind,
        amount=Decimal(amount),
        category=category,
        description=description,
        date=when or datetime.now(),
    )


class FakeParser(TransactionParser):
    """Returns scripted outcomes keyed by message text."""

    def __init__(self, outcomes: Optional[dict] = None):
        self.outcomes: dict[str, object] = outcomes or {}
        self.calls: list[tuple[str, date]] = []
        self.gates: dict[str, asyncio.Event] = {}

    async def parse_transaction(self, text: str, current_date: date) -> ParseOutcome:
        self.calls.append((text, current_date))
        if text in self.gates:
            await self.gates[text].wait()
        outcome = self.outcomes.get(text, ParseFailure(reason="not a transaction"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeAdvisor(Advisor):

    def __init__(self, reply: str = "Anotado!", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[Transaction, str]] = []

    async def generate_advice(self, record: Transaction, status_text: str) -> str:
        self.calls.append((record, status_text))
        if self.error:
            raise self.error
        return self.reply


class FakeTranscriber(Transcriber):

    def __init__(self, text: Optional[str] = "Gastei 25 em café"):
        self.text = text
        self.calls: list[tuple[bytes, str]] = []

    async def transcribe(self, audio_bytes: bytes, mime_type: str) -> Optional[str]:
        self.calls.append((audio_bytes, mime_type))
        return self.text


class FakeSynthesizer(SpeechSynthesizer):
    """
    Produces a short silent clip, or None for texts listed in `silent`.

    Texts listed in `gates` block until their event is set.
    """

    def __init__(self):
        self.silent: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    async def synthesize(self, text: str) -> Optional[AudioClip]:
        self.calls.append(text)
        if text in self.gates:
            await self.gates[text].wait()
        if text in self.silent:
            return None
        return AudioClip(samples=b"\x00\x00" * 2400)


# =============================================================================
# DEVICES
# =============================================================================

class FakeRecording(RecordingHandle):

    def __init__(self, data: bytes = b"webm-bytes", mime_type: str = "audio/webm"):
        self.data = data
        self.mime_type = mime_type
        self.started = False
        self.finished = False
        self.discarded = False

    def start(self) -> None:
        self.started = True

    async def finish(self) -> EncodedClip:
        self.finished = True
        return EncodedClip(data=self.data, mime_type=self.mime_type)

    def discard(self) -> None:
        self.discarded = True


class FakeMicrophone(MicrophoneInterface):

    def __init__(self, deny: bool = False):
        self.deny = deny
        self.opened: list[FakeRecording] = []

    async def open(self, mime_type: str) -> RecordingHandle:
        if self.deny:
            raise PermissionDeniedError("NotAllowedError: Permission denied")
        recording = FakeRecording(mime_type=mime_type)
        self.opened.append(recording)
        return recording


class FakeSource(AudioSourceHandle):

    def __init__(self, clip: AudioClip, playback_rate: float):
        super().__init__()
        self.clip = clip
        self.playback_rate = playback_rate
        self.started = False
        self.stopped = False
        self.released = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True
        self._notify_ended()

    def release(self) -> None:
        self.released = True

    def finish_naturally(self) -> None:
        self._notify_ended()


class FakeOutput(AudioOutputInterface):
    """Suspend and resume block on `clock_gate` when one is set."""

    def __init__(self):
        self.sources: list[FakeSource] = []
        self.suspended = False
        self.closed = False
        self.clock_gate: Optional[asyncio.Event] = None

    def create_source(self, clip: AudioClip, playback_rate: float) -> AudioSourceHandle:
        source = FakeSource(clip, playback_rate)
        self.sources.append(source)
        return source

    @property
    def live_sources(self) -> list[FakeSource]:
        return [s for s in self.sources if not s.released]

    async def suspend(self) -> None:
        if self.clock_gate is not None:
            await self.clock_gate.wait()
        self.suspended = True

    async def resume(self) -> None:
        if self.clock_gate is not None:
            await self.clock_gate.wait()
        self.suspended = False

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest_asyncio.fixture
async def store():
    record_store = InMemoryRecordStore()
    await record_store.init()
    return record_store


@pytest.fixture
def parser():
    return FakeParser({
        "Gastei 25 em café": ParseSuccess(candidate=candidate()),
    })


@pytest.fixture
def advisor():
    return FakeAdvisor()


@pytest.fixture
def conversation(store, parser, advisor, audit_logger):
    return ConversationFlow(
        record_store=store,
        parser=parser,
        advisor=advisor,
        audit_logger=audit_logger,
        currency_symbol="R$",
    )


@pytest.fixture
def ledger(store, audit_logger, conversation):
    return LedgerFlow(
        record_store=store,
        audit_logger=audit_logger,
        conversation=conversation,
    )


@pytest.fixture
def microphone():
    return FakeMicrophone()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def alerts():
    return []


@pytest.fixture
def capture(microphone, transcriber, audit_logger, alerts):
    return CaptureMachine(
        microphone=microphone,
        transcriber=transcriber,
        audit_logger=audit_logger,
        on_alert=alerts.append,
    )


@pytest.fixture
def playback(synthesizer, output, audit_logger):
    return PlaybackMachine(
        synthesizer=synthesizer,
        output=output,
        audit_logger=audit_logger,
    )


@pytest.fixture
def controller(capture, playback):
    return AudioIOController(capture, playback)
