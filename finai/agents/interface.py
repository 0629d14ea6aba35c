"""
Collaborator Interfaces

DESIGN DECISION: The conversation and audio layers never talk to a model
provider directly. They depend on these four narrow contracts, each with a
documented "nothing useful came back" result:

1. TransactionParser  -> ParseIncomplete / ParseFailure
2. Transcriber        -> None
3. SpeechSynthesizer  -> None
4. Advisor            -> a fixed confirmation sentence

Implementations may still raise (network, quota); the orchestrator catches
whatever escapes at the turn boundary.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from finai.models.finance import AudioClip, ParseOutcome, Transaction


class CollaboratorError(Exception):
    """An external model call failed or returned something unusable."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class TransactionParser(ABC):
    """Turns free text into a transaction candidate."""

    @abstractmethod
    async def parse_transaction(
        self,
        text: str,
        current_date: date,
    ) -> ParseOutcome:
        """
        Parse a user message.

        Args:
            text: Raw user message
            current_date: Date used to resolve "hoje", "ontem" and so on
        """
        pass


class Transcriber(ABC):
    """Speech-to-text."""

    @abstractmethod
    async def transcribe(self, audio_bytes: bytes, mime_type: str) -> Optional[str]:
        """Return the transcribed text, or None when nothing was recognised."""
        pass


class SpeechSynthesizer(ABC):
    """Text-to-speech."""

    @abstractmethod
    async def synthesize(self, text: str) -> Optional[AudioClip]:
        """Return mono PCM audio for the text, or None when unavailable."""
        pass


class Advisor(ABC):
    """Writes the short reply that confirms a saved transaction."""

    @abstractmethod
    async def generate_advice(self, record: Transaction, status_text: str) -> str:
        pass
