"""Model-backed collaborators and the contracts they implement."""

from finai.agents.interface import (
    Advisor,
    CollaboratorError,
    SpeechSynthesizer,
    TransactionParser,
    Transcriber,
)
from finai.agents.gemini import (
    GeminiAdvisor,
    GeminiSpeechSynthesizer,
    GeminiTranscriber,
    GeminiTransactionParser,
)

__all__ = [
    # Contracts
    "Advisor",
    "CollaboratorError",
    "SpeechSynthesizer",
    "TransactionParser",
    "Transcriber",
    # Gemini implementations
    "GeminiAdvisor",
    "GeminiSpeechSynthesizer",
    "GeminiTranscriber",
    "GeminiTransactionParser",
]
