"""
Gemini Collaborators

DESIGN DECISION: One adapter per collaborator contract, all backed by
google-generativeai. Each adapter:
1. Configures the SDK from GeminiSettings (or uses an injected model)
2. Retries transient failures with tenacity
3. Logs and converts failures into the contract's null/fallback result

CRITICAL BOUNDARIES:

- The PARSER only extracts. Its JSON goes through
  TransactionResponseValidator before anything is saved.
- The ADVISOR only phrases. The budget numbers it talks about are computed
  deterministically and handed to it as text.
- Replies are in Brazilian Portuguese.
"""

import base64
import json
from datetime import date, datetime
from typing import Any, Optional

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from finai.agents.interface import (
    Advisor,
    CollaboratorError,
    SpeechSynthesizer,
    TransactionParser,
    Transcriber,
)
from finai.audit.logger import get_logger
from finai.config import get_settings
from finai.config.settings import GeminiSettings
from finai.models.finance import AudioClip, ParseFailure, ParseOutcome, Transaction
from finai.validation.validator import TransactionResponseValidator


logger = get_logger(__name__)


PARSE_INSTRUCTION = """Você é uma API assistente financeira. Seu trabalho é extrair detalhes de transações das mensagens do usuário em Português.
Data Atual: {current_date}.

Regras:
1. Analise o texto do usuário para identificar se é uma despesa (EXPENSE) ou receita (INCOME).
2. Extraia o valor numérico.
3. Infira uma categoria padrão (ex: Alimentação, Transporte, Moradia, Contas, Lazer, Salário) se não especificado.
4. Crie uma descrição curta em português.
5. Determine a data no formato ISO 8601 (YYYY-MM-DD). Se o usuário disser 'hoje', use a data atual.

Responda APENAS com um objeto JSON com os campos obrigatórios:
{{"type": "EXPENSE" ou "INCOME", "amount": número, "category": texto, "description": texto, "date": "YYYY-MM-DD"}}

Exemplo Entrada: "Gastei 50 pila em sushi ontem"
Exemplo Saída: {{"type": "EXPENSE", "amount": 50, "category": "Alimentação", "description": "Sushi", "date": "2023-10-26"}}"""

TRANSCRIPTION_PROMPT = (
    "Transcreva este áudio para português do Brasil. "
    "Retorne apenas o texto transcrito, sem explicações."
)

ADVICE_PROMPT = """O usuário acabou de registrar esta transação: {record}.
Status do Orçamento: {status_text}.

Gere uma resposta curta, amigável e útil em Português do Brasil confirmando que a transação foi salva.
Se eles estiverem acima do orçamento ou perto, avise gentilmente.
Se economizaram ou estão abaixo, incentive.
Máximo 2 frases."""

ADVICE_EMPTY_FALLBACK = "Transação registrada com sucesso."
ADVICE_ERROR_FALLBACK = "Transação registrada."


def _configure(settings: Optional[GeminiSettings]) -> GeminiSettings:
    settings = settings or get_settings().gemini
    genai.configure(api_key=settings.api_key)
    return settings


def _response_text(response: Any) -> Optional[str]:
    """
    Text of a response, or None.

    The SDK raises ValueError from .text when the candidate has no text
    part (blocked prompt, empty completion).
    """
    try:
        text = response.text
    except ValueError:
        return None
    text = (text or "").strip()
    return text or None


def _extract_json(text: str) -> Any:
    """Decode the first JSON object found in a model reply."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise CollaboratorError("parser", "no JSON object in response")
    try:
        return json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise CollaboratorError("parser", f"invalid JSON: {e}")


class GeminiTransactionParser(TransactionParser):
    """
    Extracts a transaction from a chat message.

    The model is asked for JSON only; the reply is validated before it
    becomes a candidate.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        validator: Optional[TransactionResponseValidator] = None,
    ):
        self._settings = _configure(settings)
        self._validator = validator or TransactionResponseValidator()

    def _model_for(self, current_date: date):
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=PARSE_INSTRUCTION.format(
                current_date=current_date.isoformat()
            ),
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, text: str, current_date: date) -> Optional[str]:
        response = await self._model_for(current_date).generate_content_async(text)
        return _response_text(response)

    async def parse_transaction(
        self,
        text: str,
        current_date: date,
    ) -> ParseOutcome:
        try:
            reply = await self._generate(text, current_date)
            if reply is None:
                return ParseFailure(reason="Empty response from parser")
            raw = _extract_json(reply)
        except Exception as e:
            logger.error("gemini_parse_failed", error=str(e))
            return ParseFailure(reason=str(e))

        now = datetime.combine(current_date, datetime.now().time())
        return self._validator.validate(raw, now=now)


class GeminiTranscriber(Transcriber):
    """Transcribes a recorded clip sent inline with the prompt."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = _configure(settings)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def transcribe(self, audio_bytes: bytes, mime_type: str) -> Optional[str]:
        if not audio_bytes:
            return None
        try:
            response = await self._model.generate_content_async([
                {"mime_type": mime_type, "data": audio_bytes},
                TRANSCRIPTION_PROMPT,
            ])
        except Exception as e:
            logger.error("gemini_transcription_failed", error=str(e))
            return None
        return _response_text(response)


class GeminiSpeechSynthesizer(SpeechSynthesizer):
    """
    Reads a message aloud with a prebuilt voice.

    The TTS model returns raw 16-bit PCM at the configured sample rate;
    older transports deliver it base64-encoded.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        sample_rate: Optional[int] = None,
    ):
        self._settings = _configure(settings)
        self._sample_rate = sample_rate or get_settings().audio.sample_rate
        self._model = genai.GenerativeModel(model_name=self._settings.tts_model_name)

    def _generation_config(self) -> dict:
        return {
            "response_modalities": ["AUDIO"],
            "speech_config": {
                "voice_config": {
                    "prebuilt_voice_config": {"voice_name": self._settings.voice_name},
                },
            },
        }

    async def synthesize(self, text: str) -> Optional[AudioClip]:
        try:
            response = await self._model.generate_content_async(
                text,
                generation_config=self._generation_config(),
            )
            data = response.candidates[0].content.parts[0].inline_data.data
        except (IndexError, AttributeError) as e:
            logger.warning("gemini_tts_no_audio", error=str(e))
            return None
        except Exception as e:
            logger.error("gemini_tts_failed", error=str(e))
            return None

        if not data:
            return None
        if isinstance(data, str):
            data = base64.b64decode(data)
        if len(data) % 2:
            data = data[:-1]

        return AudioClip(samples=data, sample_rate=self._sample_rate, channels=1)


class GeminiAdvisor(Advisor):
    """Phrases the confirmation reply for a saved transaction."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = _configure(settings)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": 0.7,
                "max_output_tokens": 256,
            },
        )

    async def generate_advice(self, record: Transaction, status_text: str) -> str:
        prompt = ADVICE_PROMPT.format(
            record=record.model_dump_json(),
            status_text=status_text,
        )
        try:
            response = await self._model.generate_content_async(prompt)
        except Exception as e:
            logger.error("gemini_advice_failed", error=str(e))
            return ADVICE_ERROR_FALLBACK
        return _response_text(response) or ADVICE_EMPTY_FALLBACK
