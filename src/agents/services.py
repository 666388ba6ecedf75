"""Process-wide service wiring.

Everything built here is created once per process, never mutated afterwards
and shared by all call sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from openai import AsyncOpenAI

from agents.backoff import BackoffProfile, BackoffRetrier
from agents.call_session import CallSession
from agents.recording import RecordingResponder
from config.settings import Settings
from integrations.recordings import RecordingFetchConfig, RecordingFetcher
from llm.advice import AdviceGenerator
from llm.base import BaseLLMClient
from llm.factory import build_llm_client, build_openai_client
from speech.transcriber import RecordingTranscriber, TranscriberConfig, TranscriptionSession
from speech.tts import BaseSynthesizer, OpenAISynthesizer, TTSConfig
from telephony.channel import AudioChannel

LOGGER = logging.getLogger(__name__)


def backoff_profile(settings: Settings, name: Literal["slow", "fast"]) -> BackoffProfile:
    if name == "slow":
        return BackoffProfile(
            base_delay_ms=settings.slow_backoff_base_ms,
            cap_delay_ms=settings.slow_backoff_cap_ms,
            max_attempts=settings.slow_backoff_max_attempts,
        )
    if name == "fast":
        return BackoffProfile(
            base_delay_ms=settings.fast_backoff_base_ms,
            cap_delay_ms=settings.fast_backoff_cap_ms,
            max_attempts=settings.fast_backoff_max_attempts,
        )
    raise ValueError(f"Unknown backoff profile: {name}")


@dataclass(frozen=True)
class AssistantServices:
    settings: Settings
    openai: AsyncOpenAI
    llm: BaseLLMClient
    stream_advice: AdviceGenerator
    synthesizer: BaseSynthesizer
    transcriber_config: TranscriberConfig
    recording_responder: RecordingResponder

    def new_transcription_session(self) -> TranscriptionSession:
        return TranscriptionSession(self.transcriber_config)

    def new_call_session(self, channel: AudioChannel, call_id: str) -> CallSession:
        return CallSession(
            call_id,
            channel,
            self.new_transcription_session(),
            self.stream_advice,
            self.synthesizer,
            language=self.settings.transcription_language,
            word_threshold=self.settings.utterance_word_threshold,
            max_buffer_chars=self.settings.utterance_max_chars,
        )

    async def aclose(self) -> None:
        await self.llm.aclose()
        await self.openai.close()


def build_services(settings: Settings) -> AssistantServices:
    openai_client = build_openai_client(settings)
    llm = build_llm_client(settings, openai_client)
    slow = BackoffRetrier(backoff_profile(settings, "slow"))
    fast = BackoffRetrier(backoff_profile(settings, "fast"))

    recording_responder = RecordingResponder(
        RecordingFetcher(
            fast,
            RecordingFetchConfig(
                account_sid=settings.twilio_account_sid,
                auth_token=settings.twilio_auth_token,
                timeout_seconds=settings.recording_fetch_timeout_seconds,
            ),
        ),
        RecordingTranscriber(openai_client, slow, model=settings.transcription_model),
        AdviceGenerator(llm, slow, max_tokens=settings.advice_max_tokens_recording),
        language=settings.transcription_language,
    )

    LOGGER.info(
        "Assistant services ready (llm=%s/%s, stt=%s, tts=%s)",
        settings.llm_provider,
        settings.llm_model,
        settings.transcription_model,
        settings.tts_model,
    )
    return AssistantServices(
        settings=settings,
        openai=openai_client,
        llm=llm,
        stream_advice=AdviceGenerator(llm, slow, max_tokens=settings.advice_max_tokens_stream),
        synthesizer=OpenAISynthesizer(
            openai_client,
            slow,
            TTSConfig(
                model=settings.tts_model,
                voice=settings.tts_voice,
                response_format=settings.tts_response_format,
            ),
        ),
        transcriber_config=TranscriberConfig(
            api_key=settings.openai_api_key or "",
            url=settings.transcription_realtime_url,
            model=settings.transcription_model,
            input_audio_format=settings.transcription_input_format,
            setup_timeout_seconds=settings.transcription_setup_timeout_seconds,
            silence_duration_ms=settings.transcription_silence_duration_ms,
        ),
        recording_responder=recording_responder,
    )
