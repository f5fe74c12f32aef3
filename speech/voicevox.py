import logging

import requests

import config

logger = logging.getLogger(__name__)


class SpeechSynthesisError(Exception):
    pass


class VoicevoxClient:
    """Cliente del API HTTP local de VOICEVOX (audio_query -> synthesis)."""

    def __init__(self, host: str | None = None, port: int | None = None,
                 timeout: float | None = None):
        self.host = host or config.VOICEVOX_HOST
        self.port = port or config.VOICEVOX_PORT
        self.timeout = timeout or config.VOICEVOX_TIMEOUT

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def synthesize(self, text: str, speaker_id: int = config.NOTIFICATION_SPEAKER_ID,
                   speed_scale: float | None = None, pitch_scale: float | None = None,
                   intonation_scale: float | None = None) -> bytes:
        """Sintetiza ``text`` y devuelve los bytes WAV."""
        if not text or not text.strip():
            raise SpeechSynthesisError("Texto vacio")

        try:
            query_res = requests.post(
                f"{self.base_url}/audio_query",
                params={"text": text, "speaker": speaker_id},
                timeout=self.timeout,
            )
            query_res.raise_for_status()
            query = query_res.json()

            if speed_scale is not None:
                query["speedScale"] = speed_scale
            if pitch_scale is not None:
                query["pitchScale"] = pitch_scale
            if intonation_scale is not None:
                query["intonationScale"] = intonation_scale

            synth_res = requests.post(
                f"{self.base_url}/synthesis",
                params={"speaker": speaker_id},
                json=query,
                timeout=self.timeout,
            )
            synth_res.raise_for_status()
        except requests.RequestException as e:
            raise SpeechSynthesisError(f"VOICEVOX no disponible: {e}") from e
        except ValueError as e:
            raise SpeechSynthesisError(f"Respuesta de audio_query no valida: {e}") from e

        return synth_res.content

    def render(self, text: str, voice=None) -> bytes:
        """Adaptador para la cola de reproduccion: opciones de voz opcionales."""
        speaker_id = getattr(voice, "speaker_id", config.NOTIFICATION_SPEAKER_ID)
        speed_scale = getattr(voice, "speed_scale", None)
        return self.synthesize(text, speaker_id, speed_scale)

    def is_available(self) -> bool:
        try:
            response = requests.get(f"{self.base_url}/version", timeout=2)
            return response.ok
        except requests.RequestException:
            return False

    def list_speakers(self) -> list[dict]:
        try:
            response = requests.get(f"{self.base_url}/speakers", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise SpeechSynthesisError(f"No se pudo obtener la lista de voces: {e}") from e
