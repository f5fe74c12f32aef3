import io

from pydub import AudioSegment
from pydub.playback import play


def play_audio(data: bytes, audio_format: str = "wav"):
    """Reproduce el audio hasta el final (bloqueante)."""
    segment = AudioSegment.from_file(io.BytesIO(data), format=audio_format)
    play(segment)
