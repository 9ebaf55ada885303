"""Audio file writer.

Responsibilities:
- Wrap headerless LINEAR16 PCM in a 16-bit mono WAV container.
- Write provider audio to disk atomically, creating parent directories.
"""

from __future__ import annotations

import os
import tempfile
import wave
from pathlib import Path
from typing import BinaryIO

from ..errors import AudioWriteError
from ..models.datatypes import AudioEncoding, SynthesisRequest, SynthesisResult


PCM_SAMPLE_WIDTH_BYTES = 2
PCM_CHANNELS = 1


class AudioWriter:
    """Persist `SynthesisResult` payloads to their resolved output paths."""

    def write(self, result: SynthesisResult, request: SynthesisRequest) -> Path:
        """Write audio for `request` and return the written path.

        Raw LINEAR16 without a RIFF header is wrapped in a WAV container using
        the provider-reported sample rate, else the request's. Every other
        payload is written unchanged.

        Raises:
            AudioWriteError: If the directory or file cannot be written. No
                partial file is left at the output path.
        """

        output_path = request.output_path
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise AudioWriteError(
                f"Failed to create output directory `{output_path.parent}`: {exc}",
                path=str(output_path.parent),
            ) from exc

        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=output_path.parent,
                prefix=f".{output_path.name}.",
                suffix=".part",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                if self._needs_wav_container(result):
                    self._write_wav(handle, result.audio_bytes, result.sample_rate or request.sample_rate)
                else:
                    handle.write(result.audio_bytes)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, output_path)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise AudioWriteError(
                f"Failed to write audio file `{output_path}`: {exc}",
                path=str(output_path),
            ) from exc
        return output_path

    @staticmethod
    def _needs_wav_container(result: SynthesisResult) -> bool:
        """Return whether raw PCM still needs a WAV header."""

        return result.encoding is AudioEncoding.LINEAR16 and not result.has_container

    @staticmethod
    def _write_wav(handle: BinaryIO, pcm: bytes, sample_rate: int) -> None:
        """Write mono 16-bit PCM frames with a WAV header."""

        with wave.open(handle, "wb") as wav_file:
            wav_file.setnchannels(PCM_CHANNELS)
            wav_file.setsampwidth(PCM_SAMPLE_WIDTH_BYTES)
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(pcm)
