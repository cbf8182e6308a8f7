"""Tests for waveform buffers and in-memory audio encoding."""

import struct

import numpy as np
import pytest

from jtts.audio import WaveformBuffer, concatenate, encode_pcm, encode_wav, float32_to_int16


class TestFloat32ToInt16:
    def test_silence(self):
        result = float32_to_int16(np.zeros(100, dtype=np.float32))
        assert result.dtype == np.int16
        assert np.all(result == 0)

    def test_extremes(self):
        result = float32_to_int16(np.array([1.0, -1.0], dtype=np.float32))
        assert result.tolist() == [32767, -32767]

    def test_clipping(self):
        result = float32_to_int16(np.array([2.0, -2.0], dtype=np.float32))
        assert result.tolist() == [32767, -32767]


class TestEncodePcm:
    def test_little_endian_16bit(self):
        pcm = encode_pcm(np.array([0.0, 1.0], dtype=np.float32))
        assert len(pcm) == 4
        assert struct.unpack("<hh", pcm) == (0, 32767)


class TestEncodeWav:
    def test_header(self):
        wav = encode_wav(np.zeros(100, dtype=np.float32), sample_rate=22050)
        assert wav[:4] == b"RIFF"
        assert wav[8:12] == b"WAVE"
        assert wav[12:16] == b"fmt "
        assert struct.unpack_from("<H", wav, 20)[0] == 1  # PCM
        assert struct.unpack_from("<H", wav, 22)[0] == 1  # mono
        assert struct.unpack_from("<I", wav, 24)[0] == 22050
        assert struct.unpack_from("<H", wav, 34)[0] == 16

    def test_data_size(self):
        wav = encode_wav(np.zeros(100, dtype=np.float32), sample_rate=22050)
        assert wav[36:40] == b"data"
        assert struct.unpack_from("<I", wav, 40)[0] == 200
        assert struct.unpack_from("<I", wav, 4)[0] == len(wav) - 8

    def test_float32(self):
        audio = np.array([0.25, -0.5], dtype=np.float32)
        wav = encode_wav(audio, sample_rate=16000, sample_format="float32")
        assert struct.unpack_from("<H", wav, 20)[0] == 3
        assert struct.unpack_from("<H", wav, 34)[0] == 32
        assert struct.unpack_from("<I", wav, 28)[0] == 16000 * 4
        np.testing.assert_array_equal(np.frombuffer(wav[44:], dtype="<f4"), audio)

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            encode_wav(np.zeros(1, dtype=np.float32), 16000, sample_format="mp3")


class TestWaveformBuffer:
    def test_duration(self):
        wave = WaveformBuffer(np.zeros(8000, dtype=np.float32), 16000)
        assert len(wave) == 8000
        assert wave.duration_seconds == 0.5

    def test_empty(self):
        wave = WaveformBuffer.empty(24000)
        assert len(wave) == 0
        assert wave.sample_rate == 24000
        assert len(wave.to_wav()) == 44

    def test_to_int16(self):
        wave = WaveformBuffer(np.array([0.5], dtype=np.float32), 16000)
        assert wave.to_int16().tolist() == [16383]


class TestConcatenate:
    def test_pause_between(self):
        a = WaveformBuffer(np.ones(3, dtype=np.float32), 10)
        b = WaveformBuffer(np.full(2, 0.5, dtype=np.float32), 10)
        joined = concatenate([a, b], pause_seconds=0.4)
        assert joined.samples.tolist() == [1, 1, 1, 0, 0, 0, 0, 0.5, 0.5]

    def test_no_pause(self):
        a = WaveformBuffer(np.ones(3, dtype=np.float32), 10)
        assert len(concatenate([a, a])) == 6

    def test_mismatched_rates(self):
        a = WaveformBuffer(np.ones(3, dtype=np.float32), 10)
        b = WaveformBuffer(np.ones(3, dtype=np.float32), 20)
        with pytest.raises(ValueError):
            concatenate([a, b])

    def test_nothing_to_join(self):
        with pytest.raises(ValueError):
            concatenate([])
