"""Tests for the TrackPipeline module."""

import json

import pytest

from trackweaver.core.analyzer import MusicMap
from trackweaver.core.loader import DecodedAudio
from trackweaver.errors import AudioLoadError
from trackweaver.pipeline import TrackPipeline
from trackweaver.track.types import TrackData


class TestTrackPipeline:
    """Tests for the complete pipeline."""

    def test_load_step(self, temp_audio_file):
        """load() should return DecodedAudio."""
        result = TrackPipeline().load(temp_audio_file)
        assert isinstance(result, DecodedAudio)

    def test_analyze_step(self, temp_audio_file):
        """analyze() should return a MusicMap."""
        pipeline = TrackPipeline()
        result = pipeline.analyze(pipeline.load(temp_audio_file))
        assert isinstance(result, MusicMap)

    def test_generate_step(self, temp_audio_file):
        """generate() should return TrackData."""
        pipeline = TrackPipeline()
        music_map = pipeline.analyze(pipeline.load(temp_audio_file))
        assert isinstance(pipeline.generate(music_map), TrackData)

    def test_process_full_pipeline(self, temp_audio_file):
        """process() should run the complete pipeline."""
        result = TrackPipeline().process(temp_audio_file)

        for key in ("manifest", "music_map", "track", "duration", "length", "n_nodes", "n_pulses"):
            assert key in result
        assert result["n_nodes"] == 100
        assert result["length"] == pytest.approx(result["duration"] * 50)

    def test_process_with_json_output(self, temp_audio_file, tmp_path):
        """process() should write JSON when output_path is provided."""
        output_path = tmp_path / "output.json"
        result = TrackPipeline().process(temp_audio_file, output_path=output_path)

        assert result["output_path"] == str(output_path)
        with open(output_path) as f:
            loaded = json.load(f)
        assert loaded["metadata"]["n_nodes"] == 100

    def test_process_with_numpy_output(self, temp_audio_file, tmp_path):
        """process() should write NPZ when format=numpy."""
        output_path = tmp_path / "output.npz"
        TrackPipeline().process(temp_audio_file, output_path=output_path, format="numpy")

        assert output_path.exists()

    def test_process_to_manifest(self, temp_audio_file):
        """process_to_manifest() should return the manifest dict."""
        manifest = TrackPipeline().process_to_manifest(temp_audio_file)

        assert "metadata" in manifest
        assert "track" in manifest

    def test_pulses_match_treble_peaks(self, temp_audio_file):
        """Every treble peak becomes exactly one hazard."""
        result = TrackPipeline().process(temp_audio_file, use_cache=False)

        assert result["n_pulses"] == len(result["music_map"].treble_peaks)

    def test_missing_file(self, tmp_path):
        """A missing input raises AudioLoadError."""
        with pytest.raises((AudioLoadError, FileNotFoundError)):
            TrackPipeline().process(tmp_path / "missing.wav", use_cache=False)
