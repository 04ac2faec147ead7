"""
Main track building pipeline.

Orchestrates the complete flow from audio file to track manifest.
"""

import hashlib
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Union

from trackweaver.config import (
    AnalyzerConfig,
    AutopilotConfig,
    TrackConfig,
    config_fingerprint,
)
from trackweaver.core.analyzer import MusicMap, SignalAnalyzer
from trackweaver.core.loader import AudioLoader, DecodedAudio
from trackweaver.errors import ManifestError
from trackweaver.io.exporter import TrackExporter, manifest_to_objects
from trackweaver.track.generator import TrackGenerator
from trackweaver.track.types import TrackData

logger = logging.getLogger(__name__)


class TrackPipeline:
    """
    Complete audio-to-track processing pipeline.

    Combines loading, analysis, track generation and export into a
    single interface, caching manifests on disk by file content and
    configuration.
    """

    # Version of the analysis/generation logic.
    # Increment whenever analysis or generation output changes
    # so cached manifests are invalidated.
    ANALYSIS_VERSION = "1.1"

    def __init__(
        self,
        sample_rate: int | None = None,
        analyzer_config: AnalyzerConfig | None = None,
        track_config: TrackConfig | None = None,
        autopilot_config: AutopilotConfig | None = None,
        precision: int = 4,
    ):
        """
        Initialize the pipeline.

        Args:
            sample_rate: Decode rate. None keeps each file's native rate.
            analyzer_config: Windowing and threshold parameters.
            track_config: Geometry and hazard parameters.
            autopilot_config: Carried for sessions built from this pipeline.
            precision: Decimal places in exported manifests.
        """
        self.sample_rate = sample_rate
        self.analyzer_config = analyzer_config or AnalyzerConfig()
        self.track_config = track_config or TrackConfig()
        self.autopilot_config = autopilot_config or AutopilotConfig()

        self.loader = AudioLoader(sample_rate=sample_rate)
        self.analyzer = SignalAnalyzer(config=self.analyzer_config)
        self.generator = TrackGenerator(config=self.track_config)
        self.exporter = TrackExporter(precision=precision)
        self._cache_exporter = TrackExporter(precision=None)

    def _get_cache_dir(self) -> Path:
        """Return the directory for caching manifests."""
        cache_dir = Path.home() / ".cache" / "trackweaver" / "manifests"
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir

    def _calculate_file_hash(self, file_path: Path) -> str:
        """Calculate SHA256 hash of the file."""
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def _get_config_hash(self) -> str:
        """Calculate hash of the pipeline configuration."""
        config = {
            "version": self.ANALYSIS_VERSION,
            "sr": self.sample_rate,
            "precision": self.exporter.precision,
            "configs": config_fingerprint(self.analyzer_config, self.track_config),
        }
        return hashlib.md5(json.dumps(config, sort_keys=True).encode("utf-8")).hexdigest()

    def _get_cache_path(self, audio_path: Path) -> Path:
        """Get the cache file path for a given audio file."""
        file_hash = self._calculate_file_hash(audio_path)
        config_hash = self._get_config_hash()
        filename = f"manifest_{file_hash}_{config_hash}.json"
        return self._get_cache_dir() / filename

    def clear_cache(self):
        """Clear the manifest cache."""
        cache_dir = self._get_cache_dir()
        if cache_dir.exists():
            shutil.rmtree(cache_dir)
            cache_dir.mkdir(parents=True, exist_ok=True)

    def load(self, audio_path: Union[str, Path]) -> DecodedAudio:
        """
        Phase A: Decode audio to its first channel.

        Args:
            audio_path: Path to audio file.

        Returns:
            DecodedAudio buffer.
        """
        return self.loader.load(audio_path)

    def analyze(self, decoded: DecodedAudio) -> MusicMap:
        """
        Phase B: Extract energy envelopes and events.

        Args:
            decoded: Decoded audio buffer.

        Returns:
            MusicMap for the recording.
        """
        return self.analyzer.analyze(decoded.samples, decoded.sample_rate, decoded.duration)

    def generate(self, music_map: MusicMap) -> TrackData:
        """
        Phase C: Build the path and hazards.

        Args:
            music_map: Analyzed features.

        Returns:
            TrackData for the recording.
        """
        return self.generator.generate(music_map)

    def export(
        self,
        music_map: MusicMap,
        track: TrackData,
        output_path: Union[str, Path],
        format: str = "json",
    ) -> Path:
        """
        Phase D: Export to manifest file.

        Args:
            music_map: Analyzed features.
            track: Generated track.
            output_path: Output file path.
            format: "json" or "numpy".

        Returns:
            Path to written file.
        """
        if format == "numpy":
            return self.exporter.export_numpy(music_map, track, output_path)
        return self.exporter.export_json(music_map, track, output_path)

    def _result(
        self,
        manifest: dict[str, Any],
        music_map: MusicMap,
        track: TrackData,
    ) -> dict[str, Any]:
        return {
            "manifest": manifest,
            "music_map": music_map,
            "track": track,
            "duration": music_map.duration,
            "length": track.length,
            "n_nodes": len(track.nodes),
            "n_pulses": len(track.treble_pulses),
        }

    def _load_cached(self, cache_path: Path) -> dict[str, Any] | None:
        if not cache_path.exists():
            return None
        with open(cache_path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
        music_map, track = manifest_to_objects(manifest)
        logger.info("Loaded track from cache: %s", cache_path)
        return self._result(self.exporter.to_dict(music_map, track), music_map, track)

    def process(
        self,
        audio_path: Union[str, Path],
        output_path: Union[str, Path] | None = None,
        format: str = "json",
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """
        Run the complete pipeline from audio file to manifest.

        Args:
            audio_path: Path to input audio file.
            output_path: Path for output manifest. If None, only returns dict.
            format: Output format ("json" or "numpy").
            use_cache: Whether to use a cached manifest if available.

        Returns:
            Dictionary containing the manifest, the MusicMap and TrackData,
            and summary counts.
        """
        audio_path = Path(audio_path)

        if use_cache:
            try:
                result = self._load_cached(self._get_cache_path(audio_path))
            except (OSError, json.JSONDecodeError, ManifestError) as e:
                logger.warning("Failed to load cache: %s. Re-analyzing.", e)
                result = None

            if result is not None:
                if output_path:
                    written = self.export(
                        result["music_map"], result["track"], output_path, format
                    )
                    result["output_path"] = str(written)
                return result

        # Phase A: Load
        decoded = self.load(audio_path)

        # Phase B: Analyze
        music_map = self.analyze(decoded)

        # Phase C: Generate
        track = self.generate(music_map)

        manifest = self.exporter.to_dict(music_map, track)

        if use_cache:
            try:
                cache_path = self._get_cache_path(audio_path)
                # Cache at full precision so a hit rebuilds the same track
                with open(cache_path, "w", encoding="utf-8") as f:
                    json.dump(
                        self._cache_exporter.to_dict(music_map, track), f, indent=2
                    )
                logger.info("Cached track manifest: %s", cache_path)
            except OSError as e:
                logger.warning("Failed to save cache: %s", e)

        result = self._result(manifest, music_map, track)

        # Phase D: Export if path provided
        if output_path:
            written_path = self.export(music_map, track, output_path, format)
            result["output_path"] = str(written_path)

        return result

    def process_to_manifest(
        self,
        audio_path: Union[str, Path],
    ) -> dict[str, Any]:
        """
        Process audio and return manifest dictionary directly.

        Args:
            audio_path: Path to input audio file.

        Returns:
            Manifest dictionary.
        """
        result = self.process(audio_path)
        return result["manifest"]
