"""
Manifest serialization module.

Exports analyzed music and the generated track to JSON or NumPy
archives for renderers, and reads JSON manifests back.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from trackweaver.config import LANE_WIDTH, PATH_SPEED
from trackweaver.core.analyzer import BeatMarker, EnergySample, MusicMap
from trackweaver.errors import ManifestError
from trackweaver.track.types import TrackData, TrackNode, TreblePulse

SCHEMA_VERSION = "1.0"


@dataclass
class ManifestMetadata:
    """Metadata header for the track manifest."""

    duration: float
    length: float
    n_nodes: int
    n_pulses: int
    n_beats: int
    speed: float = PATH_SPEED
    lane_width: float = LANE_WIDTH
    version: str = "1.0"
    schema_version: str = SCHEMA_VERSION


class TrackExporter:
    """
    Exports a MusicMap and TrackData as a single manifest.

    Vectors are written as [x, y, z] lists.
    """

    def __init__(self, precision: int | None = 4):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values. None keeps
                full precision.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        """Round to configured precision."""
        if self.precision is None:
            return float(value)
        return round(float(value), self.precision)

    def _vector(self, vector: np.ndarray) -> list[float]:
        return [self._round(v) for v in vector]

    def _build_node(self, node: TrackNode) -> dict[str, Any]:
        return {
            "t": self._round(node.t),
            "s": self._round(node.s),
            "pos": self._vector(node.pos),
            "forward": self._vector(node.forward),
            "up": self._vector(node.up),
            "is_jump": bool(node.is_jump),
        }

    def _build_pulse(self, pulse: TreblePulse) -> dict[str, Any]:
        return {
            "time": self._round(pulse.time),
            "pos": self._vector(pulse.pos),
            "intensity": self._round(pulse.intensity),
            "lane_index": int(pulse.lane_index),
        }

    def _build_music(self, music_map: MusicMap) -> dict[str, Any]:
        def events(markers):
            return [
                {"time": self._round(m.time), "strength": self._round(m.strength)}
                for m in markers
            ]

        def envelope(samples):
            return [
                {"time": self._round(s.time), "rms": self._round(s.rms)} for s in samples
            ]

        return {
            "beats": events(music_map.beats),
            "energy_samples": envelope(music_map.energy_samples),
            "treble_samples": envelope(music_map.treble_samples),
            "treble_peaks": events(music_map.treble_peaks),
        }

    def build_manifest(
        self,
        music_map: MusicMap,
        track: TrackData,
    ) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            music_map: Features from SignalAnalyzer.
            track: Path and hazards from TrackGenerator.

        Returns:
            Manifest dictionary ready for serialization.
        """
        metadata = ManifestMetadata(
            duration=self._round(music_map.duration),
            length=self._round(track.length),
            n_nodes=len(track.nodes),
            n_pulses=len(track.treble_pulses),
            n_beats=len(music_map.beats),
        )

        return {
            "metadata": {
                "duration": metadata.duration,
                "length": metadata.length,
                "n_nodes": metadata.n_nodes,
                "n_pulses": metadata.n_pulses,
                "n_beats": metadata.n_beats,
                "speed": metadata.speed,
                "lane_width": metadata.lane_width,
                "version": metadata.version,
                "schema_version": metadata.schema_version,
            },
            "music": self._build_music(music_map),
            "track": {
                "nodes": [self._build_node(node) for node in track.nodes],
                "treble_pulses": [self._build_pulse(p) for p in track.treble_pulses],
            },
        }

    def export_json(
        self,
        music_map: MusicMap,
        track: TrackData,
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """
        Export manifest to JSON file.

        Args:
            music_map: Analyzed features.
            track: Generated track.
            output_path: Path for output JSON file.
            indent: JSON indentation level.

        Returns:
            Path to written file.
        """
        manifest = self.build_manifest(music_map, track)
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        music_map: MusicMap,
        track: TrackData,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export node and hazard arrays as a NumPy .npz archive.

        Args:
            music_map: Analyzed features.
            track: Generated track.
            output_path: Path for output .npz file.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)
        nodes = track.nodes
        pulses = track.treble_pulses

        def stack(vectors):
            return np.stack(vectors) if vectors else np.zeros((0, 3))

        np.savez_compressed(
            output_path,
            node_t=np.array([n.t for n in nodes]),
            node_s=np.array([n.s for n in nodes]),
            node_pos=stack([n.pos for n in nodes]),
            node_forward=stack([n.forward for n in nodes]),
            node_is_jump=np.array([n.is_jump for n in nodes], dtype=bool),
            pulse_time=np.array([p.time for p in pulses]),
            pulse_pos=stack([p.pos for p in pulses]),
            pulse_intensity=np.array([p.intensity for p in pulses]),
            pulse_lane=np.array([p.lane_index for p in pulses], dtype=int),
            energy_time=np.array([s.time for s in music_map.energy_samples]),
            energy_rms=np.array([s.rms for s in music_map.energy_samples]),
            treble_rms=np.array([s.rms for s in music_map.treble_samples]),
            beat_time=np.array([b.time for b in music_map.beats]),
            beat_strength=np.array([b.strength for b in music_map.beats]),
            duration=music_map.duration,
            length=track.length,
        )

        return output_path

    def to_dict(
        self,
        music_map: MusicMap,
        track: TrackData,
    ) -> dict[str, Any]:
        """Return manifest as dictionary (for in-memory use)."""
        return self.build_manifest(music_map, track)


def _array(values) -> np.ndarray:
    vector = np.array(values, dtype=np.float64)
    vector.setflags(write=False)
    return vector


def manifest_to_objects(manifest: dict[str, Any]) -> tuple[MusicMap, TrackData]:
    """
    Rebuild MusicMap and TrackData from a manifest dictionary.

    Raises:
        ManifestError: If required keys are missing or the schema differs.
    """
    try:
        metadata = manifest["metadata"]
        if metadata.get("schema_version") != SCHEMA_VERSION:
            raise ManifestError(
                f"Unsupported manifest schema: {metadata.get('schema_version')!r}"
            )
        music = manifest["music"]
        music_map = MusicMap(
            duration=float(metadata["duration"]),
            beats=tuple(BeatMarker(**b) for b in music["beats"]),
            energy_samples=tuple(EnergySample(**s) for s in music["energy_samples"]),
            treble_samples=tuple(EnergySample(**s) for s in music["treble_samples"]),
            treble_peaks=tuple(BeatMarker(**b) for b in music["treble_peaks"]),
        )
        nodes = tuple(
            TrackNode(
                t=n["t"],
                s=n["s"],
                pos=_array(n["pos"]),
                forward=_array(n["forward"]),
                up=_array(n["up"]),
                is_jump=n["is_jump"],
            )
            for n in manifest["track"]["nodes"]
        )
        pulses = tuple(
            TreblePulse(
                time=p["time"],
                pos=_array(p["pos"]),
                intensity=p["intensity"],
                lane_index=p["lane_index"],
            )
            for p in manifest["track"]["treble_pulses"]
        )
        track = TrackData(nodes=nodes, treble_pulses=pulses, length=float(metadata["length"]))
    except (KeyError, TypeError) as e:
        raise ManifestError(f"Malformed manifest: {e}") from e

    return music_map, track


def load_manifest(path: Union[str, Path]) -> tuple[MusicMap, TrackData]:
    """
    Read a JSON manifest written by TrackExporter.

    Raises:
        ManifestError: If the file cannot be parsed or has the wrong schema.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"Could not read manifest {path}: {e}") from e
    return manifest_to_objects(manifest)
