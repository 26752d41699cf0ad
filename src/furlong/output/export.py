"""Export race results to CSV and JSON."""

import csv
import json
from pathlib import Path
from typing import Any

from furlong.models import RaceSnapshot, RacingEntity, Ranking


class Exporter:
    """Exports race results to various formats."""

    def __init__(self, output_dir: str | Path = "output"):
        """Initialize exporter.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export_rankings_csv(
        self,
        rankings: list[Ranking],
        filename: str = "rankings.csv",
    ) -> Path:
        """Export final standings to CSV.

        Args:
            rankings: Final standings
            filename: Output filename

        Returns:
            Path to created file
        """
        filepath = self.output_dir / filename

        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["rank", "player_id", "name", "progress", "is_winner"])
            for ranking in sorted(rankings, key=lambda r: r.rank):
                writer.writerow([
                    ranking.rank,
                    ranking.player_id,
                    ranking.name,
                    f"{ranking.progress:.2f}",
                    int(ranking.is_winner),
                ])

        return filepath

    def export_progress_csv(
        self,
        history: list[RaceSnapshot],
        filename: str = "progress.csv",
    ) -> Path:
        """Export a progress timeline (one row per entity per snapshot).

        Args:
            history: Snapshots in emission order
            filename: Output filename

        Returns:
            Path to created file
        """
        filepath = self.output_dir / filename

        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["timestamp_ms", "player_id", "progress", "speed", "connected"])
            for snapshot in history:
                for player_id, entity in snapshot.entities.items():
                    writer.writerow([
                        f"{snapshot.timestamp_ms:.0f}",
                        player_id,
                        f"{entity.progress:.3f}",
                        f"{entity.speed:.3f}",
                        int(entity.connected),
                    ])

        return filepath

    def export_rankings_json(
        self,
        rankings: list[Ranking],
        winner: RacingEntity | None = None,
        metadata: dict[str, Any] | None = None,
        filename: str = "result.json",
    ) -> Path:
        """Export the race result to JSON.

        Args:
            rankings: Final standings
            winner: Winning entity, if any
            metadata: Extra fields (mode, seed, ...) stored under ``metadata``
            filename: Output filename

        Returns:
            Path to created file
        """
        filepath = self.output_dir / filename

        result: dict[str, Any] = {
            "metadata": metadata or {},
            "winner": winner.model_dump(mode="json") if winner is not None else None,
            "rankings": [r.model_dump(mode="json") for r in rankings],
        }

        with open(filepath, "w") as f:
            json.dump(result, f, indent=2)

        return filepath

    def export_all(
        self,
        rankings: list[Ranking],
        winner: RacingEntity | None = None,
        history: list[RaceSnapshot] | None = None,
        metadata: dict[str, Any] | None = None,
        prefix: str = "",
    ) -> dict[str, Path]:
        """Export all result formats.

        Args:
            rankings: Final standings
            winner: Winning entity, if any
            history: Snapshot timeline; the progress CSV is skipped when None
            metadata: Extra fields for the JSON result
            prefix: Optional prefix for filenames

        Returns:
            Dictionary of format -> filepath
        """
        prefix = f"{prefix}_" if prefix else ""

        paths = {
            "rankings_csv": self.export_rankings_csv(rankings, f"{prefix}rankings.csv"),
            "result_json": self.export_rankings_json(
                rankings, winner, metadata, f"{prefix}result.json"
            ),
        }
        if history is not None:
            paths["progress_csv"] = self.export_progress_csv(history, f"{prefix}progress.csv")
        return paths
