"""Console output formatting."""

from furlong.models import RaceSnapshot, RacingEntity, RandomEvent, Ranking


class ConsoleOutput:
    """Formats race state for console display."""

    @staticmethod
    def print_rankings(rankings: list[Ranking], winner: RacingEntity | None = None) -> None:
        """Print final standings to console.

        Args:
            rankings: Standings sorted by rank
            winner: Winning entity, if any
        """
        print("\n" + "=" * 50)
        print("RACE RESULTS")
        print("=" * 50)
        print(f"{'Pos':<4} {'Horse':<20} {'Progress':>10}  {'':<8}")
        print("-" * 50)

        for ranking in sorted(rankings, key=lambda r: r.rank):
            marker = "WINNER" if ranking.is_winner else ""
            print(f"{ranking.rank:<4} {ranking.name or ranking.player_id:<20} {ranking.progress:>9.1f}%  {marker:<8}")

        print("=" * 50)
        if winner is None:
            print("No winner")

    @staticmethod
    def print_progress(snapshot: RaceSnapshot, width: int = 40) -> None:
        """Print one text lane per entity, leader first.

        Args:
            snapshot: Engine snapshot to draw
            width: Lane width in characters
        """
        print(f"\n[{snapshot.timestamp_ms / 1000:7.1f}s] {snapshot.status.value}")
        for entity in sorted(snapshot.entities.values(), key=lambda e: (-e.progress, e.id)):
            filled = int(width * entity.progress / 100)
            lane = "=" * filled + ">" + " " * (width - filled)
            status = "" if entity.connected else " (disconnected)"
            print(f"  {entity.name or entity.id:<12} |{lane}| {entity.progress:5.1f}%{status}")

    @staticmethod
    def print_events(events: dict[str, RandomEvent], names: dict[str, str] | None = None) -> None:
        """Print the non-trivial random events of one batch."""
        names = names or {}
        for player_id, event in events.items():
            if event.kind.value == "none":
                continue
            print(f"  ! {names.get(player_id, player_id)}: {event.kind.value} x{event.multiplier:.2f}")
