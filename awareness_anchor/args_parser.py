import argparse

from .stats.summary import StatsPeriod

anchor_parser = argparse.ArgumentParser(
    description="Awareness Anchor - gesture responses to random chimes"
)
anchor_parser.add_argument(
    "--debug",
    help="Enable debug logging.",
    action="store_true",
    default=False,
)

subparsers = anchor_parser.add_subparsers(dest="command", required=True)

replay_parser = subparsers.add_parser(
    "replay", help="Feed recorded samples through the response loop."
)
replay_parser.add_argument("samples", help="Path to a JSON-lines sample recording.")
replay_parser.add_argument("--settings", help="Path to a detection settings JSON file.")
replay_parser.add_argument(
    "--history",
    help="Path to an event history JSON file; loaded if it exists, saved afterwards.",
)
replay_parser.add_argument(
    "--chime-at",
    help="Sample time (seconds) at which to ring a chime. Repeatable.",
    type=float,
    action="append",
    default=[],
)
replay_parser.add_argument(
    "--tick",
    help="Simulated tick interval in seconds.",
    type=float,
    default=None,
)

stats_parser = subparsers.add_parser("stats", help="Print statistics from an event history.")
stats_parser.add_argument("history", help="Path to an event history JSON file.")
stats_parser.add_argument(
    "--period",
    help="Reporting period.",
    type=StatsPeriod,
    choices=list(StatsPeriod),
    default=StatsPeriod.ALL_TIME,
)

get_args = anchor_parser.parse_args
